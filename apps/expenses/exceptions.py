"""
Errors raised while computing how an expense is split.

Every error is a ``ValueError`` carrying a stable machine-readable ``code``
so the API layer can report it without inspecting the message.
"""


class SplitError(ValueError):
    """Base class for deterministic split-input failures."""
    code = 'split_error'
    default_message = 'The expense split could not be computed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidParticipantSet(SplitError):
    code = 'invalid_participant_set'
    default_message = 'At least one participant is required to split an expense.'


class MissingLineItems(SplitError):
    code = 'missing_line_items'
    default_message = 'Items are required for a by-item split.'


class UnresolvableMemberReference(SplitError):
    code = 'unresolvable_member_reference'
    default_message = 'A referenced member does not belong to the group.'

    def __init__(self, member_id=None, message=None):
        self.member_id = member_id
        if message is None and member_id is not None:
            message = f'Member {member_id} does not belong to the group.'
        super().__init__(message)


class UnsupportedSplitPolicy(SplitError):
    code = 'unsupported_split_policy'
    default_message = 'Unsupported split policy.'

    def __init__(self, policy=None):
        self.policy = policy
        message = f'Unsupported split policy: {policy!r}.' if policy is not None else None
        super().__init__(message)


class InvalidPercentages(SplitError):
    code = 'invalid_percentages'
    default_message = 'Percentages must sum to 100.'
