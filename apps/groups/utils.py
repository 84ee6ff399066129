"""
Utility functions for the Groups app.
"""
import secrets
import string

INVITE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(length=8):
    """Return an uppercase alphanumeric invite code not used by any group."""
    from apps.groups.models import Group

    while True:
        code = ''.join(secrets.choice(INVITE_ALPHABET) for _ in range(length))
        if not Group.objects.filter(invite_code=code).exists():
            return code
