"""
Custom permissions for the Groups app.
"""
from rest_framework.permissions import BasePermission

from apps.groups.models import GroupMember


def is_group_member(group_id, user):
    return GroupMember.objects.filter(group_id=group_id, user=user).exists()


class IsGroupMember(BasePermission):
    """
    Allows access only to members of the group.

    The group comes from the object (a Group or anything with a ``group``)
    or, for list-style views, from the ``group_id`` / ``pk`` URL kwarg.
    """
    message = 'You must be a group member to perform this action.'

    def has_permission(self, request, view):
        group_id = view.kwargs.get('group_id')
        if group_id is None:
            return True  # Let object permission handle it
        return is_group_member(group_id, request.user)

    def has_object_permission(self, request, view, obj):
        group_id = obj.pk if hasattr(obj, 'invite_code') else getattr(obj, 'group_id', None)
        if group_id is None:
            return False
        return is_group_member(group_id, request.user)


def is_group_admin(group_id, user):
    return GroupMember.objects.filter(
        group_id=group_id, user=user, role=GroupMember.Role.ADMIN,
    ).exists()


class IsGroupAdmin(BasePermission):
    """
    Allows access only to admins of the group object.
    """
    message = 'You must be a group admin to perform this action.'

    def has_object_permission(self, request, view, obj):
        return is_group_admin(obj.pk, request.user)
