"""
Views for the Groups app.
"""
import logging

from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.activities.serializers import ActivitySerializer
from apps.activities.services import activity_log
from apps.expenses.services import group_ledger
from apps.groups.exceptions import OutstandingBalance
from apps.groups.models import Group, GroupMember
from apps.groups.permissions import IsGroupAdmin, is_group_admin
from apps.groups.serializers import (
    AddMemberSerializer,
    GroupCreateSerializer,
    GroupMemberSerializer,
    GroupSerializer,
    GroupUpdateSerializer,
    JoinGroupSerializer,
)

logger = logging.getLogger(__name__)


def remove_membership(group, user):
    """
    Delete *user*'s membership of *group*.

    Refuses while the user still owes or is owed money. When the last admin
    goes, the longest-standing remaining member is promoted; when nobody is
    left, the group is deactivated.
    """
    balances = group_ledger.get_group_balances(group.id, use_cache=False)
    owed = next((b.amount for b in balances if b.member_id == str(user.id)), None)
    if owed:
        raise OutstandingBalance(
            f'{user.display_name} has an outstanding balance of {owed:.2f} {group.currency}.'
        )

    with transaction.atomic():
        membership = GroupMember.objects.select_for_update().filter(group=group, user=user).first()
        if membership is None:
            raise NotFound('This user is not a member of the group.')
        membership.delete()

        remaining = GroupMember.objects.filter(group=group).order_by('joined_at')
        if not remaining.exists():
            group.is_active = False
            group.save(update_fields=['is_active', 'updated_at'])
            logger.info('Group %s deactivated after its last member left', group.id)
        elif not remaining.filter(role=GroupMember.Role.ADMIN).exists():
            successor = remaining.first()
            successor.role = GroupMember.Role.ADMIN
            successor.save(update_fields=['role', 'updated_at'])
            logger.info('Promoted %s to admin of group %s', successor.user_id, group.id)


class GroupViewSet(mixins.CreateModelMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   mixins.UpdateModelMixin,
                   mixins.DestroyModelMixin,
                   viewsets.GenericViewSet):
    """
    list:          GET    /api/v1/groups/
    create:        POST   /api/v1/groups/
    retrieve:      GET    /api/v1/groups/{id}/
    update:        PATCH  /api/v1/groups/{id}/
    delete:        DELETE /api/v1/groups/{id}/
    members:       GET    /api/v1/groups/{id}/members/
    add member:    POST   /api/v1/groups/{id}/members/
    remove member: DELETE /api/v1/groups/{id}/members/{user_id}/
    leave:         POST   /api/v1/groups/{id}/leave/
    activities:    GET    /api/v1/groups/{id}/activities/?limit=<n>
    join:          POST   /api/v1/groups/join/
    """
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return Group.objects.filter(
            members__user=self.request.user,
            is_active=True,
        ).select_related('created_by').distinct()

    def get_serializer_class(self):
        if self.action == 'create':
            return GroupCreateSerializer
        if self.action == 'partial_update':
            return GroupUpdateSerializer
        if self.action == 'join':
            return JoinGroupSerializer
        return GroupSerializer

    def get_permissions(self):
        if self.action in ('partial_update', 'destroy'):
            return [IsAuthenticated(), IsGroupAdmin()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        group = serializer.save()
        logger.info('Group %s created by %s', group.id, request.user.id)
        return Response(
            {'success': True, 'data': GroupSerializer(group).data},
            status=status.HTTP_201_CREATED,
        )

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return Response({'success': True, 'data': GroupSerializer(queryset, many=True).data})

    def retrieve(self, request, *args, **kwargs):
        return Response({'success': True, 'data': GroupSerializer(self.get_object()).data})

    def partial_update(self, request, *args, **kwargs):
        group = self.get_object()
        serializer = self.get_serializer(group, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        group = serializer.save()
        return Response({'success': True, 'data': GroupSerializer(group).data})

    def destroy(self, request, *args, **kwargs):
        group = self.get_object()
        group.is_active = False
        group.save(update_fields=['is_active', 'updated_at'])
        logger.info('Group %s deleted by %s', group.id, request.user.id)
        return Response({'success': True, 'message': f'{group.name} deleted.'})

    @action(detail=True, methods=['get', 'post'])
    def members(self, request, pk=None):
        group = self.get_object()
        if request.method == 'POST':
            serializer = AddMemberSerializer(data=request.data, context={'group': group})
            serializer.is_valid(raise_exception=True)
            membership = GroupMember.objects.create(
                group=group, user=serializer.user, role=GroupMember.Role.MEMBER,
            )
            activity_log.log_member_joined(group, serializer.user, added_by=request.user)
            logger.info('User %s added to group %s by %s', serializer.user.id, group.id, request.user.id)
            return Response(
                {'success': True, 'data': GroupMemberSerializer(membership).data},
                status=status.HTTP_201_CREATED,
            )

        memberships = GroupMember.objects.filter(group=group).select_related('user')
        return Response({'success': True, 'data': GroupMemberSerializer(memberships, many=True).data})

    @action(detail=True, methods=['delete'], url_path=r'members/(?P<user_id>[^/.]+)')
    def remove_member(self, request, pk=None, user_id=None):
        group = self.get_object()
        if user_id == str(request.user.id):
            return self.leave(request, pk=pk)

        if not is_group_admin(group.id, request.user):
            raise PermissionDenied('Only group admins can remove other members.')

        membership = (
            GroupMember.objects.filter(group=group, user_id=user_id).select_related('user').first()
        )
        if membership is None:
            raise NotFound('This user is not a member of the group.')

        remove_membership(group, membership.user)
        activity_log.log_member_removed(group, request.user, membership.user)
        logger.info('User %s removed from group %s by %s', user_id, group.id, request.user.id)
        return Response({'success': True, 'message': f'{membership.user.display_name} removed.'})

    @action(detail=True, methods=['post'])
    def leave(self, request, pk=None):
        group = self.get_object()
        remove_membership(group, request.user)
        activity_log.log_member_left(group, request.user)
        logger.info('User %s left group %s', request.user.id, group.id)
        return Response({'success': True, 'message': f'You left {group.name}.'})

    @action(detail=True, methods=['get'])
    def activities(self, request, pk=None):
        group = self.get_object()
        limit = activity_log.clamp_limit(
            request.query_params.get('limit'),
            activity_log.GROUP_FEED_LIMIT,
            activity_log.GROUP_FEED_MAX,
        )
        entries = activity_log.group_activities(group.id, limit)
        return Response({'success': True, 'data': ActivitySerializer(entries, many=True).data})

    @action(detail=False, methods=['post'])
    def join(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        group = serializer.group
        GroupMember.objects.create(group=group, user=request.user, role=GroupMember.Role.MEMBER)
        activity_log.log_member_joined(group, request.user)
        return Response(
            {
                'success': True,
                'data': GroupSerializer(group).data,
                'message': f'Successfully joined {group.name}.',
            },
            status=status.HTTP_201_CREATED,
        )
