"""
Serializers for the Groups app.
"""
from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.activities.services import activity_log
from apps.groups.models import Group, GroupMember
from apps.groups.utils import generate_invite_code


class GroupMemberSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source='user.id', read_only=True)
    userName = serializers.CharField(source='user.display_name', read_only=True)
    joinedAt = serializers.DateTimeField(source='joined_at', read_only=True)

    class Meta:
        model = GroupMember
        fields = ['id', 'userId', 'userName', 'role', 'joinedAt']
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    inviteCode = serializers.CharField(source='invite_code', read_only=True)
    createdBy = serializers.CharField(source='created_by.id', read_only=True)
    memberCount = serializers.ReadOnlyField(source='member_count')
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Group
        fields = [
            'id', 'name', 'description', 'currency', 'inviteCode',
            'createdBy', 'memberCount', 'createdAt',
        ]
        read_only_fields = fields


class GroupCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Group
        fields = ['name', 'description', 'currency']

    def create(self, validated_data):
        user = self.context['request'].user
        group = Group.objects.create(
            created_by=user,
            invite_code=generate_invite_code(),
            **validated_data,
        )
        GroupMember.objects.create(group=group, user=user, role=GroupMember.Role.ADMIN)
        activity_log.log_group_created(group, user)
        return group


class JoinGroupSerializer(serializers.Serializer):
    inviteCode = serializers.CharField(max_length=8)

    def validate_inviteCode(self, value):
        group = Group.objects.filter(invite_code=value.upper(), is_active=True).first()
        if group is None:
            raise serializers.ValidationError('Invalid or expired invite code.')

        user = self.context['request'].user
        if GroupMember.objects.filter(group=group, user=user).exists():
            raise serializers.ValidationError('You are already a member of this group.')

        self.group = group
        return value


class GroupUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Group
        fields = ['name', 'description']

    def update(self, instance, validated_data):
        changed = [
            field for field, value in validated_data.items()
            if getattr(instance, field) != value
        ]
        instance = super().update(instance, validated_data)
        if changed:
            activity_log.log_group_updated(instance, self.context['request'].user, changed)
        return instance


class AddMemberSerializer(serializers.Serializer):
    """Adds an existing user to the group by email."""
    email = serializers.EmailField()

    def validate_email(self, value):
        user = get_user_model().objects.filter(email__iexact=value, is_active=True).first()
        if user is None:
            raise serializers.ValidationError('No user with this email address.')

        group = self.context['group']
        if GroupMember.objects.filter(group=group, user=user).exists():
            raise serializers.ValidationError('This user is already a member of the group.')

        self.user = user
        return value
