"""
Serializers for the Activities app.
"""
from django.utils.timesince import timesince
from rest_framework import serializers

from apps.activities.models import Activity


class ActivitySerializer(serializers.ModelSerializer):
    groupId = serializers.CharField(source='group_id', read_only=True)
    groupName = serializers.CharField(source='group.name', read_only=True)
    userId = serializers.CharField(source='user_id', read_only=True)
    userName = serializers.CharField(source='user.display_name', read_only=True)
    refId = serializers.CharField(source='ref_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    timeAgo = serializers.SerializerMethodField()

    class Meta:
        model = Activity
        fields = [
            'id', 'type', 'title', 'detail', 'amount', 'groupId', 'groupName',
            'userId', 'userName', 'refId', 'createdAt', 'timeAgo',
        ]
        read_only_fields = fields

    def get_timeAgo(self, obj):
        return f'{timesince(obj.created_at)} ago'
