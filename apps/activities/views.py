"""
Views for the Activities app.
"""
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.activities.serializers import ActivitySerializer
from apps.activities.services import activity_log


class MyActivitiesView(APIView):
    """
    Recent activity across every group the user belongs to.

    GET /api/v1/activities/me/?limit=<n>
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        limit = activity_log.clamp_limit(
            request.query_params.get('limit'),
            activity_log.USER_FEED_LIMIT,
            activity_log.USER_FEED_MAX,
        )
        activities = activity_log.user_activities(request.user, limit)
        return Response({'success': True, 'data': ActivitySerializer(activities, many=True).data})
