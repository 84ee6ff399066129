"""
URL configuration for the Groups app.
"""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from apps.groups.views import GroupViewSet

app_name = 'groups'

router = SimpleRouter()
router.register(r'', GroupViewSet, basename='group')

urlpatterns = [
    path('', include(router.urls)),
]
