"""
URL configuration for the Activities app.
"""
from django.urls import path

from apps.activities.views import MyActivitiesView

app_name = 'activities'

urlpatterns = [
    path('me/', MyActivitiesView.as_view(), name='my-activities'),
]
