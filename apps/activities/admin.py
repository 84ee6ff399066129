"""
Admin configuration for the Activities app.
"""
from django.contrib import admin

from apps.activities.models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'group', 'user', 'amount', 'created_at']
    list_filter = ['type']
    search_fields = ['title', 'detail', 'group__name']
    readonly_fields = ['created_at', 'updated_at']
