"""
Core app serializers.

Request / response shapes for notifications, the activity log and the
health check.
"""

from rest_framework import serializers

from .models import ActivityLog, Notification


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.ModelSerializer):
    """Read-only serializer for ``Notification`` instances."""

    class Meta:
        model = Notification
        fields = ["id", "title", "message", "type", "data", "is_read", "created_at"]
        read_only_fields = fields


class NotificationListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)
    unread_only = serializers.BooleanField(required=False, default=False)


# ════════════════════════════════════════════════════════════════════
#  Activity log
# ════════════════════════════════════════════════════════════════════

class ActivityLogSerializer(serializers.ModelSerializer):
    """Read-only custody log entry."""

    class Meta:
        model = ActivityLog
        fields = ["id", "user", "actor_identity", "action", "details", "metadata", "timestamp"]
        read_only_fields = fields


class ActivityCreateSerializer(serializers.Serializer):
    """
    Payload for ``POST /api/activity/``.

    ``user_id`` is only consulted for anonymous callers; an authenticated
    caller always logs as themself.
    """

    action = serializers.CharField(
        max_length=100,
        error_messages={"required": "Action is required", "blank": "Action is required"},
    )
    details = serializers.JSONField(required=False, default="")
    metadata = serializers.DictField(required=False, default=dict)
    user_id = serializers.CharField(required=False, allow_blank=True, max_length=255)


# ════════════════════════════════════════════════════════════════════
#  Health
# ════════════════════════════════════════════════════════════════════

class HealthSerializer(serializers.Serializer):
    status = serializers.CharField()
    timestamp = serializers.DateTimeField()
    uptime = serializers.FloatField(help_text="Seconds since the process started.")
    environment = serializers.CharField()
    port = serializers.IntegerField()
    database = serializers.CharField(help_text="'connected' or 'unavailable'.")
