# app/api/notifications/schemas.py
from marshmallow import Schema, fields

class NotificationResponseSchema(Schema):
    """알림 응답. 유형별 추가 정보(matched_tags, distance 등)는 있을 때만 포함됩니다."""
    notification_id = fields.Str(required=True)
    type = fields.Str(required=True)
    message = fields.Str(required=True)
    triggering_user_id = fields.Str(allow_none=True)
    triggering_user_name = fields.Str(allow_none=True)
    triggering_user_avatar = fields.Str(allow_none=True)
    post_id = fields.Str(allow_none=True)
    post_title = fields.Str(allow_none=True)
    post_image = fields.Str(allow_none=True)
    summary = fields.Str(allow_none=True)
    read = fields.Bool(required=True)
    timestamp = fields.DateTime(required=True)

    comment_id = fields.Str()
    matched_tags = fields.List(fields.Str())
    distance = fields.Float()
    rejection_reason = fields.Str(allow_none=True)
