# app/api/chats/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

class StartChatSchema(Schema):
    """POST /api/chats"""
    partner_id = fields.Str(required=True, validate=validate.Length(min=1))

class SendMessageSchema(Schema):
    """POST /api/chats/{chat_id}/messages. text와 media_url 중 하나는 있어야 합니다."""
    text = fields.Str(load_default="", validate=validate.Length(max=2000))
    media_url = fields.Str(allow_none=True, load_default=None)
    media_type = fields.Str(allow_none=True, load_default=None, validate=validate.OneOf(["image", "video"]))

    @validates_schema
    def validate_content(self, data, **kwargs):
        if not (data.get('text') or '').strip() and not data.get('media_url'):
            raise ValidationError("메시지 내용 또는 미디어가 필요합니다.", field_name="text")

class ChatPartnerSchema(Schema):
    user_id = fields.Str()
    display_name = fields.Str(allow_none=True)
    photo_url = fields.Str(allow_none=True)

class LastMessageSchema(Schema):
    text = fields.Str()
    sender_id = fields.Str()
    timestamp = fields.DateTime()

class ChatResponseSchema(Schema):
    chat_id = fields.Str()
    partner = fields.Nested(ChatPartnerSchema)
    last_message = fields.Nested(LastMessageSchema, allow_none=True)
    unread_count = fields.Int()
    timestamp = fields.DateTime()

class ChatMessageResponseSchema(Schema):
    message_id = fields.Str()
    sender_id = fields.Str()
    sender_name = fields.Str()
    text = fields.Str()
    media_url = fields.Str(allow_none=True)
    media_type = fields.Str(allow_none=True)
    read = fields.Bool()
    timestamp = fields.DateTime()
