# app/api/posts/schemas.py
from marshmallow import Schema, fields, validate

from app.api.users.schemas import LocationSchema

# --- API 요청/응답 스키마 ---

class PostCreateSchema(Schema):
    """POST /api/posts 요청 본문의 유효성을 검사합니다."""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    caption = fields.Str(required=True, validate=validate.Length(min=1, max=2000))
    location = fields.Nested(LocationSchema, required=True)
    image_url = fields.Str(allow_none=True, load_default=None)
    tags = fields.List(fields.Str(validate=validate.Length(min=1, max=30)), load_default=list, validate=validate.Length(max=10))
    tagged_user_ids = fields.List(fields.Str(), load_default=list, validate=validate.Length(max=20))
    duration = fields.Int(load_default=12, validate=validate.Range(min=1, max=24, error="노출 시간은 1~24시간 사이여야 합니다."))
    is_anonymous = fields.Bool(load_default=False)

class VerificationResultSchema(Schema):
    """POST /api/posts/{post_id}/verification (검수 서비스 콜백)"""
    status = fields.Str(required=True, validate=validate.OneOf(["Approved", "Rejected"]))
    reason = fields.Str(allow_none=True, load_default=None)

class PostResponseSchema(Schema):
    """게시물 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    post_id = fields.Str(dump_only=True)
    creator_id = fields.Method('get_creator_id')
    username = fields.Str(allow_none=True)
    user_avatar = fields.Str(allow_none=True)
    is_anonymous = fields.Bool()
    title = fields.Str()
    caption = fields.Str()
    image_url = fields.Str(allow_none=True)
    tags = fields.List(fields.Str())
    tagged_user_ids = fields.List(fields.Str())
    location = fields.Nested(LocationSchema)
    duration = fields.Int()
    likes = fields.Int()
    eyewitnesses = fields.Int()
    comment_count = fields.Int()
    verification_status = fields.Str()
    rejection_reason = fields.Str(allow_none=True)
    is_visible = fields.Bool()
    created_at = fields.DateTime()
    expires_at = fields.DateTime()

    # 서비스 로직에서 채워주는 응답 전용 필드
    is_liked = fields.Bool(dump_only=True, dump_default=False)
    is_eyewitness = fields.Bool(dump_only=True, dump_default=False)
    time_remaining = fields.Str(dump_only=True)
    distance = fields.Float(dump_only=True)

    def get_creator_id(self, post):
        # 익명 게시물의 작성자 ID는 노출하지 않습니다.
        return None if post.get('is_anonymous') else post.get('creator_id')
