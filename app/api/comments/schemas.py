# app/api/comments/schemas.py
from marshmallow import Schema, fields, validate

class CommentCreateSchema(Schema):
    """
    POST /api/posts/{post_id}/comments, POST .../comments/{comment_id}/replies
    댓글·답글 작성 요청의 데이터 형식을 정의하고 유효성을 검사합니다.
    """
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="댓글은 1~1000자 사이여야 합니다."))

class ReplyResponseSchema(Schema):
    """답글 정보 응답"""
    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    parent_id = fields.Str(allow_none=True)
    sender_id = fields.Str(required=True)
    username = fields.Str(required=True)
    user_avatar = fields.Str(allow_none=True)
    text = fields.Str(required=True)
    likes = fields.Int(required=True)
    timestamp = fields.DateTime(required=True)

    # 서비스 로직에서 채워주는 응답 전용 필드
    is_liked = fields.Bool(dump_only=True, dump_default=False)

class CommentResponseSchema(ReplyResponseSchema):
    """댓글 정보 응답 (답글 포함)"""
    replies = fields.List(fields.Nested(ReplyResponseSchema), dump_default=[])
