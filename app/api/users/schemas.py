# app/api/users/schemas.py
from marshmallow import Schema, fields, validate

class LocationSchema(Schema):
    """위치 좌표"""
    lat = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(required=True, validate=validate.Range(min=-180, max=180))

class DirectoryEntrySchema(Schema):
    """사용자 선택(태그·멘션) 목록 항목"""
    user_id = fields.Str(attribute='id', dump_only=True)
    display_name = fields.Str()
    photo_url = fields.Str(allow_none=True)

class UserPublicResponseSchema(Schema):
    """
    다른 사용자의 프로필 정보를 응답할 때 사용하는 스키마.
    이메일, 위치 등 민감한 정보는 제외합니다.
    """
    user_id = fields.Str(required=True, dump_only=True)
    display_name = fields.Str(required=True)
    photo_url = fields.Str(allow_none=True)

class UserMeResponseSchema(UserPublicResponseSchema):
    """본인 프로필 응답"""
    email = fields.Str(allow_none=True)
    notification_count = fields.Int(dump_default=0)
    subscribed_tags = fields.List(fields.Str(), dump_default=[])
    location = fields.Nested(LocationSchema, allow_none=True)
    radius_km = fields.Float(allow_none=True)

class UserUpdateSchema(Schema):
    """PATCH /api/users/me 요청 본문"""
    display_name = fields.Str(validate=validate.Length(min=1, max=50))
    photo_url = fields.Str(allow_none=True)
    subscribed_tags = fields.List(fields.Str(validate=validate.Length(min=1, max=30)), validate=validate.Length(max=10))
    location = fields.Nested(LocationSchema, allow_none=True)
    radius_km = fields.Float(validate=validate.OneOf([1, 3, 5, 10, 20, 50]), allow_none=True)
