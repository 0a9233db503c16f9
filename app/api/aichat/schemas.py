# app/api/aichat/schemas.py
from marshmallow import Schema, fields, validate

class AiChatQuestionSchema(Schema):
    """POST /api/aichat"""
    question = fields.Str(required=True, validate=validate.Length(min=1, max=1000))
    lat = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(required=True, validate=validate.Range(min=-180, max=180))

class AiChatHistoryEntrySchema(Schema):
    sender = fields.Str()
    text = fields.Str()
