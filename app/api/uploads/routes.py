# app/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate, ValidationError

# 게시물 이미지, 프로필 사진, 채팅 미디어 업로드용 블루프린트 ('/api/uploads')
uploads_bp = Blueprint('uploads', __name__)

class UploadUrlRequestSchema(Schema):
    """업로드 URL 발급 요청 스키마"""
    upload_type = fields.Str(required=True, validate=validate.OneOf(["user_profile", "post_image", "chat_media"]))
    filename = fields.Str(required=True, validate=validate.Length(min=1))
    content_type = fields.Str(required=True, validate=validate.Length(min=1))


@uploads_bp.route('/url', methods=['POST'])
@jwt_required()
def get_upload_url():
    """
    파일 업로드용 Pre-signed URL을 발급합니다.
    클라이언트는 이 URL로 Storage에 직접 업로드(PUT)한 뒤, 반환된 file_path를 게시물/프로필에 저장합니다.
    """
    user_id = get_jwt_identity()
    try:
        data = UploadUrlRequestSchema().load(request.get_json() or {})
    except ValidationError as err:
        logging.warning(f"URL 발급 요청 실패 (잘못된 파라미터): {err.messages}")
        return jsonify({"error_code": "INVALID_PARAMETERS", "details": err.messages}), 400

    storage_service = current_app.services['storage']
    try:
        url_info = storage_service.generate_upload_url(user_id, data['upload_type'], data['filename'], data['content_type'])
        return jsonify(url_info), 200
    except ValueError as e:
        logging.warning(f"URL 발급 요청 실패 (잘못된 업로드 타입): {e}")
        return jsonify({"error_code": "INVALID_UPLOAD_TYPE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Pre-signed URL 생성 중 서버 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "URL_GENERATION_FAILED", "message": "URL 생성 중 서버 오류가 발생했습니다."}), 500
