# app/api/posts/routes.py
import hmac
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.api.posts.schemas import PostCreateSchema, PostResponseSchema, VerificationResultSchema


posts_bp = Blueprint('posts_bp', __name__)

MAX_PAGE_SIZE = 100

@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """
    새로운 게시물을 생성합니다.
    - 성공 시, 생성된 게시물 정보를 201 Created 상태 코드와 함께 반환합니다.
    - 게시물은 검수를 통과하기 전까지 다른 사용자에게 노출되지 않습니다.
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = PostCreateSchema().load(request.get_json() or {})
        new_post = post_service.create_post(user_id, data)
        return jsonify(PostResponseSchema().dump(new_post)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시물 생성 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "POST_CREATION_FAILED", "message": "게시물 생성 중 오류가 발생했습니다."}), 500


@posts_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def get_feed():
    """
    현재 위치 주변의 게시물 피드를 조회합니다.
    - lat, lng: 필수
    - radius_km: 선택 (기본값 DEFAULT_RADIUS_KM)
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    lat = request.args.get('lat', None, type=float)
    lng = request.args.get('lng', None, type=float)
    radius_km = request.args.get('radius_km', current_app.config.get('DEFAULT_RADIUS_KM', 5), type=float)
    limit = request.args.get('limit', 50, type=int)
    if lat is None or lng is None:
        return jsonify({"error_code": "INVALID_PARAMETERS", "message": "'lat', 'lng' 파라미터가 필요합니다."}), 400
    if limit is None or not 1 <= limit <= MAX_PAGE_SIZE:
        return jsonify({"error_code": "INVALID_PARAMETERS", "message": f"'limit'는 1에서 {MAX_PAGE_SIZE} 사이여야 합니다."}), 400
    try:
        posts = post_service.get_feed(lat, lng, radius_km, user_id, limit)
        return jsonify({"posts": PostResponseSchema(many=True).dump(posts)}), 200
    except Exception as e:
        logging.error(f"피드 조회 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 500


@posts_bp.route('/tags/<string:tag>', methods=['GET'])
@jwt_required(optional=True)
def get_posts_by_tag(tag: str):
    """특정 태그가 달린 노출 중인 게시물을 최신순으로 조회합니다."""
    post_service = current_app.services['posts']
    try:
        posts = post_service.get_posts_by_tag(tag, get_jwt_identity())
        return jsonify({"tag": tag, "posts": PostResponseSchema(many=True).dump(posts)}), 200
    except Exception as e:
        logging.error(f"태그 게시물 조회 중 오류 발생 (tag: {tag}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 500


@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    """특정 게시물의 상세 정보를 조회합니다."""
    post_service = current_app.services['posts']
    post = post_service.get_post(post_id, get_jwt_identity())
    if not post:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "게시물을 찾을 수 없습니다."}), 404
    return jsonify(PostResponseSchema().dump(post)), 200


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """특정 게시물을 삭제합니다. (작성자 본인만 가능)"""
    post_service = current_app.services['posts']
    try:
        post_service.delete_post(post_id, get_jwt_identity())
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_post_like(post_id: str):
    """게시물의 좋아요를 누르거나 취소합니다."""
    post_service = current_app.services['posts']
    try:
        is_liked = post_service.toggle_like(get_jwt_identity(), post_id)
        return jsonify({"is_liked": is_liked}), 200
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"좋아요 처리 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LIKE_TOGGLE_FAILED", "message": "좋아요 처리 중 오류가 발생했습니다."}), 500


@posts_bp.route('/<string:post_id>/eyewitness', methods=['POST'])
@jwt_required()
def toggle_post_eyewitness(post_id: str):
    """게시물에 목격자 표시를 하거나 취소합니다."""
    post_service = current_app.services['posts']
    try:
        is_eyewitness = post_service.toggle_eyewitness(get_jwt_identity(), post_id)
        return jsonify({"is_eyewitness": is_eyewitness}), 200
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"목격자 처리 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "EYEWITNESS_TOGGLE_FAILED", "message": "목격자 상태 변경 중 오류가 발생했습니다."}), 500


@posts_bp.route('/<string:post_id>/verification', methods=['POST'])
def apply_verification(post_id: str):
    """
    외부 검수 서비스가 검수 결과를 전달하는 콜백입니다.
    X-Moderation-Token 헤더가 MODERATION_CALLBACK_TOKEN과 일치해야 합니다.
    """
    expected_token = current_app.config.get('MODERATION_CALLBACK_TOKEN')
    provided_token = request.headers.get('X-Moderation-Token', '')
    if not expected_token or not hmac.compare_digest(provided_token.encode(), expected_token.encode()):
        return jsonify({"error_code": "UNAUTHORIZED", "message": "검수 콜백 인증에 실패했습니다."}), 401

    post_service = current_app.services['posts']
    try:
        data = VerificationResultSchema().load(request.get_json() or {})
        post = post_service.apply_verification(post_id, data['status'], data.get('reason'))
        return jsonify(PostResponseSchema().dump(post)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
