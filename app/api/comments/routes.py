# app/api/comments/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.api.comments.schemas import CommentCreateSchema, CommentResponseSchema, ReplyResponseSchema


comments_bp = Blueprint('comments_bp', __name__)

@comments_bp.route('/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    """
    특정 게시물에 새로운 댓글을 작성합니다.
    - 댓글 생성 후 게시물 작성자 및 멘션된 사용자에게 알림이 생성됩니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        new_comment = comment_service.create_comment(post_id, user_id, data['text'])
        return jsonify(CommentResponseSchema().dump(new_comment)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e: # 게시물이 없거나 작성자 정보가 없는 경우
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"댓글 생성 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "COMMENT_CREATION_FAILED", "message": "댓글 생성 중 오류가 발생했습니다."}), 500


@comments_bp.route('/<string:post_id>/comments', methods=['GET'])
@jwt_required(optional=True)
def get_comments(post_id: str):
    """특정 게시물의 댓글 목록(답글 포함)을 조회합니다."""
    comment_service = current_app.services['comments']
    try:
        comments = comment_service.get_comments(post_id, get_jwt_identity())
        return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200
    except Exception as e:
        logging.error(f"댓글 목록 조회 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "댓글 목록 조회 중 오류가 발생했습니다."}), 500


@comments_bp.route('/<string:post_id>/comments/<string:comment_id>/replies', methods=['POST'])
@jwt_required()
def create_reply(post_id: str, comment_id: str):
    """댓글에 답글을 작성합니다. 부모 댓글 작성자 및 멘션된 사용자에게 알림이 생성됩니다."""
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        reply = comment_service.create_reply(post_id, comment_id, user_id, data['text'])
        return jsonify(ReplyResponseSchema().dump(reply)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"답글 생성 중 오류 발생 (comment_id: {comment_id}): {e}", exc_info=True)
        return jsonify({"error_code": "REPLY_CREATION_FAILED", "message": "답글 생성 중 오류가 발생했습니다."}), 500


@comments_bp.route('/<string:post_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(post_id: str, comment_id: str):
    """특정 댓글을 삭제합니다. (작성자 본인만 가능)"""
    comment_service = current_app.services['comments']
    try:
        comment_service.delete_comment(post_id, comment_id, get_jwt_identity())
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "NOT_FOUND", "message": str(e)}), 404


@comments_bp.route('/<string:post_id>/comments/<string:comment_id>/like', methods=['POST'])
@jwt_required()
def toggle_comment_like(post_id: str, comment_id: str):
    """특정 댓글의 좋아요를 누르거나 취소합니다."""
    comment_service = current_app.services['comments']
    try:
        is_liked = comment_service.toggle_comment_like(post_id, comment_id, get_jwt_identity())
        return jsonify({"is_liked": is_liked}), 200
    except ValueError as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": str(e)}), 404


@comments_bp.route('/<string:post_id>/comments/<string:comment_id>/replies/<string:reply_id>/like', methods=['POST'])
@jwt_required()
def toggle_reply_like(post_id: str, comment_id: str, reply_id: str):
    """특정 답글의 좋아요를 누르거나 취소합니다."""
    comment_service = current_app.services['comments']
    try:
        is_liked = comment_service.toggle_reply_like(post_id, comment_id, reply_id, get_jwt_identity())
        return jsonify({"is_liked": is_liked}), 200
    except ValueError as e:
        return jsonify({"error_code": "REPLY_NOT_FOUND", "message": str(e)}), 404
