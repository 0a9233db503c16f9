# app/api/notifications/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from app.api.notifications.schemas import NotificationResponseSchema

notifications_bp = Blueprint('notifications_bp', __name__)

MAX_PAGE_SIZE = 100

@notifications_bp.route('', methods=['GET'])
@jwt_required()
def get_notifications():
    """내 알림 목록을 최신순으로 페이지네이션 조회합니다."""
    notification_service = current_app.services['notifications']
    user_id = get_jwt_identity()
    limit = request.args.get('limit', 20, type=int)
    cursor = request.args.get('cursor', None, type=str)
    if limit is None or not 1 <= limit <= MAX_PAGE_SIZE:
        return jsonify({"error_code": "INVALID_PARAMETERS", "message": f"'limit'는 1에서 {MAX_PAGE_SIZE} 사이여야 합니다."}), 400
    try:
        notifications, next_cursor = notification_service.get_notifications(user_id, limit, cursor)
        return jsonify({
            "notifications": NotificationResponseSchema(many=True).dump(notifications),
            "next_cursor": next_cursor
        }), 200
    except Exception as e:
        logging.error(f"알림 목록 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "알림 목록 조회 중 오류가 발생했습니다."}), 500


@notifications_bp.route('/unread-count', methods=['GET'])
@jwt_required()
def get_unread_count():
    """읽지 않은 알림 수를 다시 계산하여 반환합니다."""
    notification_service = current_app.services['notifications']
    unread = notification_service.recompute_unread_count(get_jwt_identity())
    return jsonify({"unread_count": unread}), 200


@notifications_bp.route('/<string:notification_id>/read', methods=['POST'])
@jwt_required()
def mark_notification_read(notification_id: str):
    notification_service = current_app.services['notifications']
    try:
        unread = notification_service.mark_as_read(get_jwt_identity(), notification_id)
        return jsonify({"unread_count": unread}), 200
    except ValueError as e:
        return jsonify({"error_code": "NOTIFICATION_NOT_FOUND", "message": str(e)}), 404


@notifications_bp.route('/read-all', methods=['POST'])
@jwt_required()
def mark_all_notifications_read():
    notification_service = current_app.services['notifications']
    unread = notification_service.mark_all_as_read(get_jwt_identity())
    return jsonify({"unread_count": unread}), 200


@notifications_bp.route('/<string:notification_id>/open', methods=['POST'])
@jwt_required()
def open_notification(notification_id: str):
    """
    알림을 눌렀을 때 호출합니다.
    알림을 읽음 처리한 뒤 삭제하고, 이동할 게시물 ID를 반환합니다.
    """
    notification_service = current_app.services['notifications']
    try:
        post_id = notification_service.open_notification(get_jwt_identity(), notification_id)
        return jsonify({"post_id": post_id}), 200
    except ValueError as e:
        return jsonify({"error_code": "NOTIFICATION_NOT_FOUND", "message": str(e)}), 404


@notifications_bp.route('/<string:notification_id>', methods=['DELETE'])
@jwt_required()
def delete_notification(notification_id: str):
    notification_service = current_app.services['notifications']
    try:
        unread = notification_service.delete_notification(get_jwt_identity(), notification_id)
        return jsonify({"unread_count": unread}), 200
    except ValueError as e:
        return jsonify({"error_code": "NOTIFICATION_NOT_FOUND", "message": str(e)}), 404


@notifications_bp.route('', methods=['DELETE'])
@jwt_required()
def delete_all_notifications():
    """내 알림을 모두 삭제합니다."""
    notification_service = current_app.services['notifications']
    user_id = get_jwt_identity()
    try:
        deleted = notification_service.delete_all_notifications(user_id)
        return jsonify({"deleted": deleted, "unread_count": 0}), 200
    except Exception as e:
        logging.error(f"알림 전체 삭제 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "NOTIFICATION_DELETION_FAILED", "message": "알림 삭제 중 오류가 발생했습니다."}), 500
