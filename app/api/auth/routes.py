# app/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity
)
from marshmallow import ValidationError

from app.api.auth.schemas import FirebaseLoginSchema, LogoutRequestSchema

auth_bp = Blueprint('auth_bp', __name__)

@auth_bp.route('/firebase', methods=['POST'])
def firebase_login():
    """Firebase ID 토큰으로 로그인(및 최초 가입)을 처리하는 엔드포인트입니다."""
    auth_service = current_app.services['auth']
    try:
        data = FirebaseLoginSchema().load(request.get_json() or {})
        claims = auth_service.verify_firebase_token(data['id_token'])
        user, is_new_user = auth_service.get_or_create_user(claims)

        identity = user['user_id']
        return jsonify({
            "access_token": create_access_token(identity=identity),
            "refresh_token": create_refresh_token(identity=identity),
            "user_id": identity,
            "is_new_user": is_new_user,
            "user_info": {
                "user_id": identity,
                "email": user.get('email'),
                "display_name": user.get('display_name'),
                "photo_url": user.get('photo_url')
            }
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_ID_TOKEN", "message": str(e)}), 401
    except Exception as e:
        logging.error(f"로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    return jsonify(access_token=create_access_token(identity=current_user_id)), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """로그아웃. 전달받은 Access/Refresh 토큰을 무효화 목록에 추가합니다."""
    auth_service = current_app.services['auth']
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})
        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # 만료된 토큰도 무효화할 수 있도록 만료 검증은 생략합니다.
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.logout_user(decoded_access['jti'], decoded_access['exp'], decoded_refresh['jti'], decoded_refresh['exp'])
        return jsonify({"message": "로그아웃 되었습니다."}), 200
    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"JWT 해독 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "유효하지 않은 토큰입니다."}), 422
    except Exception as e:
        logging.error(f"로그아웃 처리 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "로그아웃 처리 중 오류가 발생했습니다."}), 500
