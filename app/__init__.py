# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from app.core.config import config_by_name

# - API 블루프린트
from app.api.auth.routes import auth_bp
from app.api.uploads.routes import uploads_bp
from app.api.users.routes import users_bp
from app.api.posts.routes import posts_bp
from app.api.comments.routes import comments_bp
from app.api.notifications.routes import notifications_bp
from app.api.chats.routes import chats_bp
from app.api.aichat.routes import aichat_bp

# - 서비스 모듈
from app.services import storage_service as storage_service_module
from app.services import notification_service as notification_service_module
from app.services import moderation_service as moderation_service_module
from app.services import chatbot_service as chatbot_service_module
from app.services.mention_service import DirectoryService
from app.api.auth import services as auth_service_module
from app.api.users import services as user_service_module
from app.api.posts import services as post_service_module
from app.api.comments import services as comment_service_module
from app.api.chats import services as chat_service_module

def create_app(config_name=None, db=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (기본값: FLASK_ENV)
    :param db: Firestore 클라이언트. 주입하면 Firebase 초기화와 Storage 버킷 연결을 건너뜁니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    jwt = JWTManager(app)

    if db is None and not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred, {
            'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
        })

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용/핵심 서비스 먼저 생성
    storage_instance = storage_service_module.StorageService()
    if db is None:
        try:
            storage_instance.init_app(app)
            logging.info("Storage service initialized successfully")
        except Exception as e:
            logging.error(f"Failed to initialize storage service: {e}")
            raise
    app.services['storage'] = storage_instance

    moderation_instance = moderation_service_module.ModerationService()
    moderation_instance.init_app(app)
    app.services['moderation'] = moderation_instance

    chatbot_instance = chatbot_service_module.ChatbotService()
    chatbot_instance.init_app(app)
    app.services['chatbot'] = chatbot_instance

    app.services['notifications'] = notification_service_module.NotificationService(
        db=db, summary_length=app.config['NOTIFICATION_SUMMARY_LENGTH']
    )
    app.services['directory'] = DirectoryService(db=db)

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['auth'] = auth_service_module.AuthService(db=db)
    app.services['users'] = user_service_module.UserService(
        directory_service=app.services['directory'], db=db
    )
    app.services['posts'] = post_service_module.PostService(
        notification_service=app.services['notifications'],
        directory_service=app.services['directory'],
        moderation_service=app.services['moderation'],
        storage_service=app.services['storage'],
        db=db,
        tag_match_radius_km=app.config['TAG_MATCH_RADIUS_KM']
    )
    app.services['comments'] = comment_service_module.CommentService(
        notification_service=app.services['notifications'],
        directory_service=app.services['directory'],
        db=db
    )
    app.services['chats'] = chat_service_module.ChatService(db=db)

    # - 로그아웃된 토큰 차단
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return app.services['auth'].is_token_revoked(jwt_payload)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    # 댓글 API는 게시물 하위 경로를 사용합니다. (/api/posts/<post_id>/comments)
    app.register_blueprint(comments_bp, url_prefix='/api/posts')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(chats_bp, url_prefix='/api/chats')
    app.register_blueprint(aichat_bp, url_prefix='/api/aichat')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 404, 405 등 HTTP 예외는 그대로 반환
        if isinstance(err, HTTPException):
            return err
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
