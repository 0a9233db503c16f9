# app/core/config.py

import os # 'os' 모듈: 환경 변수를 읽기 위해 사용합니다.

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명에 사용되는 비밀 키입니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # 외부 콘텐츠 검수(모더레이션) 서비스
    MODERATION_API_URL = os.getenv('MODERATION_API_URL')
    # 검수 결과 콜백(POST /api/posts/<id>/verification) 인증에 사용하는 공유 토큰
    MODERATION_CALLBACK_TOKEN = os.getenv('MODERATION_CALLBACK_TOKEN')
    MODERATION_TIMEOUT_SECONDS = int(os.getenv('MODERATION_TIMEOUT_SECONDS', 10))

    # 외부 AI 챗봇 서비스
    CHATBOT_API_URL = os.getenv('CHATBOT_API_URL')
    CHATBOT_TIMEOUT_SECONDS = int(os.getenv('CHATBOT_TIMEOUT_SECONDS', 30))

    # 알림에 저장되는 요약 텍스트(댓글 내용 등)의 최대 길이
    NOTIFICATION_SUMMARY_LENGTH = int(os.getenv('NOTIFICATION_SUMMARY_LENGTH', 50))

    # 피드 조회 시 기본 반경(km)과 구독 태그 알림의 기본 반경(km)
    DEFAULT_RADIUS_KM = float(os.getenv('DEFAULT_RADIUS_KM', 5))
    TAG_MATCH_RADIUS_KM = float(os.getenv('TAG_MATCH_RADIUS_KM', 10))

    # 게시물 노출 시간(시간 단위) 허용 범위
    POST_MIN_DURATION_HOURS = 1
    POST_MAX_DURATION_HOURS = 24

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')

class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

# FLASK_ENV 값에 따라 create_app에서 적절한 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
