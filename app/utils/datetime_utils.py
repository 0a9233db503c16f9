# app/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간 처리를 위한 유틸리티 모듈

- 모든 시간은 UTC timezone-aware datetime으로 다룹니다.
- Firestore 저장/조회 시의 변환을 한 곳에서 처리합니다.
- 게시물 만료 시각과 남은 시간 표시를 계산합니다.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """timezone-naive이면 UTC로 간주하고, aware이면 UTC로 변환"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")
            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'
            dt = dateutil_parser.isoparse(iso_string)
            return DateTimeUtils.ensure_utc(dt)
        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 'Z' 접미사가 붙은 ISO 포맷 문자열로 변환"""
        return DateTimeUtils.ensure_utc(dt).isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 dict/list 내부의 datetime을 UTC aware로 재귀 변환
        """
        if isinstance(obj, datetime):
            return DateTimeUtils.ensure_utc(obj)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Firestore에서 읽은 데이터의 timestamp 값을 UTC datetime으로 재귀 변환
        """
        try:
            if isinstance(obj, datetime):
                return DateTimeUtils.ensure_utc(obj)
            elif hasattr(obj, 'timestamp') and callable(obj.timestamp):
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
            elif isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item) for item in obj]
            return obj
        except Exception as e:
            # 변환 실패 시 원본 객체 반환 (로그만 남김)
            logger.error(f"Firestore 읽기 변환 실패: {obj} ({type(obj)}) - {e}")
            return obj

    @staticmethod
    def expires_at(created_at: datetime, duration_hours: int) -> datetime:
        """게시물 생성 시각과 노출 시간으로 만료 시각을 계산"""
        return DateTimeUtils.ensure_utc(created_at) + timedelta(hours=duration_hours)

    @staticmethod
    def is_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
        now = now or DateTimeUtils.now()
        return DateTimeUtils.ensure_utc(expires_at) <= now

    @staticmethod
    def format_time_remaining(expires_at: datetime, now: Optional[datetime] = None) -> str:
        """
        만료까지 남은 시간을 가장 큰 두 단위로 표시합니다.
        예) '1d 2h', '3h 4m', '5m 6s', '7s', 만료 시 'expired'
        """
        now = now or DateTimeUtils.now()
        diff = int((DateTimeUtils.ensure_utc(expires_at) - now).total_seconds())
        if diff <= 0:
            return "expired"

        days, rest = divmod(diff, 86400)
        hours, rest = divmod(rest, 3600)
        minutes, seconds = divmod(rest, 60)
        if days > 0:
            return f"{days}d {hours}h"
        if hours > 0:
            return f"{hours}h {minutes}m"
        if minutes > 0:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"


# 편의를 위한 글로벌 함수들
def now() -> datetime:
    """현재 UTC 시간 반환"""
    return DateTimeUtils.now()

def parse_iso(iso_string: str) -> datetime:
    """ISO 문자열을 datetime으로 파싱"""
    return DateTimeUtils.parse_iso_datetime(iso_string)

def to_iso(dt: datetime) -> str:
    """datetime을 ISO 문자열로 변환"""
    return DateTimeUtils.to_iso_string(dt)

def for_firestore(obj: Any) -> Any:
    """Firestore 저장용 변환"""
    return DateTimeUtils.for_firestore(obj)

def from_firestore(obj: Any) -> Any:
    """Firestore 읽기용 변환"""
    return DateTimeUtils.from_firestore(obj)
