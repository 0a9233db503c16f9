# app/utils/test_datetime_utils.py
"""
시간 관리 유틸리티 기능 테스트

사용법: python -m pytest app/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from app.utils.datetime_utils import DateTimeUtils

def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함

    # +09:00 은 UTC 01:30 으로 변환
    assert DateTimeUtils.parse_iso_datetime("2024-01-15T10:30:00+09:00").hour == 1

def test_to_iso_string():
    dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T10:30:00Z"

def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'timestamp': datetime(2024, 1, 15, 10, 30),
        'nested': {
            'created_at': datetime(2023, 12, 25, 9, 0)
        },
        'list_data': [
            {'created_at': datetime(2024, 1, 1)}
        ],
        'title': 'unchanged'
    }

    converted = DateTimeUtils.for_firestore(test_data)

    # 모든 datetime은 timezone-aware여야 함
    assert converted['timestamp'].tzinfo == timezone.utc
    assert converted['nested']['created_at'].tzinfo == timezone.utc
    assert converted['list_data'][0]['created_at'].tzinfo == timezone.utc
    assert converted['title'] == 'unchanged'

def test_expires_at_and_is_expired():
    created_at = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    expires_at = DateTimeUtils.expires_at(created_at, 12)

    assert expires_at == datetime(2024, 1, 15, 22, 0, tzinfo=timezone.utc)
    assert not DateTimeUtils.is_expired(expires_at, now=created_at + timedelta(hours=11))
    assert DateTimeUtils.is_expired(expires_at, now=created_at + timedelta(hours=12))

@pytest.mark.parametrize("remaining, expected", [
    (timedelta(days=1, hours=2, minutes=5), "1d 2h"),
    (timedelta(hours=3, minutes=4, seconds=30), "3h 4m"),
    (timedelta(minutes=5, seconds=6), "5m 6s"),
    (timedelta(seconds=7), "7s"),
    (timedelta(seconds=0), "expired"),
    (timedelta(minutes=-1), "expired"),
])
def test_format_time_remaining(remaining, expected):
    now = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert DateTimeUtils.format_time_remaining(now + remaining, now=now) == expected

def test_error_handling():
    """오류 처리 테스트"""
    # 잘못된 ISO 포맷
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    # 빈 문자열
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")
