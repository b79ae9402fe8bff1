"""
시간 유틸리티

내부 저장: UTC 원칙. 감사 타임스탬프는 UTC ISO-8601,
업무 날짜(발행일/만기일/지급일)는 시간대 없는 달력 날짜(YYYY-MM-DD).
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """현재 UTC 시각"""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """현재 UTC 시각 ISO 문자열 (created_at/updated_at 저장용)"""
    return utc_now().isoformat()


def parse_date(value: str | date | None) -> date | None:
    """DB에 저장된 ISO 날짜 문자열을 date로 변환

    Example:
        >>> parse_date("2025-01-31")
        datetime.date(2025, 1, 31)
    """
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def format_date(value: date | None) -> str | None:
    """date를 ISO 문자열로 변환 (None은 그대로)"""
    if value is None:
        return None
    return value.isoformat()
