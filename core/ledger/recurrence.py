"""
반복 거래 전개

기준일과 반복 주기로 할부 만기일 목록을 계산하는 순수 함수.

k번째 날짜 = 기준일 + k × 단위 (k = 1..count)
항상 기준일에서 직접 계산하므로 월말 보정이 누적되지 않는다.
월/연 단위는 dateutil.relativedelta 규칙(월말 clamp)을 따른다:
    2025-01-31 + 1개월 = 2025-02-28
    2025-01-31 + 2개월 = 2025-03-31
    2024-02-29 + 1년   = 2025-02-28
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from core.constants import Defaults
from core.ledger.types import RecurrenceKind


# 주기별 1단위 오프셋
_UNITS: dict[RecurrenceKind, relativedelta | timedelta] = {
    RecurrenceKind.DAILY: timedelta(days=1),
    RecurrenceKind.WEEKLY: timedelta(days=7),
    RecurrenceKind.BIWEEKLY: timedelta(days=15),
    RecurrenceKind.MONTHLY: relativedelta(months=1),
    RecurrenceKind.BIMONTHLY: relativedelta(months=2),
    RecurrenceKind.QUARTERLY: relativedelta(months=3),
    RecurrenceKind.SEMIANNUAL: relativedelta(months=6),
    RecurrenceKind.ANNUAL: relativedelta(years=1),
}


def expand(
    base_date: date,
    recurrence: RecurrenceKind | str,
    count: int = Defaults.INSTALLMENT_COUNT,
) -> list[date]:
    """할부 만기일 목록 계산

    Args:
        base_date: 시리즈 루트의 만기일
        recurrence: 반복 주기
        count: 생성할 날짜 수

    Returns:
        base_date 이후의 날짜 count개 (오름차순). recurrence=none이면 빈 목록.

    Raises:
        ValueError: count가 음수인 경우
    """
    recurrence = RecurrenceKind(recurrence)
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if recurrence == RecurrenceKind.NONE:
        return []

    unit = _UNITS[recurrence]
    return [base_date + unit * k for k in range(1, count + 1)]


def installment_label(description: str, index: int, total: int) -> str:
    """할부 설명 라벨 생성

    Example:
        >>> installment_label("Aluguel", 2, 4)
        'Aluguel (2/4)'
    """
    return f"{description} ({index}/{total})"
