"""
State Machines

거래(Transaction) 상태 전이 관리.

거래 상태 전이:
- pending → paid: 지급 (지급일 설정, 잔액 반영)
- pending → late: 만기 경과 자동 분류 (잔액 변화 없음)
- late → paid: 연체 거래 지급
- pending/late → cancelled: 취소 (잔액 변화 없음)
- paid → reversed: 지급 취소 (잔액 역반영)

reversed, cancelled는 종료 상태.
"""

from enum import Enum

from core.domain.errors import InvalidStatusTransition


TRANSACTION_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("paid", "late", "cancelled"),
    "late": ("paid", "cancelled"),
    "paid": ("reversed",),
}

TERMINAL_STATUSES = frozenset({"cancelled", "reversed"})
OPEN_STATUSES = frozenset({"pending", "late"})


def _value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else status


def allowed_transitions(status: str | Enum) -> list[str]:
    """현재 상태에서 전이 가능한 상태 목록"""
    return list(TRANSACTION_TRANSITIONS.get(_value(status), ()))


def can_transition(from_status: str | Enum, to_status: str | Enum) -> bool:
    """전이 가능 여부"""
    return _value(to_status) in TRANSACTION_TRANSITIONS.get(_value(from_status), ())


def check_status_transition(
    from_status: str | Enum,
    to_status: str | Enum,
) -> None:
    """거래 상태 전이 검증

    같은 상태로의 전이는 변경 없음으로 간주하여 허용.

    Raises:
        InvalidStatusTransition: 허용되지 않은 전이
    """
    source, target = _value(from_status), _value(to_status)
    if source == target:
        return
    if not can_transition(source, target):
        raise InvalidStatusTransition(source, target, allowed_transitions(source))
