"""
잔액 조정 계산기

거래의 정산 상태 변화로부터 계좌별 잔액 증감(delta)을 계산하는 순수 함수 모음.
DB에 접근하지 않으며, 엔진이 같은 작업 단위 안에서 결과를 반영한다.

정산(settled) = status == paid 이고 payment_date가 있음.
reversed는 정산되지 않은 상태로 취급.

효과 규칙:
- income:   source +amount
- expense:  source -amount
- transfer: source -amount, destination +amount
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from core.domain.errors import ValidationFailed
from core.ledger.types import TransactionKind, TransactionStatus

if TYPE_CHECKING:
    from core.ledger.models import Transaction


@dataclass(frozen=True)
class Settlement:
    """잔액 계산에 필요한 거래 값 스냅샷"""

    kind: TransactionKind
    amount: Decimal
    source_account_id: int
    destination_account_id: int | None
    status: TransactionStatus
    payment_date: date | None

    @property
    def is_settled(self) -> bool:
        return self.status == TransactionStatus.PAID and self.payment_date is not None

    @property
    def balance_key(self) -> tuple:
        """잔액에 영향을 주는 값 (같으면 재계산 불필요)"""
        return (self.kind, self.amount, self.source_account_id, self.destination_account_id)

    @classmethod
    def from_transaction(cls, txn: Transaction) -> Settlement:
        return cls(
            kind=TransactionKind(txn.kind),
            amount=txn.amount,
            source_account_id=txn.source_account_id,
            destination_account_id=txn.destination_account_id,
            status=TransactionStatus(txn.status),
            payment_date=txn.payment_date,
        )


@dataclass(frozen=True)
class BalanceDelta:
    """계좌 잔액 증감"""

    account_id: int
    amount: Decimal


def settlement_effect(snapshot: Settlement) -> list[BalanceDelta]:
    """정산될 때의 잔액 효과

    Raises:
        ValidationFailed: 이체인데 입금 계좌가 없는 경우
    """
    if snapshot.kind == TransactionKind.INCOME:
        return [BalanceDelta(snapshot.source_account_id, snapshot.amount)]
    if snapshot.kind == TransactionKind.EXPENSE:
        return [BalanceDelta(snapshot.source_account_id, -snapshot.amount)]

    if snapshot.destination_account_id is None:
        raise ValidationFailed.for_field("destination_account_id", "required for transfers")
    return [
        BalanceDelta(snapshot.source_account_id, -snapshot.amount),
        BalanceDelta(snapshot.destination_account_id, snapshot.amount),
    ]


def reverse_effect(snapshot: Settlement) -> list[BalanceDelta]:
    """정산 해제 시 잔액 효과 (정산 효과의 정확한 역)"""
    return [BalanceDelta(d.account_id, -d.amount) for d in settlement_effect(snapshot)]


def combine(deltas: Iterable[BalanceDelta]) -> list[BalanceDelta]:
    """계좌별 합산 후 0인 항목 제거 (첫 등장 순서 유지)"""
    totals: OrderedDict[int, Decimal] = OrderedDict()
    for delta in deltas:
        totals[delta.account_id] = totals.get(delta.account_id, Decimal("0")) + delta.amount
    return [BalanceDelta(account_id, amount) for account_id, amount in totals.items() if amount != 0]


def reconcile(before: Settlement | None, after: Settlement | None) -> list[BalanceDelta]:
    """상태 변화에 필요한 잔액 증감 계산

    Args:
        before: 변경 전 저장된 값 (생성이면 None)
        after: 변경 후 값 (삭제면 None)

    Returns:
        계좌별 순 증감 목록 (증감이 없으면 빈 목록)

    규칙:
    - 미정산 → 정산: after의 효과
    - 정산 → 미정산: before(이전 저장 값)의 역효과
    - 정산 → 정산, 금액/계좌/유형 변경: before 역효과 + after 효과
    - 그 외: 변화 없음
    """
    was_settled = before is not None and before.is_settled
    is_settled = after is not None and after.is_settled

    if was_settled and is_settled and before.balance_key == after.balance_key:
        return []

    deltas: list[BalanceDelta] = []
    if was_settled:
        deltas.extend(reverse_effect(before))
    if is_settled:
        deltas.extend(settlement_effect(after))
    return combine(deltas)
