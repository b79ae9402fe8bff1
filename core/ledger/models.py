"""
원장 도메인 모델

DB 행을 도메인 객체로 변환하는 dataclass 모음.
금액은 TEXT로 저장된 Decimal, 날짜는 ISO 문자열.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from core.ledger.types import (
    AccountKind,
    CategoryKind,
    RecurrenceKind,
    TransactionKind,
    TransactionStatus,
)
from core.utils.timezone import parse_date


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


@dataclass
class Account:
    """금융 계좌

    current_balance = initial_balance + Σ(정산된 거래 효과)
    """

    id: int
    tenant_id: int
    name: str
    kind: AccountKind
    initial_balance: Decimal
    current_balance: Decimal
    is_active: bool = True
    color: str | None = None
    bank_name: str | None = None
    branch: str | None = None
    account_number: str | None = None
    version: int = 1
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Account:
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            kind=AccountKind(row["kind"]),
            initial_balance=_decimal(row["initial_balance"]),
            current_balance=_decimal(row["current_balance"]),
            is_active=bool(row["is_active"]),
            color=row.get("color"),
            bank_name=row.get("bank_name"),
            branch=row.get("branch"),
            account_number=row.get("account_number"),
            version=row.get("version", 1),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Category:
    """거래 분류 (계층 구조)"""

    id: int
    tenant_id: int
    name: str
    kind: CategoryKind
    parent_id: int | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Category:
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            kind=CategoryKind(row["kind"]),
            parent_id=row.get("parent_id"),
            description=row.get("description"),
            color=row.get("color"),
            icon=row.get("icon"),
            is_active=bool(row["is_active"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class CostCenter:
    """비용 센터 태그"""

    id: int
    tenant_id: int
    name: str
    description: str | None = None
    color: str | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> CostCenter:
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row.get("description"),
            color=row.get("color"),
            is_active=bool(row["is_active"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Transaction:
    """거래 (수입/지출/이체)

    *_name 필드는 조회 시 JOIN으로 채워지는 표시용 값.
    """

    id: int
    tenant_id: int
    kind: TransactionKind
    description: str
    amount: Decimal
    issue_date: date
    due_date: date
    status: TransactionStatus
    source_account_id: int
    recurrence: RecurrenceKind = RecurrenceKind.NONE
    payment_date: date | None = None
    destination_account_id: int | None = None
    category_id: int | None = None
    cost_center_id: int | None = None
    parent_id: int | None = None
    document_number: str | None = None
    reconciled: bool = False
    notes: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    # 표시용 (JOIN)
    source_account_name: str | None = None
    destination_account_name: str | None = None
    category_name: str | None = None
    cost_center_name: str | None = None

    @property
    def is_settled(self) -> bool:
        """정산 여부 (paid + 지급일 존재)"""
        return self.status == TransactionStatus.PAID and self.payment_date is not None

    @property
    def is_root(self) -> bool:
        """할부 시리즈 루트 여부"""
        return self.parent_id is None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Transaction:
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            tenant_id=row["tenant_id"],
            kind=TransactionKind(row["kind"]),
            description=row["description"],
            amount=_decimal(row["amount"]),
            issue_date=parse_date(row["issue_date"]),
            due_date=parse_date(row["due_date"]),
            status=TransactionStatus(row["status"]),
            source_account_id=row["source_account_id"],
            recurrence=RecurrenceKind(row.get("recurrence") or "none"),
            payment_date=parse_date(row.get("payment_date")),
            destination_account_id=row.get("destination_account_id"),
            category_id=row.get("category_id"),
            cost_center_id=row.get("cost_center_id"),
            parent_id=row.get("parent_id"),
            document_number=row.get("document_number"),
            reconciled=bool(row.get("reconciled", 0)),
            notes=row.get("notes"),
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            source_account_name=row.get("source_account_name"),
            destination_account_name=row.get("destination_account_name"),
            category_name=row.get("category_name"),
            cost_center_name=row.get("cost_center_name"),
        )


# =============================================================================
# 연산 결과
# =============================================================================


@dataclass
class DeleteOutcome:
    """삭제 결과 (참조 중이면 비활성화, 아니면 완전 삭제)"""

    entity_id: int
    hard_deleted: bool

    @property
    def soft_deleted(self) -> bool:
        return not self.hard_deleted


@dataclass
class CreatedTransaction:
    """거래 생성 결과 (루트 + 생성된 할부)"""

    transaction: Transaction
    installments: list[Transaction] = field(default_factory=list)


@dataclass
class TransactionPage:
    """거래 목록 페이지"""

    items: list[Transaction]
    total: int
    limit: int
    offset: int

    @property
    def pages(self) -> int:
        """전체 페이지 수"""
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


@dataclass
class CategoryTotal:
    """카테고리별 합계"""

    category_id: int
    name: str
    color: str | None
    total: Decimal


@dataclass
class BalancePoint:
    """일별 잔액 시계열 항목"""

    day: date
    income: Decimal
    expense: Decimal
    balance: Decimal


@dataclass
class LedgerSummary:
    """기간 요약 (대시보드)"""

    period_start: date
    period_end: date
    total_balance: Decimal
    accounts: list[Account]
    income_total: Decimal
    expense_total: Decimal
    income_by_category: list[CategoryTotal]
    expense_by_category: list[CategoryTotal]
    receivables_total: Decimal
    receivables_count: int
    payables_total: Decimal
    payables_count: int
    overdue_payables_total: Decimal
    overdue_payables_count: int
    opening_balance: Decimal
    balance_series: list[BalancePoint]
    recent_transactions: list[Transaction]

    @property
    def net_result(self) -> Decimal:
        """기간 순이익 (수입 - 지출)"""
        return self.income_total - self.expense_total


@dataclass
class BalanceDrift:
    """저장 잔액과 재계산 잔액의 차이"""

    account_id: int
    name: str
    recorded: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.recorded - self.expected
