"""
원장 리포트

읽기 전용 집계: 기간 요약(대시보드)과 잔액 감사.
쓰기 작업 단위와 분리된 연결(읽기 전용 어댑터)로 실행해도 된다.

금액 합계는 SQL SUM(부동소수점) 대신 Python Decimal로 계산한다.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from core.config.loader import LedgerConfig
from core.constants import SummaryPeriods
from core.domain.errors import ValidationFailed
from core.ledger.models import (
    Account,
    BalanceDrift,
    BalancePoint,
    CategoryTotal,
    LedgerSummary,
    Transaction,
)
from core.ledger.reconciler import Settlement, settlement_effect
from core.ledger.types import TransactionKind, TransactionStatus
from core.utils.timezone import parse_date

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class LedgerReports:
    """원장 리포트

    Args:
        db: SQLite 어댑터 (읽기 전용 가능)
        config: 원장 설정
        today: 오늘 날짜 함수
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        config: LedgerConfig | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.db = db
        self.config = config or LedgerConfig()
        self._today = today or date.today

    async def summary_for_days(self, tenant_id: int, days: int) -> LedgerSummary:
        """오늘로 끝나는 최근 N일 요약

        Args:
            days: 7, 30, 90, 180, 365 중 하나

        Raises:
            ValidationFailed: 허용되지 않은 기간
        """
        if days not in SummaryPeriods.ALLOWED_DAYS:
            raise ValidationFailed.for_field(
                "days", f"must be one of {list(SummaryPeriods.ALLOWED_DAYS)}"
            )
        today = self._today()
        return await self.summary(tenant_id, today - timedelta(days=days - 1), today, today)

    async def summary(
        self,
        tenant_id: int,
        period_start: date,
        period_end: date,
        as_of: date | None = None,
    ) -> LedgerSummary:
        """기간 요약

        - total_balance: 활성 계좌 현재 잔액 합계
        - 기간 내 정산된 수입/지출 합계 (카테고리별)
        - 미수/미지급: 만기일 >= as_of 인 pending 수입/지출
        - 연체 지급: 만기일 < as_of 인 pending/late 지출
        - 일별 잔액: 기초 잔액(기간 시작일 이전 생성 계좌의 초기 잔액 +
          시작일 이전 정산분)에 일별 정산 효과 누적

        잔액, 기초 잔액, 수입/지출 합계는 모두 같은 활성 계좌 집합 기준.
        비활성(소프트 삭제) 계좌의 정산 효과는 제외되고, 활성/비활성 계좌 간
        이체는 활성 쪽 효과만 반영된다.

        Args:
            period_start: 기간 시작일 (포함)
            period_end: 기간 종료일 (포함)
            as_of: 미수/연체 판단 기준일 (None이면 오늘)
        """
        if period_start > period_end:
            raise ValidationFailed.for_field("period_start", "must not be after period_end")
        if (period_end - period_start).days > SummaryPeriods.MAX_SPAN_DAYS:
            raise ValidationFailed.for_field(
                "period_end", f"period longer than {SummaryPeriods.MAX_SPAN_DAYS} days"
            )
        as_of = as_of or self._today()

        accounts = await self._active_accounts(tenant_id)
        total_balance = sum((a.current_balance for a in accounts), ZERO)
        active_ids = {a.id for a in accounts}

        # 정산 거래 (기간 종료일까지). 합계와 잔액 흐름은 모두 활성 계좌 기준
        settled = [
            r for r in await self._settled_rows(tenant_id, period_end)
            if r["source_account_id"] in active_ids or r["destination_account_id"] in active_ids
        ]
        for row in settled:
            row["net"] = self._net_effect(row, active_ids)

        in_period = [r for r in settled if period_start <= r["payment_date"] <= period_end]
        income_rows = [r for r in in_period if r["kind"] == TransactionKind.INCOME.value]
        expense_rows = [r for r in in_period if r["kind"] == TransactionKind.EXPENSE.value]

        # 미결제
        receivables = await self._open_rows(tenant_id, TransactionKind.INCOME, due_from=as_of)
        payables = await self._open_rows(tenant_id, TransactionKind.EXPENSE, due_from=as_of)
        overdue = await self._open_rows(
            tenant_id, TransactionKind.EXPENSE, due_before=as_of, include_late=True
        )

        opening = self._opening_balance(accounts, settled, period_start)
        series = self._balance_series(opening, in_period, period_start, period_end)

        return LedgerSummary(
            period_start=period_start,
            period_end=period_end,
            total_balance=total_balance,
            accounts=accounts,
            income_total=sum((r["amount"] for r in income_rows), ZERO),
            expense_total=sum((r["amount"] for r in expense_rows), ZERO),
            income_by_category=self._by_category(income_rows),
            expense_by_category=self._by_category(expense_rows),
            receivables_total=sum((r["amount"] for r in receivables), ZERO),
            receivables_count=len(receivables),
            payables_total=sum((r["amount"] for r in payables), ZERO),
            payables_count=len(payables),
            overdue_payables_total=sum((r["amount"] for r in overdue), ZERO),
            overdue_payables_count=len(overdue),
            opening_balance=opening,
            balance_series=series,
            recent_transactions=await self._recent(tenant_id, period_start, period_end),
        )

    async def audit_balances(self, tenant_id: int) -> list[BalanceDrift]:
        """저장 잔액 검증

        모든 계좌의 기대 잔액을 처음부터 재계산
        (초기 잔액 + 정산된 모든 거래 효과)하여 저장 잔액과 다른 계좌를 반환.
        """
        rows = await self.db.fetchall_dict(
            "SELECT * FROM accounts WHERE tenant_id = ? ORDER BY id",
            (tenant_id,),
        )
        accounts = [Account.from_row(r) for r in rows]
        expected = {a.id: a.initial_balance for a in accounts}

        txn_rows = await self.db.fetchall_dict(
            """
            SELECT * FROM transactions
            WHERE tenant_id = ? AND status = ? AND payment_date IS NOT NULL
            """,
            (tenant_id, TransactionStatus.PAID.value),
        )
        for row in txn_rows:
            txn = Transaction.from_row(row)
            for delta in settlement_effect(Settlement.from_transaction(txn)):
                expected[delta.account_id] = expected.get(delta.account_id, ZERO) + delta.amount

        drifts = [
            BalanceDrift(
                account_id=a.id,
                name=a.name,
                recorded=a.current_balance,
                expected=expected[a.id],
            )
            for a in accounts
            if a.current_balance != expected[a.id]
        ]
        if drifts:
            logger.warning(
                f"잔액 불일치 {len(drifts)}건",
                extra={"tenant_id": tenant_id, "account_ids": [d.account_id for d in drifts]},
            )
        return drifts

    # -------------------------------------------------------------------------
    # 내부 조회
    # -------------------------------------------------------------------------

    async def _active_accounts(self, tenant_id: int) -> list[Account]:
        rows = await self.db.fetchall_dict(
            "SELECT * FROM accounts WHERE tenant_id = ? AND is_active = 1 ORDER BY name, id",
            (tenant_id,),
        )
        return [Account.from_row(r) for r in rows]

    async def _settled_rows(
        self,
        tenant_id: int,
        until: date,
    ) -> list[dict[str, Any]]:
        """until까지 정산된 거래 (카테고리 이름/색상 포함)"""
        rows = await self.db.fetchall_dict(
            """
            SELECT t.kind, t.amount, t.payment_date, t.category_id,
                   t.source_account_id, t.destination_account_id,
                   c.name AS category_name, c.color AS category_color
            FROM transactions t
            LEFT JOIN categories c ON c.id = t.category_id AND c.tenant_id = t.tenant_id
            WHERE t.tenant_id = ?
              AND t.status = ?
              AND t.payment_date IS NOT NULL
              AND t.payment_date <= ?
            """,
            (tenant_id, TransactionStatus.PAID.value, until.isoformat()),
        )
        for row in rows:
            row["amount"] = Decimal(row["amount"])
            row["payment_date"] = parse_date(row["payment_date"])
        return rows

    async def _open_rows(
        self,
        tenant_id: int,
        kind: TransactionKind,
        due_from: date | None = None,
        due_before: date | None = None,
        include_late: bool = False,
    ) -> list[dict[str, Any]]:
        """미결제 거래 (pending, 선택적으로 late 포함)"""
        statuses = [TransactionStatus.PENDING.value]
        if include_late:
            statuses.append(TransactionStatus.LATE.value)

        sql = (
            "SELECT amount, due_date FROM transactions "
            f"WHERE tenant_id = ? AND kind = ? AND status IN ({', '.join('?' for _ in statuses)})"
        )
        params: list[Any] = [tenant_id, kind.value, *statuses]
        if due_from is not None:
            sql += " AND due_date >= ?"
            params.append(due_from.isoformat())
        if due_before is not None:
            sql += " AND due_date < ?"
            params.append(due_before.isoformat())

        rows = await self.db.fetchall_dict(sql, tuple(params))
        for row in rows:
            row["amount"] = Decimal(row["amount"])
        return rows

    async def _recent(
        self,
        tenant_id: int,
        period_start: date,
        period_end: date,
    ) -> list[Transaction]:
        """기간 내 만기 또는 지급된 최근 생성 거래"""
        start, end = period_start.isoformat(), period_end.isoformat()
        rows = await self.db.fetchall_dict(
            """
            SELECT t.*,
                   sa.name AS source_account_name,
                   c.name  AS category_name
            FROM transactions t
            LEFT JOIN accounts sa ON sa.id = t.source_account_id AND sa.tenant_id = t.tenant_id
            LEFT JOIN categories c ON c.id = t.category_id AND c.tenant_id = t.tenant_id
            WHERE t.tenant_id = ?
              AND ((t.due_date BETWEEN ? AND ?) OR (t.payment_date BETWEEN ? AND ?))
            ORDER BY t.created_at DESC, t.id DESC
            LIMIT ?
            """,
            (tenant_id, start, end, start, end, self.config.recent_transactions_limit),
        )
        return [Transaction.from_row(r) for r in rows]

    # -------------------------------------------------------------------------
    # 계산
    # -------------------------------------------------------------------------

    @staticmethod
    def _opening_balance(
        accounts: list[Account],
        settled: list[dict[str, Any]],
        period_start: date,
    ) -> Decimal:
        """기초 잔액

        기간 시작일 이전(당일 포함) 생성된 활성 계좌의 초기 잔액
        + 시작일 이전 정산 거래의 활성 계좌 순효과.
        """
        start_iso = period_start.isoformat()
        opening = sum(
            (a.initial_balance for a in accounts if (a.created_at or "")[:10] <= start_iso),
            ZERO,
        )
        for row in settled:
            if row["payment_date"] < period_start:
                opening += row["net"]
        return opening

    @staticmethod
    def _net_effect(row: dict[str, Any], active_ids: set[int]) -> Decimal:
        """활성 계좌 집합에 대한 정산 순효과 (활성 계좌 간 이체는 0)"""
        amount = row["amount"]
        net = ZERO
        if row["source_account_id"] in active_ids:
            net += amount if row["kind"] == TransactionKind.INCOME.value else -amount
        if row["kind"] == TransactionKind.TRANSFER.value and row["destination_account_id"] in active_ids:
            net += amount
        return net

    @staticmethod
    def _balance_series(
        opening: Decimal,
        in_period: list[dict[str, Any]],
        period_start: date,
        period_end: date,
    ) -> list[BalancePoint]:
        income: dict[date, Decimal] = defaultdict(lambda: ZERO)
        expense: dict[date, Decimal] = defaultdict(lambda: ZERO)
        net: dict[date, Decimal] = defaultdict(lambda: ZERO)
        for row in in_period:
            day = row["payment_date"]
            net[day] += row["net"]
            if row["kind"] == TransactionKind.INCOME.value:
                income[day] += row["amount"]
            elif row["kind"] == TransactionKind.EXPENSE.value:
                expense[day] += row["amount"]

        series: list[BalancePoint] = []
        balance = opening
        day = period_start
        while day <= period_end:
            balance += net[day]
            series.append(
                BalancePoint(day=day, income=income[day], expense=expense[day], balance=balance)
            )
            day += timedelta(days=1)
        return series

    @staticmethod
    def _by_category(rows: list[dict[str, Any]]) -> list[CategoryTotal]:
        """카테고리별 합계 (미분류 제외, 금액 내림차순)"""
        totals: dict[int, CategoryTotal] = {}
        for row in rows:
            category_id = row["category_id"]
            if category_id is None:
                continue
            entry = totals.get(category_id)
            if entry is None:
                entry = CategoryTotal(
                    category_id=category_id,
                    name=row["category_name"],
                    color=row["category_color"],
                    total=ZERO,
                )
                totals[category_id] = entry
            entry.total += row["amount"]
        return sorted(totals.values(), key=lambda c: (-c.total, c.category_id))
