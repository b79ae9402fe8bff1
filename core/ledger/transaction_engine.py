"""
거래 엔진

거래 생성/수정/삭제/지급 처리와 계좌 잔액 반영을 하나의 작업 단위로 수행.

작업 단위(BEGIN IMMEDIATE ~ COMMIT) 안에서:
1. 참조 검증 조회 (계좌/카테고리/비용 센터, 모두 tenant_id 필터)
2. 거래 행 변경 (반복 거래는 할부 행 생성 포함)
3. reconciler가 계산한 계좌 잔액 증감 반영

어느 단계든 실패하면 전체 롤백 후 원래 예외를 그대로 던진다.

사용 예시:
```python
engine = TransactionEngine(db)
created = await engine.create(tenant_id, {
    "kind": "expense",
    "description": "Aluguel",
    "amount": "1200.00",
    "due_date": "2025-01-31",
    "recurrence": "monthly",
    "source_account_id": 1,
}, installment_count=3)

await engine.set_payment_status(tenant_id, created.transaction.id, {"pay": True})
```
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping

from core.config.loader import LedgerConfig
from core.constants import Money
from core.domain.errors import InvalidStatusTransition, NotFound, ValidationFailed
from core.domain.state_machines import check_status_transition
from core.ledger.account_store import AccountStore
from core.ledger.category_store import CategoryStore
from core.ledger.cost_center_store import CostCenterStore
from core.ledger.inputs import (
    PaymentRequest,
    TransactionCreate,
    TransactionFilter,
    TransactionUpdate,
    parse_input,
    transaction_rule_violations,
)
from core.ledger.models import CreatedTransaction, LedgerSummary, Transaction, TransactionPage
from core.ledger.reconciler import BalanceDelta, Settlement, combine, reconcile
from core.ledger.recurrence import expand, installment_label
from core.ledger.reports import LedgerReports
from core.ledger.types import (
    RecurrenceKind,
    TransactionKind,
    TransactionStatus,
    category_accepts,
)
from core.utils.timezone import utc_now_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


# 조회 시 계좌/카테고리/비용 센터 이름 JOIN
_SELECT_WITH_NAMES = """
    SELECT t.*,
           sa.name AS source_account_name,
           da.name AS destination_account_name,
           c.name  AS category_name,
           cc.name AS cost_center_name
    FROM transactions t
    LEFT JOIN accounts sa ON sa.id = t.source_account_id AND sa.tenant_id = t.tenant_id
    LEFT JOIN accounts da ON da.id = t.destination_account_id AND da.tenant_id = t.tenant_id
    LEFT JOIN categories c ON c.id = t.category_id AND c.tenant_id = t.tenant_id
    LEFT JOIN cost_centers cc ON cc.id = t.cost_center_id AND cc.tenant_id = t.tenant_id
"""

# 정렬 필드 → SQL 식 (허용 목록)
_SORT_COLUMNS: dict[str, str] = {
    "due_date": "t.due_date",
    "payment_date": "t.payment_date",
    "amount": "CAST(t.amount AS REAL)",
    "description": "t.description",
    "issue_date": "t.issue_date",
    "created_at": "t.created_at",
}

# 수정 시 존재/활성 검증이 필요한 참조 필드
_REFERENCE_FIELDS: tuple[str, ...] = (
    "source_account_id",
    "destination_account_id",
    "category_id",
    "cost_center_id",
)

# UPDATE 시 기록하는 컬럼 (순서 고정)
_MUTABLE_COLUMNS: tuple[str, ...] = (
    "kind",
    "description",
    "amount",
    "issue_date",
    "due_date",
    "payment_date",
    "status",
    "recurrence",
    "source_account_id",
    "destination_account_id",
    "category_id",
    "cost_center_id",
    "document_number",
    "reconciled",
    "notes",
)


def _to_db(value: Any) -> Any:
    """도메인 값을 DB 저장 값으로 변환"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value.quantize(Money.QUANTUM))
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class TransactionEngine:
    """거래 엔진

    Args:
        db: 쓰기용 SQLite 어댑터
        config: 원장 설정 (None이면 기본값)
        today: 오늘 날짜 함수 (지급일 기본값, 연체 분류, 요약 기간에 사용)
        reports_db: 리포트 조회용 어댑터 (None이면 db 사용)
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        config: LedgerConfig | None = None,
        today: Callable[[], date] | None = None,
        reports_db: SQLiteAdapter | None = None,
    ):
        self.db = db
        self.config = config or LedgerConfig()
        self._today = today or date.today

        self.accounts = AccountStore(db)
        self.categories = CategoryStore(db)
        self.cost_centers = CostCenterStore(db)
        self.reports = LedgerReports(reports_db or db, config=self.config, today=self._today)

    # =========================================================================
    # 생성
    # =========================================================================

    async def create(
        self,
        tenant_id: int,
        data: TransactionCreate | Mapping[str, Any],
        installment_count: int | None = None,
        actor_id: str | None = None,
    ) -> CreatedTransaction:
        """거래 생성

        recurrence ≠ none 이면 할부 N개를 함께 생성하고
        루트와 할부 설명에 "(i/N+1)"을 붙인다.
        루트가 정산 상태(paid + 지급일)로 생성되면 잔액에 반영한다.

        Args:
            tenant_id: 테넌트 ID
            data: 생성 입력
            installment_count: 할부 개수 (입력의 installment_count보다 우선)
            actor_id: 작업자 ID (감사 필드)

        Returns:
            CreatedTransaction (루트 + 할부 목록)

        Raises:
            ValidationFailed: 입력/규칙 위반, 카테고리 유형 불일치
            NotFound: 참조 엔티티가 테넌트에 없음
        """
        payload = parse_input(TransactionCreate, data)
        self._check_late(payload.status, payload.due_date)
        recurring = payload.recurrence != RecurrenceKind.NONE

        count = installment_count if installment_count is not None else payload.installment_count
        if count is None:
            count = self.config.default_installment_count
        if recurring and not 1 <= count <= self.config.max_installment_count:
            raise ValidationFailed.for_field(
                "installment_count",
                f"must be between 1 and {self.config.max_installment_count}",
            )

        total = count + 1 if recurring else 1
        fields: dict[str, Any] = {
            "kind": payload.kind,
            "description": (
                installment_label(payload.description, 1, total) if recurring else payload.description
            ),
            "amount": payload.amount,
            "issue_date": payload.issue_date,
            "due_date": payload.due_date,
            "payment_date": payload.payment_date,
            "status": payload.status,
            "recurrence": payload.recurrence,
            "source_account_id": payload.source_account_id,
            "destination_account_id": payload.destination_account_id,
            "category_id": payload.category_id,
            "cost_center_id": payload.cost_center_id,
            "parent_id": None,
            "document_number": payload.document_number,
            "reconciled": payload.reconciled,
            "notes": payload.notes,
        }

        async with self.db.transaction():
            await self._check_references(
                tenant_id,
                payload.kind,
                {name: fields[name] for name in _REFERENCE_FIELDS},
            )

            root_id = await self._insert(tenant_id, fields, actor_id)

            if recurring:
                due_dates = expand(payload.due_date, payload.recurrence, count)
                for index, due in enumerate(due_dates, start=2):
                    await self._insert(
                        tenant_id,
                        {
                            **fields,
                            "description": installment_label(payload.description, index, total),
                            "due_date": due,
                            "payment_date": None,
                            "status": TransactionStatus.PENDING,
                            "recurrence": RecurrenceKind.NONE,
                            "parent_id": root_id,
                            "reconciled": False,
                        },
                        actor_id,
                    )

            root = await self._load(tenant_id, root_id)
            await self._apply_deltas(tenant_id, reconcile(None, Settlement.from_transaction(root)))
            installments = await self._children(tenant_id, root_id) if recurring else []

        logger.info(
            f"거래 생성: {root_id} ({payload.kind.value}, {payload.amount}, 할부 {len(installments)}건)",
            extra={"tenant_id": tenant_id, "transaction_id": root_id},
        )
        return CreatedTransaction(transaction=root, installments=installments)

    # =========================================================================
    # 조회
    # =========================================================================

    async def get(self, tenant_id: int, transaction_id: int) -> Transaction:
        """거래 조회 (계좌/카테고리/비용 센터 이름 포함)

        Raises:
            NotFound: 없거나 다른 테넌트 소유
        """
        return await self._load(tenant_id, transaction_id)

    async def get_with_installments(
        self,
        tenant_id: int,
        transaction_id: int,
    ) -> tuple[Transaction, list[Transaction]]:
        """거래와 하위 할부 목록 조회 (만기일순)"""
        transaction = await self._load(tenant_id, transaction_id)
        children = await self._children(tenant_id, transaction_id)
        return transaction, children

    async def list_transactions(
        self,
        tenant_id: int,
        filters: TransactionFilter | Mapping[str, Any] | None = None,
    ) -> TransactionPage:
        """거래 목록 (필터/정렬/페이지)

        정렬 필드는 허용 목록만 사용 가능 (그 외는 ValidationFailed).
        """
        criteria = parse_input(TransactionFilter, filters or {})
        where, params = self._filter_clause(tenant_id, criteria)

        limit = min(criteria.limit or self.config.default_page_size, self.config.max_page_size)
        direction = "ASC" if criteria.order == "asc" else "DESC"
        order_by = f"{_SORT_COLUMNS[criteria.sort_by]} {direction}, t.id {direction}"

        row = await self.db.fetchone(
            f"SELECT COUNT(*) FROM transactions t WHERE {where}",
            tuple(params),
        )
        total = row[0] if row else 0

        rows = await self.db.fetchall_dict(
            f"{_SELECT_WITH_NAMES} WHERE {where} ORDER BY {order_by} LIMIT ? OFFSET ?",
            (*params, limit, criteria.offset),
        )
        return TransactionPage(
            items=[Transaction.from_row(r) for r in rows],
            total=total,
            limit=limit,
            offset=criteria.offset,
        )

    # =========================================================================
    # 수정
    # =========================================================================

    async def update(
        self,
        tenant_id: int,
        transaction_id: int,
        data: TransactionUpdate | Mapping[str, Any],
        actor_id: str | None = None,
    ) -> Transaction:
        """거래 부분 수정

        기존 값과 병합 → 상태 전이/규칙/참조 검증 → 잔액 재계산 → 저장.
        기존 값과 동일한 수정은 잔액 변화 없이 성공한다.

        Raises:
            NotFound, ValidationFailed, InvalidStatusTransition
        """
        changes = parse_input(TransactionUpdate, data).model_dump(exclude_unset=True)

        async with self.db.transaction():
            current = await self._load(tenant_id, transaction_id)
            updated = await self._apply_changes(tenant_id, current, changes, actor_id)

        logger.info(
            f"거래 수정: {transaction_id}",
            extra={"tenant_id": tenant_id, "transaction_id": transaction_id, "fields": list(changes)},
        )
        return updated

    async def set_payment_status(
        self,
        tenant_id: int,
        transaction_id: int,
        request: PaymentRequest | Mapping[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> Transaction:
        """지급 / 지급 취소

        pay=True: pending/late → paid (지급일 기본값 오늘, 금액 변경 가능)
        pay=False: paid → reversed (잔액 역반영)

        Raises:
            InvalidStatusTransition: 이미 지급됨(pay) / 지급 상태 아님(reverse) 등
        """
        payment = parse_input(PaymentRequest, request or {})

        async with self.db.transaction():
            current = await self._load(tenant_id, transaction_id)

            if payment.pay:
                check_status_transition(current.status, TransactionStatus.PAID)
                if current.status == TransactionStatus.PAID:
                    raise InvalidStatusTransition("paid", "paid", ["reversed"])
                changes: dict[str, Any] = {
                    "status": TransactionStatus.PAID,
                    "payment_date": payment.payment_date or self._today(),
                }
                if payment.amount is not None:
                    changes["amount"] = payment.amount
            else:
                if current.status != TransactionStatus.PAID:
                    raise InvalidStatusTransition(current.status.value, "reversed")
                changes = {"status": TransactionStatus.REVERSED}

            updated = await self._apply_changes(tenant_id, current, changes, actor_id)

        logger.info(
            f"거래 {'지급' if payment.pay else '지급 취소'}: {transaction_id}",
            extra={"tenant_id": tenant_id, "transaction_id": transaction_id},
        )
        return updated

    async def pay(
        self,
        tenant_id: int,
        transaction_id: int,
        payment_date: date | None = None,
        amount: Decimal | None = None,
        actor_id: str | None = None,
    ) -> Transaction:
        """지급 처리 (set_payment_status pay=True)"""
        return await self.set_payment_status(
            tenant_id,
            transaction_id,
            PaymentRequest(pay=True, payment_date=payment_date, amount=amount),
            actor_id,
        )

    async def reverse(
        self,
        tenant_id: int,
        transaction_id: int,
        actor_id: str | None = None,
    ) -> Transaction:
        """지급 취소 (set_payment_status pay=False)"""
        return await self.set_payment_status(
            tenant_id, transaction_id, PaymentRequest(pay=False), actor_id
        )

    async def cancel(
        self,
        tenant_id: int,
        transaction_id: int,
        actor_id: str | None = None,
    ) -> Transaction:
        """거래 취소 (pending/late → cancelled, 잔액 변화 없음)"""
        async with self.db.transaction():
            current = await self._load(tenant_id, transaction_id)
            updated = await self._apply_changes(
                tenant_id, current, {"status": TransactionStatus.CANCELLED}, actor_id
            )
        logger.info(
            f"거래 취소: {transaction_id}",
            extra={"tenant_id": tenant_id, "transaction_id": transaction_id},
        )
        return updated

    async def set_reconciled(
        self,
        tenant_id: int,
        transaction_id: int,
        reconciled: bool,
        actor_id: str | None = None,
    ) -> Transaction:
        """은행 대사 완료 표시 (상태/잔액과 무관)"""
        return await self.update(tenant_id, transaction_id, {"reconciled": reconciled}, actor_id)

    async def mark_overdue(self, tenant_id: int, as_of: date | None = None) -> int:
        """만기 경과 pending 거래를 late로 분류

        Args:
            as_of: 기준일 (None이면 오늘). 만기일 < as_of 인 거래가 대상.

        Returns:
            분류된 거래 수
        """
        as_of = as_of or self._today()
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                UPDATE transactions
                SET status = ?, updated_at = ?
                WHERE tenant_id = ? AND status = ? AND due_date < ?
                """,
                (
                    TransactionStatus.LATE.value,
                    utc_now_iso(),
                    tenant_id,
                    TransactionStatus.PENDING.value,
                    as_of.isoformat(),
                ),
            )
            count = cursor.rowcount

        if count:
            logger.info(
                f"연체 분류: {count}건 (기준일 {as_of})",
                extra={"tenant_id": tenant_id},
            )
        return count

    # =========================================================================
    # 삭제
    # =========================================================================

    async def delete(self, tenant_id: int, transaction_id: int) -> int:
        """거래 삭제 (루트면 할부까지 함께)

        정산된 거래는 각각 잔액 효과를 되돌린 뒤 삭제한다.

        Returns:
            함께 삭제된 하위 할부 수
        """
        async with self.db.transaction():
            current = await self._load(tenant_id, transaction_id)
            children = await self._children(tenant_id, transaction_id)

            deltas: list[BalanceDelta] = []
            for txn in (current, *children):
                deltas.extend(reconcile(Settlement.from_transaction(txn), None))
            await self._apply_deltas(tenant_id, deltas)

            if children:
                await self.db.execute(
                    "DELETE FROM transactions WHERE tenant_id = ? AND parent_id = ?",
                    (tenant_id, transaction_id),
                )
            await self.db.execute(
                "DELETE FROM transactions WHERE tenant_id = ? AND id = ?",
                (tenant_id, transaction_id),
            )

        logger.info(
            f"거래 삭제: {transaction_id} (할부 {len(children)}건 포함)",
            extra={"tenant_id": tenant_id, "transaction_id": transaction_id},
        )
        return len(children)

    # =========================================================================
    # 요약
    # =========================================================================

    async def summary(
        self,
        tenant_id: int,
        period_start: date,
        period_end: date,
        as_of: date | None = None,
    ) -> LedgerSummary:
        """기간 요약 (LedgerReports.summary 위임)"""
        return await self.reports.summary(tenant_id, period_start, period_end, as_of)

    async def summary_for_days(self, tenant_id: int, days: int) -> LedgerSummary:
        """최근 N일 요약 (7/30/90/180/365)"""
        return await self.reports.summary_for_days(tenant_id, days)

    # =========================================================================
    # 내부 구현
    # =========================================================================

    async def _apply_changes(
        self,
        tenant_id: int,
        current: Transaction,
        changes: dict[str, Any],
        actor_id: str | None,
    ) -> Transaction:
        """변경 병합 → 검증 → 잔액 반영 → 저장 (작업 단위 안에서 호출)"""
        merged = dataclasses.replace(current, **changes)
        if (
            "kind" in changes
            and merged.kind != TransactionKind.TRANSFER
            and "destination_account_id" not in changes
        ):
            merged.destination_account_id = None

        if merged.status != current.status:
            check_status_transition(current.status, merged.status)
            self._check_late(merged.status, merged.due_date)

        violations = transaction_rule_violations(
            kind=merged.kind,
            status=merged.status,
            payment_date=merged.payment_date,
            source_account_id=merged.source_account_id,
            destination_account_id=merged.destination_account_id,
            category_id=merged.category_id,
            recurrence=merged.recurrence,
            parent_id=merged.parent_id,
        )
        if violations:
            raise ValidationFailed(
                "; ".join(f"{v['field']}: {v['message']}" for v in violations),
                errors=violations,
                transaction_id=current.id,
            )

        changed_refs = {
            name: getattr(merged, name)
            for name in _REFERENCE_FIELDS
            if getattr(merged, name) != getattr(current, name)
        }
        await self._check_references(tenant_id, merged.kind, changed_refs)
        if (
            merged.kind != current.kind
            and merged.category_id is not None
            and "category_id" not in changed_refs
        ):
            category = await self.categories.get(tenant_id, merged.category_id)
            self._check_category_kind(category.kind, merged.kind)

        await self._apply_deltas(
            tenant_id,
            reconcile(Settlement.from_transaction(current), Settlement.from_transaction(merged)),
        )
        await self._write(tenant_id, merged, actor_id)
        return await self._load(tenant_id, current.id)

    async def _check_references(
        self,
        tenant_id: int,
        kind: TransactionKind,
        refs: dict[str, int | None],
    ) -> None:
        """참조 존재(테넌트 소유)/활성/카테고리 유형 검증

        Raises:
            NotFound: 테넌트에 없음
            ValidationFailed: 비활성 엔티티, 카테고리 유형 불일치
        """
        for name in ("source_account_id", "destination_account_id"):
            if refs.get(name) is not None:
                account = await self.accounts.get(tenant_id, refs[name])
                if not account.is_active:
                    raise ValidationFailed.for_field(name, f"account {account.id} is inactive")

        if refs.get("category_id") is not None:
            category = await self.categories.get(tenant_id, refs["category_id"])
            if not category.is_active:
                raise ValidationFailed.for_field("category_id", f"category {category.id} is inactive")
            self._check_category_kind(category.kind, kind)

        if refs.get("cost_center_id") is not None:
            cost_center = await self.cost_centers.get(tenant_id, refs["cost_center_id"])
            if not cost_center.is_active:
                raise ValidationFailed.for_field(
                    "cost_center_id", f"cost center {cost_center.id} is inactive"
                )

    def _check_late(self, status: TransactionStatus, due_date: date) -> None:
        """late는 만기일이 지난 거래에만 허용 (mark_overdue와 같은 기준)"""
        if status == TransactionStatus.LATE and due_date >= self._today():
            raise ValidationFailed.for_field("status", "'late' requires a due date before today")

    @staticmethod
    def _check_category_kind(category_kind: Any, kind: TransactionKind) -> None:
        if not category_accepts(category_kind, kind):
            raise ValidationFailed.for_field(
                "category_id",
                f"{category_kind.value} category cannot tag a {kind.value} transaction",
            )

    async def _apply_deltas(self, tenant_id: int, deltas: list[BalanceDelta]) -> None:
        """계좌별로 합산한 순 증감 반영"""
        for delta in combine(deltas):
            await self.accounts._apply_delta(tenant_id, delta.account_id, delta.amount)

    async def _insert(
        self,
        tenant_id: int,
        fields: dict[str, Any],
        actor_id: str | None,
    ) -> int:
        now = utc_now_iso()
        columns = ["tenant_id", *fields.keys(), "created_by", "updated_by", "created_at", "updated_at"]
        values = [tenant_id, *(_to_db(v) for v in fields.values()), actor_id, actor_id, now, now]
        cursor = await self.db.execute(
            f"INSERT INTO transactions ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            tuple(values),
        )
        return cursor.lastrowid

    async def _write(self, tenant_id: int, txn: Transaction, actor_id: str | None) -> None:
        assignments = ", ".join(f"{name} = ?" for name in _MUTABLE_COLUMNS)
        values = [_to_db(getattr(txn, name)) for name in _MUTABLE_COLUMNS]
        await self.db.execute(
            f"UPDATE transactions SET {assignments}, updated_by = ?, updated_at = ? "
            "WHERE id = ? AND tenant_id = ?",
            (*values, actor_id, utc_now_iso(), txn.id, tenant_id),
        )

    async def _load(self, tenant_id: int, transaction_id: int) -> Transaction:
        row = await self.db.fetchone_dict(
            f"{_SELECT_WITH_NAMES} WHERE t.id = ? AND t.tenant_id = ?",
            (transaction_id, tenant_id),
        )
        if row is None:
            raise NotFound("Transaction", transaction_id, tenant_id)
        return Transaction.from_row(row)

    async def _children(self, tenant_id: int, parent_id: int) -> list[Transaction]:
        rows = await self.db.fetchall_dict(
            f"{_SELECT_WITH_NAMES} WHERE t.tenant_id = ? AND t.parent_id = ? "
            "ORDER BY t.due_date, t.id",
            (tenant_id, parent_id),
        )
        return [Transaction.from_row(r) for r in rows]

    @staticmethod
    def _filter_clause(tenant_id: int, criteria: TransactionFilter) -> tuple[str, list[Any]]:
        """필터 → WHERE 절 (값은 모두 바인딩 파라미터)"""
        clauses = ["t.tenant_id = ?"]
        params: list[Any] = [tenant_id]

        equals = {
            "t.kind": criteria.kind,
            "t.status": criteria.status,
            "t.category_id": criteria.category_id,
            "t.cost_center_id": criteria.cost_center_id,
            "t.recurrence": criteria.recurrence,
            "t.parent_id": criteria.parent_id,
            "t.reconciled": criteria.reconciled,
        }
        for column, value in equals.items():
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(_to_db(value))

        if criteria.account_id is not None:
            clauses.append("(t.source_account_id = ? OR t.destination_account_id = ?)")
            params.extend([criteria.account_id, criteria.account_id])
        if criteria.date_from is not None:
            clauses.append("t.due_date >= ?")
            params.append(criteria.date_from.isoformat())
        if criteria.date_to is not None:
            clauses.append("t.due_date <= ?")
            params.append(criteria.date_to.isoformat())

        return " AND ".join(clauses), params
