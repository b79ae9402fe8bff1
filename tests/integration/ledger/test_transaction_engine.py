"""TransactionEngine 통합 테스트

생성/수정/지급/삭제와 계좌 잔액 반영 검증
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest

from core.domain.errors import InvalidStatusTransition, NotFound, ValidationFailed
from core.ledger.transaction_engine import TransactionEngine
from core.ledger.types import RecurrenceKind, TransactionKind, TransactionStatus


def _expense(seed: SimpleNamespace, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "kind": "expense",
        "description": "Rent",
        "amount": "100.00",
        "due_date": "2025-03-10",
        "source_account_id": seed.checking.id,
        "category_id": seed.rent.id,
    }
    data.update(overrides)
    return data


async def _balances(engine: TransactionEngine, seed: SimpleNamespace) -> tuple[Decimal, Decimal]:
    checking = await engine.accounts.get(seed.tenant, seed.checking.id)
    savings = await engine.accounts.get(seed.tenant, seed.savings.id)
    return checking.current_balance, savings.current_balance


async def _count(engine: TransactionEngine, tenant_id: int) -> int:
    row = await engine.db.fetchone(
        "SELECT COUNT(*) FROM transactions WHERE tenant_id = ?", (tenant_id,)
    )
    return row[0]


# =============================================================================
# 생성
# =============================================================================


class TestCreate:
    """거래 생성"""

    @pytest.mark.asyncio
    async def test_pending_does_not_touch_balance(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(seed.tenant, _expense(seed), actor_id="user-1")
        txn = created.transaction

        assert txn.status == TransactionStatus.PENDING
        assert txn.issue_date == date(2025, 3, 10)
        assert txn.is_root is True
        assert txn.source_account_name == "Checking"
        assert txn.category_name == "Rent"
        assert txn.created_by == "user-1"
        assert created.installments == []
        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_paid_expense(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        created = await engine.create(
            seed.tenant, _expense(seed, status="paid", payment_date="2025-03-10")
        )

        assert created.transaction.is_settled is True
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_paid_income(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        await engine.create(
            seed.tenant,
            _expense(
                seed,
                kind="income",
                description="Salary",
                amount="2500.00",
                category_id=seed.salary.id,
                status="paid",
                payment_date="2025-03-05",
            ),
        )

        assert await _balances(engine, seed) == (Decimal("3500.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_paid_transfer(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        created = await engine.create(
            seed.tenant,
            _expense(
                seed,
                kind="transfer",
                description="To savings",
                amount="300.00",
                category_id=None,
                destination_account_id=seed.savings.id,
                status="paid",
                payment_date="2025-03-10",
            ),
        )

        assert created.transaction.destination_account_name == "Savings"
        assert await _balances(engine, seed) == (Decimal("700.00"), Decimal("800.00"))

    @pytest.mark.asyncio
    async def test_either_category(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """either 카테고리는 수입/지출 모두 허용"""
        expense = await engine.create(seed.tenant, _expense(seed, category_id=seed.misc.id))
        income = await engine.create(
            seed.tenant, _expense(seed, kind="income", category_id=seed.misc.id)
        )

        assert expense.transaction.category_id == seed.misc.id
        assert income.transaction.kind == TransactionKind.INCOME

    @pytest.mark.asyncio
    async def test_category_kind_mismatch(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        with pytest.raises(ValidationFailed):
            await engine.create(seed.tenant, _expense(seed, category_id=seed.salary.id))

        assert await _count(engine, seed.tenant) == 0

    @pytest.mark.asyncio
    async def test_foreign_references(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """다른 테넌트 계좌/카테고리 참조는 NotFound, 아무것도 저장되지 않음"""
        with pytest.raises(NotFound):
            await engine.create(
                seed.tenant,
                _expense(seed, source_account_id=seed.foreign_account.id, category_id=None),
            )
        with pytest.raises(NotFound):
            await engine.create(seed.tenant, _expense(seed, category_id=seed.foreign_category.id))

        assert await _count(engine, seed.tenant) == 0
        foreign = await engine.accounts.get(seed.other_tenant, seed.foreign_account.id)
        assert foreign.current_balance == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_inactive_account(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        await engine.accounts.update(seed.tenant, seed.savings.id, {"is_active": False})

        with pytest.raises(ValidationFailed):
            await engine.create(seed.tenant, _expense(seed, source_account_id=seed.savings.id))

    @pytest.mark.asyncio
    async def test_unknown_cost_center(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        with pytest.raises(NotFound):
            await engine.create(seed.tenant, _expense(seed, cost_center_id=999))

    @pytest.mark.asyncio
    async def test_cost_center_name_joined(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(seed.tenant, _expense(seed, cost_center_id=seed.ops.id))

        assert created.transaction.cost_center_name == "Ops"


class TestRecurringCreate:
    """반복 거래 생성 (할부 전개)"""

    @pytest.mark.asyncio
    async def test_monthly_installments(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        """루트 + 할부 3개, 월말 보정, 설명 라벨"""
        created = await engine.create(
            seed.tenant,
            _expense(seed, due_date="2025-01-31", recurrence="monthly"),
            installment_count=3,
        )
        root = created.transaction

        assert root.description == "Rent (1/4)"
        assert root.recurrence == RecurrenceKind.MONTHLY
        assert [t.description for t in created.installments] == [
            "Rent (2/4)",
            "Rent (3/4)",
            "Rent (4/4)",
        ]
        assert [t.due_date for t in created.installments] == [
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]
        for child in created.installments:
            assert child.parent_id == root.id
            assert child.status == TransactionStatus.PENDING
            assert child.recurrence == RecurrenceKind.NONE
            assert child.amount == Decimal("100.00")
            assert child.category_id == seed.rent.id

    @pytest.mark.asyncio
    async def test_default_count_from_config(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(seed.tenant, _expense(seed, recurrence="weekly"))

        assert len(created.installments) == engine.config.default_installment_count

    @pytest.mark.asyncio
    async def test_count_from_input(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        created = await engine.create(
            seed.tenant, _expense(seed, recurrence="annual", installment_count=2)
        )

        assert [t.due_date for t in created.installments] == [date(2026, 3, 10), date(2027, 3, 10)]

    @pytest.mark.asyncio
    async def test_count_above_max(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """설정 최대값 초과 시 거부, 아무것도 저장되지 않음"""
        with pytest.raises(ValidationFailed):
            await engine.create(
                seed.tenant, _expense(seed, recurrence="daily"), installment_count=13
            )

        assert await _count(engine, seed.tenant) == 0

    @pytest.mark.asyncio
    async def test_paid_root_only_root_settles(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(
            seed.tenant,
            _expense(seed, recurrence="monthly", status="paid", payment_date="2025-03-10"),
            installment_count=2,
        )

        assert all(not t.is_settled for t in created.installments)
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_get_with_installments(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(
            seed.tenant, _expense(seed, recurrence="quarterly"), installment_count=2
        )

        root, children = await engine.get_with_installments(seed.tenant, created.transaction.id)

        assert root.id == created.transaction.id
        assert [c.id for c in children] == [t.id for t in created.installments]


# =============================================================================
# 지급 / 지급 취소 / 취소
# =============================================================================


class TestPayment:
    """지급 상태 전이"""

    @pytest.mark.asyncio
    async def test_pay_defaults_to_today(
        self, engine: TransactionEngine, seed: SimpleNamespace, today: date
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        paid = await engine.set_payment_status(seed.tenant, txn.id, {"pay": True})

        assert paid.status == TransactionStatus.PAID
        assert paid.payment_date == today
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_pay_with_amount(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """지급 시 실제 금액으로 변경"""
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        paid = await engine.pay(
            seed.tenant, txn.id, payment_date=date(2025, 3, 12), amount=Decimal("95.50")
        )

        assert paid.amount == Decimal("95.50")
        assert paid.payment_date == date(2025, 3, 12)
        assert await _balances(engine, seed) == (Decimal("904.50"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_pay_twice(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """이미 지급된 거래 재지급 불가, 잔액 한 번만 반영"""
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction
        await engine.pay(seed.tenant, txn.id)

        with pytest.raises(InvalidStatusTransition):
            await engine.pay(seed.tenant, txn.id)

        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_pay_late(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed, due_date="2025-03-01"))).transaction
        await engine.mark_overdue(seed.tenant)

        paid = await engine.pay(seed.tenant, txn.id)

        assert paid.status == TransactionStatus.PAID

    @pytest.mark.asyncio
    async def test_pay_cancelled(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction
        await engine.cancel(seed.tenant, txn.id)

        with pytest.raises(InvalidStatusTransition):
            await engine.pay(seed.tenant, txn.id)

    @pytest.mark.asyncio
    async def test_reverse(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        """지급 취소 시 잔액 복원, 지급일 보존"""
        txn = (
            await engine.create(
                seed.tenant,
                _expense(
                    seed,
                    kind="transfer",
                    category_id=None,
                    destination_account_id=seed.savings.id,
                    status="paid",
                    payment_date="2025-03-10",
                ),
            )
        ).transaction

        reversed_txn = await engine.reverse(seed.tenant, txn.id)

        assert reversed_txn.status == TransactionStatus.REVERSED
        assert reversed_txn.payment_date == date(2025, 3, 10)
        assert reversed_txn.is_settled is False
        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_reverse_unpaid(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        with pytest.raises(InvalidStatusTransition):
            await engine.set_payment_status(seed.tenant, txn.id, {"pay": False})

    @pytest.mark.asyncio
    async def test_reversed_is_terminal(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction
        await engine.pay(seed.tenant, txn.id)
        await engine.reverse(seed.tenant, txn.id)

        with pytest.raises(InvalidStatusTransition):
            await engine.pay(seed.tenant, txn.id)

        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_cancel_paid(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (
            await engine.create(
                seed.tenant, _expense(seed, status="paid", payment_date="2025-03-10")
            )
        ).transaction

        with pytest.raises(InvalidStatusTransition):
            await engine.cancel(seed.tenant, txn.id)

    @pytest.mark.asyncio
    async def test_payment_request_validation(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        with pytest.raises(ValidationFailed):
            await engine.set_payment_status(
                seed.tenant, txn.id, {"pay": False, "payment_date": "2025-03-01"}
            )


# =============================================================================
# 수정
# =============================================================================


class TestUpdate:
    """부분 수정과 잔액 재계산"""

    async def _paid(self, engine: TransactionEngine, seed: SimpleNamespace, **overrides: Any):
        data = _expense(seed, status="paid", payment_date="2025-03-10")
        data.update(overrides)
        return (await engine.create(seed.tenant, data)).transaction

    @pytest.mark.asyncio
    async def test_amount_change_on_paid(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed)

        updated = await engine.update(seed.tenant, txn.id, {"amount": "150.00"}, actor_id="user-2")

        assert updated.amount == Decimal("150.00")
        assert updated.updated_by == "user-2"
        assert await _balances(engine, seed) == (Decimal("850.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_account_change_on_paid(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed)

        await engine.update(seed.tenant, txn.id, {"source_account_id": seed.savings.id})

        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("400.00"))

    @pytest.mark.asyncio
    async def test_amount_change_on_pending(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        await engine.update(seed.tenant, txn.id, {"amount": "75.00", "notes": "adjusted"})

        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_identical_update_is_noop(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed)

        updated = await engine.update(
            seed.tenant,
            txn.id,
            {"amount": "100.00", "status": "paid", "source_account_id": seed.checking.id},
        )

        assert updated.status == TransactionStatus.PAID
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_settle_via_update(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        await engine.update(
            seed.tenant, txn.id, {"status": "paid", "payment_date": "2025-03-11"}
        )

        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_paid_back_to_pending(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed)

        with pytest.raises(InvalidStatusTransition):
            await engine.update(
                seed.tenant, txn.id, {"status": "pending", "payment_date": None}
            )

        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_kind_change_checks_category(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        """유형 변경 시 기존 카테고리와 호환성 검사, 실패 시 잔액 유지"""
        txn = await self._paid(engine, seed)

        with pytest.raises(ValidationFailed):
            await engine.update(seed.tenant, txn.id, {"kind": "income"})

        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))
        assert (await engine.get(seed.tenant, txn.id)).kind == TransactionKind.EXPENSE

    @pytest.mark.asyncio
    async def test_kind_change_to_income(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed, category_id=seed.misc.id)

        await engine.update(seed.tenant, txn.id, {"kind": "income"})

        assert await _balances(engine, seed) == (Decimal("1100.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_transfer_requires_destination(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(engine, seed, category_id=None)

        with pytest.raises(ValidationFailed):
            await engine.update(seed.tenant, txn.id, {"kind": "transfer"})

    @pytest.mark.asyncio
    async def test_transfer_to_expense_clears_destination(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = await self._paid(
            engine,
            seed,
            kind="transfer",
            category_id=None,
            destination_account_id=seed.savings.id,
        )
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("600.00"))

        updated = await engine.update(seed.tenant, txn.id, {"kind": "expense"})

        assert updated.destination_account_id is None
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_new_inactive_reference(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction
        await engine.categories.update(seed.tenant, seed.misc.id, {"is_active": False})

        with pytest.raises(ValidationFailed):
            await engine.update(seed.tenant, txn.id, {"category_id": seed.misc.id})

    @pytest.mark.asyncio
    async def test_unchanged_inactive_reference_allowed(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        """이미 참조 중인 계좌가 비활성화되어도 다른 필드 수정 가능"""
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction
        await engine.accounts.update(seed.tenant, seed.checking.id, {"is_active": False})

        updated = await engine.update(seed.tenant, txn.id, {"description": "Rent March"})

        assert updated.description == "Rent March"

    @pytest.mark.asyncio
    async def test_unknown_field(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        with pytest.raises(ValidationFailed):
            await engine.update(seed.tenant, txn.id, {"tenant_id": seed.other_tenant})

    @pytest.mark.asyncio
    async def test_other_tenant(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        with pytest.raises(NotFound):
            await engine.update(seed.other_tenant, txn.id, {"description": "hijack"})
        with pytest.raises(NotFound):
            await engine.get(seed.other_tenant, txn.id)

    @pytest.mark.asyncio
    async def test_set_reconciled(self, engine: TransactionEngine, seed: SimpleNamespace) -> None:
        txn = await self._paid(engine, seed)

        updated = await engine.set_reconciled(seed.tenant, txn.id, True)

        assert updated.reconciled is True
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))


# =============================================================================
# 연체 분류 / 삭제
# =============================================================================


class TestMarkOverdue:
    """만기 경과 분류"""

    @pytest.mark.asyncio
    async def test_only_past_due_pending(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        past = (await engine.create(seed.tenant, _expense(seed, due_date="2025-03-14"))).transaction
        due_today = (
            await engine.create(seed.tenant, _expense(seed, due_date="2025-03-15"))
        ).transaction
        paid = (
            await engine.create(
                seed.tenant,
                _expense(seed, due_date="2025-03-01", status="paid", payment_date="2025-03-01"),
            )
        ).transaction

        count = await engine.mark_overdue(seed.tenant)

        assert count == 1
        assert (await engine.get(seed.tenant, past.id)).status == TransactionStatus.LATE
        assert (await engine.get(seed.tenant, due_today.id)).status == TransactionStatus.PENDING
        assert (await engine.get(seed.tenant, paid.id)).status == TransactionStatus.PAID
        assert await engine.mark_overdue(seed.tenant) == 0

    @pytest.mark.asyncio
    async def test_explicit_as_of_and_tenant_scope(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        await engine.create(seed.tenant, _expense(seed, due_date="2025-03-20"))

        assert await engine.mark_overdue(seed.other_tenant, as_of=date(2025, 12, 31)) == 0
        assert await engine.mark_overdue(seed.tenant, as_of=date(2025, 3, 21)) == 1

    @pytest.mark.asyncio
    async def test_manual_late_requires_past_due_date(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        """만기일이 오늘 이후인 거래는 직접 late로 바꿀 수 없음"""
        upcoming = (await engine.create(seed.tenant, _expense(seed, due_date="2025-03-15"))).transaction
        past = (await engine.create(seed.tenant, _expense(seed, due_date="2025-03-14"))).transaction

        with pytest.raises(ValidationFailed):
            await engine.update(seed.tenant, upcoming.id, {"status": "late"})
        with pytest.raises(ValidationFailed):
            await engine.create(seed.tenant, _expense(seed, due_date="2025-03-20", status="late"))

        assert (await engine.get(seed.tenant, upcoming.id)).status == TransactionStatus.PENDING
        updated = await engine.update(seed.tenant, past.id, {"status": "late"})
        assert updated.status == TransactionStatus.LATE


class TestDelete:
    """거래 삭제"""

    @pytest.mark.asyncio
    async def test_delete_paid_restores_balance(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (
            await engine.create(
                seed.tenant, _expense(seed, status="paid", payment_date="2025-03-10")
            )
        ).transaction

        assert await engine.delete(seed.tenant, txn.id) == 0

        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))
        with pytest.raises(NotFound):
            await engine.get(seed.tenant, txn.id)

    @pytest.mark.asyncio
    async def test_delete_root_removes_installments(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        """루트 삭제 시 할부 함께 삭제, 정산된 할부도 잔액 복원"""
        created = await engine.create(
            seed.tenant, _expense(seed, recurrence="monthly"), installment_count=3
        )
        await engine.pay(seed.tenant, created.installments[0].id, payment_date=date(2025, 3, 12))
        assert await _balances(engine, seed) == (Decimal("900.00"), Decimal("500.00"))

        removed = await engine.delete(seed.tenant, created.transaction.id)

        assert removed == 3
        assert await _count(engine, seed.tenant) == 0
        assert await _balances(engine, seed) == (Decimal("1000.00"), Decimal("500.00"))

    @pytest.mark.asyncio
    async def test_delete_single_installment(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        created = await engine.create(
            seed.tenant, _expense(seed, recurrence="monthly"), installment_count=2
        )

        assert await engine.delete(seed.tenant, created.installments[0].id) == 0

        _, children = await engine.get_with_installments(seed.tenant, created.transaction.id)
        assert [c.id for c in children] == [created.installments[1].id]

    @pytest.mark.asyncio
    async def test_delete_other_tenant(
        self, engine: TransactionEngine, seed: SimpleNamespace
    ) -> None:
        txn = (await engine.create(seed.tenant, _expense(seed))).transaction

        with pytest.raises(NotFound):
            await engine.delete(seed.other_tenant, txn.id)

        assert await _count(engine, seed.tenant) == 1
