"""
계좌 저장소

계좌 생성/조회/수정/삭제와 잔액 반영.
current_balance는 TransactionEngine만 _apply_delta로 변경한다.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping

from core.constants import Money
from core.domain.errors import ConcurrencyConflict, NotFound
from core.ledger.deletion import delete_or_deactivate
from core.ledger.inputs import AccountCreate, AccountUpdate, parse_input
from core.ledger.models import Account, DeleteOutcome
from core.utils.timezone import utc_now_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


def _money(value: Decimal) -> str:
    return str(value.quantize(Money.QUANTUM))


class AccountStore:
    """계좌 저장소

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def create(
        self,
        tenant_id: int,
        data: AccountCreate | Mapping[str, Any],
    ) -> Account:
        """계좌 생성 (current_balance = initial_balance)"""
        payload = parse_input(AccountCreate, data)
        now = utc_now_iso()
        initial = _money(payload.initial_balance)

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO accounts (
                    tenant_id, name, kind, bank_name, branch, account_number,
                    initial_balance, current_balance, color, is_active,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tenant_id,
                    payload.name,
                    payload.kind.value,
                    payload.bank_name,
                    payload.branch,
                    payload.account_number,
                    initial,
                    initial,
                    payload.color,
                    int(payload.is_active),
                    now,
                    now,
                ),
            )
            account_id = cursor.lastrowid

        logger.info(
            f"계좌 생성: {account_id} ({payload.name})",
            extra={"tenant_id": tenant_id, "account_id": account_id},
        )
        return await self.get(tenant_id, account_id)

    async def find(self, tenant_id: int, account_id: int) -> Account | None:
        """계좌 조회 (없으면 None)"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM accounts WHERE id = ? AND tenant_id = ?",
            (account_id, tenant_id),
        )
        return Account.from_row(row) if row else None

    async def get(self, tenant_id: int, account_id: int) -> Account:
        """계좌 조회

        Raises:
            NotFound: 없거나 다른 테넌트 소유
        """
        account = await self.find(tenant_id, account_id)
        if account is None:
            raise NotFound("Account", account_id, tenant_id)
        return account

    async def list_accounts(
        self,
        tenant_id: int,
        is_active: bool | None = None,
    ) -> list[Account]:
        """계좌 목록 (이름순)"""
        sql = "SELECT * FROM accounts WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if is_active is not None:
            sql += " AND is_active = ?"
            params.append(int(is_active))
        sql += " ORDER BY name, id"

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [Account.from_row(row) for row in rows]

    async def update(
        self,
        tenant_id: int,
        account_id: int,
        data: AccountUpdate | Mapping[str, Any],
    ) -> Account:
        """계좌 부분 수정

        initial_balance 변경 시 current_balance도 같은 차이만큼 이동
        (잔액 = 초기 잔액 + 정산 효과 유지).
        """
        changes = parse_input(AccountUpdate, data).model_dump(exclude_unset=True)

        async with self.db.transaction():
            current = await self.get(tenant_id, account_id)

            for name in ("name", "kind", "is_active"):
                if name in changes and changes[name] is None:
                    changes.pop(name)

            if changes.get("initial_balance") is not None:
                shift = changes["initial_balance"] - current.initial_balance
                changes["initial_balance"] = _money(changes["initial_balance"])
                if shift:
                    await self._apply_delta(tenant_id, account_id, shift)
            else:
                changes.pop("initial_balance", None)

            if "kind" in changes:
                changes["kind"] = changes["kind"].value
            if "is_active" in changes:
                changes["is_active"] = int(changes["is_active"])

            if changes:
                assignments = ", ".join(f"{name} = ?" for name in changes)
                await self.db.execute(
                    f"UPDATE accounts SET {assignments}, updated_at = ? "
                    "WHERE id = ? AND tenant_id = ?",
                    (*changes.values(), utc_now_iso(), account_id, tenant_id),
                )

        logger.info(
            f"계좌 수정: {account_id}",
            extra={"tenant_id": tenant_id, "account_id": account_id, "fields": list(changes)},
        )
        return await self.get(tenant_id, account_id)

    async def delete(self, tenant_id: int, account_id: int) -> DeleteOutcome:
        """계좌 삭제 (출금/입금 계좌로 참조 중이면 비활성화)"""
        async with self.db.transaction():
            await self.get(tenant_id, account_id)
            return await delete_or_deactivate(self.db, "accounts", tenant_id, account_id)

    async def _apply_delta(
        self,
        tenant_id: int,
        account_id: int,
        delta: Decimal,
    ) -> Decimal:
        """잔액 증감 반영 (버전 비교 후 갱신)

        호출자의 작업 단위 안에서만 사용.

        Returns:
            반영 후 잔액

        Raises:
            NotFound: 계좌 없음
            ConcurrencyConflict: 버전 불일치
        """
        row = await self.db.fetchone(
            "SELECT current_balance, version FROM accounts WHERE id = ? AND tenant_id = ?",
            (account_id, tenant_id),
        )
        if row is None:
            raise NotFound("Account", account_id, tenant_id)

        balance = Decimal(row[0]) + delta
        cursor = await self.db.execute(
            """
            UPDATE accounts
            SET current_balance = ?, version = version + 1, updated_at = ?
            WHERE id = ? AND tenant_id = ? AND version = ?
            """,
            (_money(balance), utc_now_iso(), account_id, tenant_id, row[1]),
        )
        if cursor.rowcount == 0:
            raise ConcurrencyConflict(
                f"Account {account_id} balance changed concurrently",
                tenant_id=tenant_id,
                account_id=account_id,
            )

        logger.debug(
            f"잔액 반영: account={account_id} delta={delta} balance={balance}",
            extra={"tenant_id": tenant_id},
        )
        return balance
