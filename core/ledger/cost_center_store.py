"""
비용 센터 저장소

거래에 붙이는 비용 센터 태그 관리. 잔액은 없다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from core.domain.errors import NotFound
from core.ledger.deletion import delete_or_deactivate
from core.ledger.inputs import CostCenterCreate, CostCenterUpdate, parse_input
from core.ledger.models import CostCenter, DeleteOutcome
from core.utils.timezone import utc_now_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class CostCenterStore:
    """비용 센터 저장소

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def create(
        self,
        tenant_id: int,
        data: CostCenterCreate | Mapping[str, Any],
    ) -> CostCenter:
        """비용 센터 생성"""
        payload = parse_input(CostCenterCreate, data)
        now = utc_now_iso()

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO cost_centers (
                    tenant_id, name, description, color, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tenant_id,
                    payload.name,
                    payload.description,
                    payload.color,
                    int(payload.is_active),
                    now,
                    now,
                ),
            )
            cost_center_id = cursor.lastrowid

        logger.info(
            f"비용 센터 생성: {cost_center_id} ({payload.name})",
            extra={"tenant_id": tenant_id, "cost_center_id": cost_center_id},
        )
        return await self.get(tenant_id, cost_center_id)

    async def find(self, tenant_id: int, cost_center_id: int) -> CostCenter | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM cost_centers WHERE id = ? AND tenant_id = ?",
            (cost_center_id, tenant_id),
        )
        return CostCenter.from_row(row) if row else None

    async def get(self, tenant_id: int, cost_center_id: int) -> CostCenter:
        """비용 센터 조회

        Raises:
            NotFound: 없거나 다른 테넌트 소유
        """
        cost_center = await self.find(tenant_id, cost_center_id)
        if cost_center is None:
            raise NotFound("CostCenter", cost_center_id, tenant_id)
        return cost_center

    async def list_cost_centers(
        self,
        tenant_id: int,
        is_active: bool | None = None,
    ) -> list[CostCenter]:
        sql = "SELECT * FROM cost_centers WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if is_active is not None:
            sql += " AND is_active = ?"
            params.append(int(is_active))
        sql += " ORDER BY name, id"

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [CostCenter.from_row(row) for row in rows]

    async def update(
        self,
        tenant_id: int,
        cost_center_id: int,
        data: CostCenterUpdate | Mapping[str, Any],
    ) -> CostCenter:
        """비용 센터 부분 수정"""
        changes = parse_input(CostCenterUpdate, data).model_dump(exclude_unset=True)
        for name in ("name", "is_active"):
            if name in changes and changes[name] is None:
                changes.pop(name)
        if "is_active" in changes:
            changes["is_active"] = int(changes["is_active"])

        async with self.db.transaction():
            await self.get(tenant_id, cost_center_id)
            if changes:
                assignments = ", ".join(f"{name} = ?" for name in changes)
                await self.db.execute(
                    f"UPDATE cost_centers SET {assignments}, updated_at = ? "
                    "WHERE id = ? AND tenant_id = ?",
                    (*changes.values(), utc_now_iso(), cost_center_id, tenant_id),
                )

        return await self.get(tenant_id, cost_center_id)

    async def delete(self, tenant_id: int, cost_center_id: int) -> DeleteOutcome:
        """비용 센터 삭제 (거래 참조 중이면 비활성화)"""
        async with self.db.transaction():
            await self.get(tenant_id, cost_center_id)
            return await delete_or_deactivate(self.db, "cost_centers", tenant_id, cost_center_id)
