"""
참조 기반 삭제

계좌/카테고리/비용 센터 공통 삭제 규칙:
거래가 참조 중이면 비활성화(soft), 아니면 행 삭제(hard).
호출자의 작업 단위(transaction) 안에서 실행해야 한다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from core.ledger.models import DeleteOutcome
from core.utils.timezone import utc_now_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


# 삭제 규칙을 적용할 수 있는 테이블 → 거래 참조 컬럼
REFERENCE_COLUMNS: dict[str, tuple[str, ...]] = {
    "accounts": ("source_account_id", "destination_account_id"),
    "categories": ("category_id",),
    "cost_centers": ("cost_center_id",),
}


async def is_referenced_by_transactions(
    db: SQLiteAdapter,
    table: str,
    tenant_id: int,
    entity_id: int,
) -> bool:
    """해당 엔티티를 참조하는 거래가 있는지 여부"""
    columns = REFERENCE_COLUMNS[table]
    condition = " OR ".join(f"{column} = ?" for column in columns)
    row = await db.fetchone(
        f"SELECT 1 FROM transactions WHERE tenant_id = ? AND ({condition}) LIMIT 1",
        (tenant_id, *([entity_id] * len(columns))),
    )
    return row is not None


async def delete_or_deactivate(
    db: SQLiteAdapter,
    table: str,
    tenant_id: int,
    entity_id: int,
    is_referenced: Callable[[], Awaitable[bool]] | None = None,
) -> DeleteOutcome:
    """참조 중이면 비활성화, 아니면 삭제

    Args:
        db: SQLiteAdapter (작업 단위 진행 중)
        table: 대상 테이블 (REFERENCE_COLUMNS 키)
        tenant_id: 테넌트 ID
        entity_id: 엔티티 ID
        is_referenced: 참조 여부 판정 함수 (None이면 거래 참조 검사)

    Returns:
        DeleteOutcome
    """
    if table not in REFERENCE_COLUMNS:
        raise ValueError(f"Unsupported table for reference delete: {table}")

    if is_referenced is None:
        referenced = await is_referenced_by_transactions(db, table, tenant_id, entity_id)
    else:
        referenced = await is_referenced()

    if referenced:
        await db.execute(
            f"UPDATE {table} SET is_active = 0, updated_at = ? WHERE id = ? AND tenant_id = ?",
            (utc_now_iso(), entity_id, tenant_id),
        )
        logger.info(
            f"{table} {entity_id} 비활성화 (거래 참조 중)",
            extra={"tenant_id": tenant_id, "entity_id": entity_id},
        )
        return DeleteOutcome(entity_id=entity_id, hard_deleted=False)

    await db.execute(
        f"DELETE FROM {table} WHERE id = ? AND tenant_id = ?",
        (entity_id, tenant_id),
    )
    logger.info(
        f"{table} {entity_id} 삭제",
        extra={"tenant_id": tenant_id, "entity_id": entity_id},
    )
    return DeleteOutcome(entity_id=entity_id, hard_deleted=True)
