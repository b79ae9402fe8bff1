"""
카테고리 저장소

수입/지출 분류 계층 관리.

- 부모 변경 시 순환 검사 (부모 체인을 위로 따라가며 자기 자신 발견 시 거부)
- 체인 탐색은 테넌트의 카테고리 수로 상한을 둬서 손상된 데이터에서도 종료
- 하위 카테고리가 있으면 삭제 불가, 그 외는 참조 기반 삭제
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from core.domain.errors import CycleDetected, HasChildren, NotFound, ValidationFailed
from core.ledger.deletion import delete_or_deactivate
from core.ledger.inputs import CategoryCreate, CategoryUpdate, parse_input
from core.ledger.models import Category, DeleteOutcome
from core.ledger.types import CategoryKind, TransactionKind, category_accepts
from core.utils.timezone import utc_now_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class CategoryStore:
    """카테고리 저장소

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def create(
        self,
        tenant_id: int,
        data: CategoryCreate | Mapping[str, Any],
    ) -> Category:
        """카테고리 생성

        Raises:
            NotFound: parent_id가 테넌트에 없음
        """
        payload = parse_input(CategoryCreate, data)
        now = utc_now_iso()

        async with self.db.transaction():
            if payload.parent_id is not None:
                await self.get(tenant_id, payload.parent_id)

            cursor = await self.db.execute(
                """
                INSERT INTO categories (
                    tenant_id, name, description, kind, color, icon,
                    parent_id, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tenant_id,
                    payload.name,
                    payload.description,
                    payload.kind.value,
                    payload.color,
                    payload.icon,
                    payload.parent_id,
                    int(payload.is_active),
                    now,
                    now,
                ),
            )
            category_id = cursor.lastrowid

        logger.info(
            f"카테고리 생성: {category_id} ({payload.name})",
            extra={"tenant_id": tenant_id, "category_id": category_id},
        )
        return await self.get(tenant_id, category_id)

    async def find(self, tenant_id: int, category_id: int) -> Category | None:
        """카테고리 조회 (없으면 None)"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM categories WHERE id = ? AND tenant_id = ?",
            (category_id, tenant_id),
        )
        return Category.from_row(row) if row else None

    async def get(self, tenant_id: int, category_id: int) -> Category:
        """카테고리 조회

        Raises:
            NotFound: 없거나 다른 테넌트 소유
        """
        category = await self.find(tenant_id, category_id)
        if category is None:
            raise NotFound("Category", category_id, tenant_id)
        return category

    async def list_categories(
        self,
        tenant_id: int,
        kind: CategoryKind | str | None = None,
        is_active: bool | None = None,
        parent_id: int | None = None,
    ) -> list[Category]:
        """카테고리 목록 (이름순)"""
        sql = "SELECT * FROM categories WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if kind is not None:
            sql += " AND kind = ?"
            params.append(CategoryKind(kind).value)
        if is_active is not None:
            sql += " AND is_active = ?"
            params.append(int(is_active))
        if parent_id is not None:
            sql += " AND parent_id = ?"
            params.append(parent_id)
        sql += " ORDER BY name, id"

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [Category.from_row(row) for row in rows]

    async def update(
        self,
        tenant_id: int,
        category_id: int,
        data: CategoryUpdate | Mapping[str, Any],
    ) -> Category:
        """카테고리 부분 수정 (부모 변경 포함)

        Raises:
            NotFound: 카테고리 또는 새 부모 없음
            CycleDetected: 부모 변경이 순환을 만드는 경우
            ValidationFailed: 유형 변경이 기존 거래와 충돌
        """
        changes = parse_input(CategoryUpdate, data).model_dump(exclude_unset=True)

        async with self.db.transaction():
            current = await self.get(tenant_id, category_id)

            for name in ("name", "kind", "is_active"):
                if name in changes and changes[name] is None:
                    changes.pop(name)

            new_parent = changes.get("parent_id")
            if new_parent is not None and new_parent != current.parent_id:
                await self.get(tenant_id, new_parent)
                await self._check_no_cycle(tenant_id, category_id, new_parent)

            if "kind" in changes:
                if changes["kind"] != current.kind:
                    await self._check_kind_change(tenant_id, category_id, changes["kind"])
                changes["kind"] = changes["kind"].value
            if "is_active" in changes:
                changes["is_active"] = int(changes["is_active"])

            if changes:
                assignments = ", ".join(f"{name} = ?" for name in changes)
                await self.db.execute(
                    f"UPDATE categories SET {assignments}, updated_at = ? "
                    "WHERE id = ? AND tenant_id = ?",
                    (*changes.values(), utc_now_iso(), category_id, tenant_id),
                )

        logger.info(
            f"카테고리 수정: {category_id}",
            extra={"tenant_id": tenant_id, "category_id": category_id, "fields": list(changes)},
        )
        return await self.get(tenant_id, category_id)

    async def delete(self, tenant_id: int, category_id: int) -> DeleteOutcome:
        """카테고리 삭제

        Raises:
            HasChildren: 하위 카테고리 존재 (비활성 포함)
        """
        async with self.db.transaction():
            await self.get(tenant_id, category_id)

            row = await self.db.fetchone(
                "SELECT COUNT(*) FROM categories WHERE tenant_id = ? AND parent_id = ?",
                (tenant_id, category_id),
            )
            child_count = row[0] if row else 0
            if child_count:
                raise HasChildren(category_id, child_count)

            return await delete_or_deactivate(self.db, "categories", tenant_id, category_id)

    async def ancestors(self, tenant_id: int, category_id: int) -> list[int]:
        """상위 카테고리 ID 목록 (가까운 부모부터)

        Raises:
            CycleDetected: 기존 데이터에 순환이 있는 경우
        """
        cap = await self._category_count(tenant_id)
        chain: list[int] = []
        node = await self._parent_of(tenant_id, category_id)
        while node is not None:
            if node == category_id or node in chain or len(chain) >= cap:
                raise CycleDetected(category_id, node)
            chain.append(node)
            node = await self._parent_of(tenant_id, node)
        return chain

    async def _check_no_cycle(self, tenant_id: int, category_id: int, parent_id: int) -> None:
        """parent_id에서 위로 따라가며 category_id를 만나면 거부"""
        if parent_id == category_id:
            raise CycleDetected(category_id, parent_id)

        cap = await self._category_count(tenant_id)
        node: int | None = parent_id
        steps = 0
        while node is not None:
            if node == category_id:
                raise CycleDetected(category_id, parent_id)
            steps += 1
            if steps > cap:
                # 손상된 기존 체인 (자기 자신은 아니지만 끝나지 않음)
                raise CycleDetected(category_id, parent_id)
            node = await self._parent_of(tenant_id, node)

    async def _check_kind_change(
        self,
        tenant_id: int,
        category_id: int,
        new_kind: CategoryKind,
    ) -> None:
        """참조 중인 거래와 호환되지 않는 유형 변경 거부"""
        rows = await self.db.fetchall(
            "SELECT DISTINCT kind FROM transactions WHERE tenant_id = ? AND category_id = ?",
            (tenant_id, category_id),
        )
        for (txn_kind,) in rows:
            if not category_accepts(new_kind, TransactionKind(txn_kind)):
                raise ValidationFailed.for_field(
                    "kind",
                    f"category is used by {txn_kind} transactions",
                )

    async def _parent_of(self, tenant_id: int, category_id: int) -> int | None:
        row = await self.db.fetchone(
            "SELECT parent_id FROM categories WHERE id = ? AND tenant_id = ?",
            (category_id, tenant_id),
        )
        return row[0] if row else None

    async def _category_count(self, tenant_id: int) -> int:
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM categories WHERE tenant_id = ?",
            (tenant_id,),
        )
        return row[0] if row else 0
