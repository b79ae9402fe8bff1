"""
Ledger 도메인 오류

모든 원장 연산이 던지는 예외 계층.
호출자는 LedgerError 하나로 잡고 code로 분기할 수 있다.

재시도 정책:
- ConcurrencyConflict만 동일 연산을 그대로 재시도하는 것이 안전
- 나머지는 입력을 고친 뒤 다시 제출해야 함
"""

from typing import Any


class LedgerError(Exception):
    """원장 오류 기본 클래스

    Args:
        message: 사람이 읽을 수 있는 설명
        **details: 오류 컨텍스트 (tenant_id, entity_id 등)
    """

    code: str = "LEDGER_ERROR"
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """직렬화용 dict 반환"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFound(LedgerError):
    """엔티티가 없거나 해당 테넌트 소유가 아님"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any, tenant_id: int | None = None):
        super().__init__(
            f"{entity} {entity_id} not found",
            entity=entity,
            entity_id=entity_id,
            tenant_id=tenant_id,
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailed(LedgerError):
    """입력 검증 실패

    errors는 필드별 오류 목록: [{"field": "amount", "message": "..."}]
    """

    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        **details: Any,
    ):
        super().__init__(message, **details)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        """단일 필드 오류 생성"""
        return cls(f"{field}: {message}", errors=[{"field": field, "message": message}])


class CycleDetected(LedgerError):
    """카테고리 부모 체인에 순환 발생"""

    code = "CYCLE_DETECTED"

    def __init__(self, category_id: int, parent_id: int):
        super().__init__(
            f"Setting parent {parent_id} on category {category_id} would create a cycle",
            category_id=category_id,
            parent_id=parent_id,
        )


class HasChildren(LedgerError):
    """하위 카테고리가 있어 삭제 불가"""

    code = "HAS_CHILDREN"

    def __init__(self, category_id: int, child_count: int):
        super().__init__(
            f"Category {category_id} has {child_count} child categories",
            category_id=category_id,
            child_count=child_count,
        )


class InvalidStatusTransition(LedgerError):
    """허용되지 않은 거래 상태 전이"""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str, allowed: list[str] | None = None):
        super().__init__(
            f"Cannot transition from {from_status} to {to_status}. "
            f"Allowed: {allowed or []}",
            from_status=from_status,
            to_status=to_status,
        )
        self.from_status = from_status
        self.to_status = to_status


class ConcurrencyConflict(LedgerError):
    """동시성 충돌 (DB 잠금 또는 잔액 버전 불일치)"""

    code = "CONCURRENCY_CONFLICT"
    retryable = True
