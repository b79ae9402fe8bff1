"""
원장 오류 계층 테스트
"""

import pytest

from core.domain.errors import (
    ConcurrencyConflict,
    CycleDetected,
    HasChildren,
    InvalidStatusTransition,
    LedgerError,
    NotFound,
    ValidationFailed,
)


class TestLedgerError:
    """LedgerError 기본 동작"""

    def test_to_dict(self) -> None:
        """직렬화"""
        error = LedgerError("something broke", tenant_id=3)

        assert error.to_dict() == {
            "code": "LEDGER_ERROR",
            "message": "something broke",
            "details": {"tenant_id": 3},
        }
        assert str(error) == "something broke"

    @pytest.mark.parametrize(
        "error",
        [
            NotFound("Account", 1, 2),
            ValidationFailed("bad"),
            CycleDetected(1, 2),
            HasChildren(1, 3),
            InvalidStatusTransition("paid", "pending"),
            ConcurrencyConflict("locked"),
        ],
    )
    def test_subclasses_share_base(self, error: LedgerError) -> None:
        """모든 오류는 LedgerError로 잡을 수 있음"""
        assert isinstance(error, LedgerError)
        assert error.code != LedgerError.code


class TestRetryable:
    """재시도 가능 여부"""

    def test_only_concurrency_conflict_is_retryable(self) -> None:
        """ConcurrencyConflict만 재시도 가능"""
        assert ConcurrencyConflict("x").retryable is True
        assert NotFound("Account", 1).retryable is False
        assert ValidationFailed("x").retryable is False
        assert InvalidStatusTransition("a", "b").retryable is False


class TestErrorDetails:
    """오류별 상세 정보"""

    def test_not_found(self) -> None:
        error = NotFound("Transaction", 42, 7)

        assert error.code == "NOT_FOUND"
        assert error.entity == "Transaction"
        assert error.entity_id == 42
        assert error.details["tenant_id"] == 7
        assert "42" in error.message

    def test_validation_for_field(self) -> None:
        """단일 필드 오류"""
        error = ValidationFailed.for_field("amount", "must be positive")

        assert error.errors == [{"field": "amount", "message": "must be positive"}]
        assert error.message == "amount: must be positive"

    def test_validation_default_errors(self) -> None:
        assert ValidationFailed("bad").errors == []

    def test_has_children(self) -> None:
        error = HasChildren(5, 2)

        assert error.details == {"category_id": 5, "child_count": 2}

    def test_cycle_detected(self) -> None:
        error = CycleDetected(1, 4)

        assert error.code == "CYCLE_DETECTED"
        assert error.details == {"category_id": 1, "parent_id": 4}

    def test_invalid_transition_lists_allowed(self) -> None:
        error = InvalidStatusTransition("pending", "reversed", ["paid", "late"])

        assert "paid" in error.message
        assert error.from_status == "pending"
        assert error.to_status == "reversed"
