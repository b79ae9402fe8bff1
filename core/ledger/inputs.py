"""
입력 스키마 (Pydantic)

원장 연산에 들어오는 값 검증.
전송 계층(HTTP/CLI 등)과 무관하게 엔진/저장소가 직접 사용한다.

- 알 수 없는 키는 거부 (extra="forbid")
- 금액은 Decimal(소수점 2자리), float는 거부
- *Update 모델은 부분 갱신: 명시적으로 전달된 키만 적용
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Literal, Mapping, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from core.constants import Defaults
from core.domain.errors import ValidationFailed
from core.ledger.types import (
    AccountKind,
    CategoryKind,
    RecurrenceKind,
    TransactionKind,
    TransactionStatus,
)


# 정렬 허용 필드 (그 외 값은 거부)
SORTABLE_FIELDS: tuple[str, ...] = (
    "due_date",
    "payment_date",
    "amount",
    "description",
    "issue_date",
    "created_at",
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _reject_float(value: Any) -> Any:
    if isinstance(value, float):
        raise ValueError("monetary values must be exact decimals, not float")
    return value


# 금액 타입 (float 입력 거부)
Money = Annotated[Decimal, BeforeValidator(_reject_float)]


class _LedgerInput(BaseModel):
    """입력 모델 공통 설정"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def parse_input(model_cls: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """dict 또는 모델 인스턴스를 검증된 모델로 변환

    Raises:
        ValidationFailed: 필드 검증 실패 (필드별 오류 포함)
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "__root__",
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        raise ValidationFailed(
            f"Invalid {model_cls.__name__}: {summary}", errors=errors
        ) from e


def transaction_rule_violations(
    *,
    kind: TransactionKind,
    status: TransactionStatus,
    payment_date: date | None,
    source_account_id: int | None,
    destination_account_id: int | None,
    category_id: int | None,
    recurrence: RecurrenceKind,
    parent_id: int | None = None,
) -> list[dict[str, str]]:
    """거래 필드 간 규칙 위반 목록

    생성 입력 검증과 갱신 후 병합 결과 검증에 공통 사용.
    """
    errors: list[dict[str, str]] = []

    def add(field_name: str, message: str) -> None:
        errors.append({"field": field_name, "message": message})

    if kind == TransactionKind.TRANSFER:
        if destination_account_id is None:
            add("destination_account_id", "required for transfers")
        elif destination_account_id == source_account_id:
            add("destination_account_id", "must differ from source_account_id")
        if category_id is not None:
            add("category_id", "transfers cannot be categorized")
    elif destination_account_id is not None:
        add("destination_account_id", "only allowed for transfers")

    if payment_date is not None and status not in (
        TransactionStatus.PAID,
        TransactionStatus.REVERSED,
    ):
        add("payment_date", f"not allowed with status '{status.value}'")
    if status == TransactionStatus.PAID and payment_date is None:
        add("payment_date", "required when status is 'paid'")

    if recurrence != RecurrenceKind.NONE and parent_id is not None:
        add("recurrence", "only a series root may recur")

    return errors


# =============================================================================
# 계좌
# =============================================================================


class AccountCreate(_LedgerInput):
    """계좌 생성 입력"""

    name: str = Field(..., min_length=1, max_length=120, description="표시 이름")
    kind: AccountKind = Field(default=AccountKind.CHECKING, description="계좌 유형")
    initial_balance: Money = Field(
        default=Decimal("0.00"),
        max_digits=14,
        decimal_places=2,
        description="초기 잔액 (음수 허용: 신용카드 등)",
    )
    color: str | None = Field(default=None, max_length=32, description="색상 태그")
    bank_name: str | None = Field(default=None, max_length=120, description="은행명")
    branch: str | None = Field(default=None, max_length=32, description="지점")
    account_number: str | None = Field(default=None, max_length=64, description="계좌번호")
    is_active: bool = Field(default=True, description="활성 여부")

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {"name": "Conta Corrente", "kind": "checking", "initial_balance": "1500.00"},
            ]
        },
    )


class AccountUpdate(_LedgerInput):
    """계좌 부분 갱신 입력"""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    kind: AccountKind | None = None
    initial_balance: Money | None = Field(default=None, max_digits=14, decimal_places=2)
    color: str | None = Field(default=None, max_length=32)
    bank_name: str | None = Field(default=None, max_length=120)
    branch: str | None = Field(default=None, max_length=32)
    account_number: str | None = Field(default=None, max_length=64)
    is_active: bool | None = None


# =============================================================================
# 카테고리 / 비용 센터
# =============================================================================


class CategoryCreate(_LedgerInput):
    """카테고리 생성 입력"""

    name: str = Field(..., min_length=1, max_length=120)
    kind: CategoryKind = Field(..., description="income / expense / either")
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=32)
    icon: str | None = Field(default=None, max_length=64)
    parent_id: int | None = Field(default=None, ge=1, description="상위 카테고리 ID")
    is_active: bool = True


class CategoryUpdate(_LedgerInput):
    """카테고리 부분 갱신 입력 (parent_id=None 전달 시 최상위로 이동)"""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    kind: CategoryKind | None = None
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=32)
    icon: str | None = Field(default=None, max_length=64)
    parent_id: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class CostCenterCreate(_LedgerInput):
    """비용 센터 생성 입력"""

    name: str = Field(..., min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=32)
    is_active: bool = True


class CostCenterUpdate(_LedgerInput):
    """비용 센터 부분 갱신 입력"""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=32)
    is_active: bool | None = None


# =============================================================================
# 거래
# =============================================================================


class TransactionCreate(_LedgerInput):
    """거래 생성 입력

    recurrence ≠ none 이면 installment_count개의 할부가 함께 생성된다
    (미지정 시 설정의 default_installment_count).
    """

    kind: TransactionKind
    description: str = Field(..., min_length=1, max_length=500)
    amount: Money = Field(..., gt=0, max_digits=14, decimal_places=2)
    issue_date: date | None = Field(default=None, description="발행일 (미지정 시 만기일)")
    due_date: date
    payment_date: date | None = None
    status: TransactionStatus = TransactionStatus.PENDING
    recurrence: RecurrenceKind = RecurrenceKind.NONE
    installment_count: int | None = Field(
        default=None, ge=1, le=Defaults.MAX_INSTALLMENT_COUNT
    )
    source_account_id: int = Field(..., ge=1)
    destination_account_id: int | None = Field(default=None, ge=1)
    category_id: int | None = Field(default=None, ge=1)
    cost_center_id: int | None = Field(default=None, ge=1)
    document_number: str | None = Field(default=None, max_length=64)
    reconciled: bool = False
    notes: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {
                    "kind": "expense",
                    "description": "Aluguel",
                    "amount": "1200.00",
                    "due_date": "2025-01-31",
                    "recurrence": "monthly",
                    "installment_count": 3,
                    "source_account_id": 1,
                    "category_id": 4,
                },
            ]
        },
    )

    @model_validator(mode="after")
    def _check_rules(self) -> "TransactionCreate":
        if self.issue_date is None:
            self.issue_date = self.due_date
        if self.status == TransactionStatus.REVERSED:
            raise ValueError("status: a transaction cannot be created as 'reversed'")
        violations = transaction_rule_violations(
            kind=self.kind,
            status=self.status,
            payment_date=self.payment_date,
            source_account_id=self.source_account_id,
            destination_account_id=self.destination_account_id,
            category_id=self.category_id,
            recurrence=self.recurrence,
        )
        if violations:
            raise ValueError(
                "; ".join(f"{v['field']}: {v['message']}" for v in violations)
            )
        return self


class TransactionUpdate(_LedgerInput):
    """거래 부분 갱신 입력

    필드 간 규칙은 기존 값과 병합한 뒤 엔진에서 검증한다.
    """

    kind: TransactionKind | None = None
    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: Money | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    issue_date: date | None = None
    due_date: date | None = None
    payment_date: date | None = None
    status: TransactionStatus | None = None
    recurrence: RecurrenceKind | None = None
    source_account_id: int | None = Field(default=None, ge=1)
    destination_account_id: int | None = Field(default=None, ge=1)
    category_id: int | None = Field(default=None, ge=1)
    cost_center_id: int | None = Field(default=None, ge=1)
    document_number: str | None = Field(default=None, max_length=64)
    reconciled: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _check_required_not_null(self) -> "TransactionUpdate":
        # NOT NULL 컬럼은 None으로 지울 수 없음
        for name in (
            "kind",
            "description",
            "amount",
            "issue_date",
            "due_date",
            "status",
            "recurrence",
            "source_account_id",
            "reconciled",
        ):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name}: cannot be null")
        return self


class PaymentRequest(_LedgerInput):
    """지급/지급취소 요청

    pay=True: pending/late → paid (payment_date 미지정 시 오늘, amount로 금액 변경 가능)
    pay=False: paid → reversed
    """

    pay: bool = True
    payment_date: date | None = None
    amount: Money | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)

    @model_validator(mode="after")
    def _check_reverse_fields(self) -> "PaymentRequest":
        if not self.pay and (self.payment_date is not None or self.amount is not None):
            raise ValueError("payment_date/amount only apply when pay is true")
        return self


class TransactionFilter(_LedgerInput):
    """거래 목록 필터/페이지/정렬

    날짜 범위는 만기일 기준, account_id는 출금/입금 계좌 모두 매칭.
    """

    kind: TransactionKind | None = None
    status: TransactionStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    account_id: int | None = Field(default=None, ge=1)
    category_id: int | None = Field(default=None, ge=1)
    cost_center_id: int | None = Field(default=None, ge=1)
    reconciled: bool | None = None
    recurrence: RecurrenceKind | None = None
    parent_id: int | None = Field(default=None, ge=1)

    limit: int | None = Field(default=None, ge=1, le=Defaults.MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)
    sort_by: str = Field(default="due_date", description=f"정렬 필드: {SORTABLE_FIELDS}")
    order: Literal["asc", "desc"] = "desc"

    @field_validator("sort_by")
    @classmethod
    def _check_sort_by(cls, value: str) -> str:
        if value not in SORTABLE_FIELDS:
            raise ValueError(f"unknown sort field '{value}'. Allowed: {list(SORTABLE_FIELDS)}")
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "TransactionFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self
