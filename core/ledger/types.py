"""
원장 타입 정의

계좌/카테고리/거래에서 사용하는 Enum 정의.
str을 상속하여 DB(TEXT)와 JSON에 값 그대로 저장된다.
"""

from enum import Enum


class AccountKind(str, Enum):
    """계좌 유형"""

    CHECKING = "checking"  # 입출금
    SAVINGS = "savings"  # 저축
    INVESTMENT = "investment"  # 투자
    CREDIT_CARD = "credit_card"  # 신용카드
    DEBIT_CARD = "debit_card"  # 체크카드
    CASH = "cash"  # 현금
    OTHER = "other"


class CategoryKind(str, Enum):
    """카테고리 유형

    EITHER는 수입/지출 모두에 사용 가능하지만 이체에는 사용 불가.
    """

    INCOME = "income"
    EXPENSE = "expense"
    EITHER = "either"


class TransactionKind(str, Enum):
    """거래 유형"""

    INCOME = "income"  # 수입 (source 계좌 +)
    EXPENSE = "expense"  # 지출 (source 계좌 -)
    TRANSFER = "transfer"  # 이체 (source -, destination +)


class TransactionStatus(str, Enum):
    """거래 상태

    전이 규칙은 core.domain.state_machines.TRANSACTION_TRANSITIONS 참고.
    """

    PENDING = "pending"
    PAID = "paid"
    LATE = "late"
    CANCELLED = "cancelled"
    REVERSED = "reversed"


class RecurrenceKind(str, Enum):
    """반복 주기"""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"  # 15일 간격
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


def category_accepts(category_kind: CategoryKind | str, transaction_kind: TransactionKind | str) -> bool:
    """카테고리가 해당 거래 유형에 사용 가능한지 여부

    이체는 어떤 카테고리도 가질 수 없다.
    """
    category_kind = CategoryKind(category_kind)
    transaction_kind = TransactionKind(transaction_kind)

    if transaction_kind == TransactionKind.TRANSFER:
        return False
    if category_kind == CategoryKind.EITHER:
        return True
    return category_kind.value == transaction_kind.value
