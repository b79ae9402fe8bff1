"""
원장 엔진

테넌트별 계좌/카테고리/비용 센터와 수입·지출·이체 거래를 관리하고
거래 정산 상태에 따라 계좌 잔액을 일관되게 유지한다.

사용 예시:
```python
from core.ledger import TransactionEngine, init_ledger_schema

await init_ledger_schema(db)
engine = TransactionEngine(db)

checking = await engine.accounts.create(tenant_id, {"name": "Conta", "initial_balance": "500.00"})
created = await engine.create(tenant_id, {
    "kind": "income",
    "description": "Salário",
    "amount": "3000.00",
    "due_date": "2025-02-05",
    "source_account_id": checking.id,
})
await engine.pay(tenant_id, created.transaction.id)

summary = await engine.summary_for_days(tenant_id, 30)
```
"""

from core.ledger.account_store import AccountStore
from core.ledger.category_store import CategoryStore
from core.ledger.cost_center_store import CostCenterStore
from core.ledger.reports import LedgerReports
from core.ledger.schema import init_ledger_schema
from core.ledger.transaction_engine import TransactionEngine
from core.ledger.types import (
    AccountKind,
    CategoryKind,
    RecurrenceKind,
    TransactionKind,
    TransactionStatus,
)

__all__ = [
    # 핵심 클래스
    "TransactionEngine",
    "AccountStore",
    "CategoryStore",
    "CostCenterStore",
    "LedgerReports",
    "init_ledger_schema",
    # Enum
    "AccountKind",
    "CategoryKind",
    "TransactionKind",
    "TransactionStatus",
    "RecurrenceKind",
]
