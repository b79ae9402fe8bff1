"""
원장 통합 테스트 fixture

임시 SQLite 파일에 스키마를 만들고 테넌트 2개를 기본 데이터로 채운다.
"""

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import LedgerConfig
from core.ledger.schema import init_ledger_schema
from core.ledger.transaction_engine import TransactionEngine


# 고정된 "오늘" (지급일 기본값, 연체 분류, 요약 기간)
TODAY = date(2025, 3, 15)


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db", busy_timeout_ms=1000)
    await adapter.connect()
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """테스트용 원장 설정"""
    return LedgerConfig(
        default_installment_count=3,
        max_installment_count=12,
        default_page_size=10,
        max_page_size=50,
        recent_transactions_limit=5,
    )


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def engine(db: SQLiteAdapter, ledger_config: LedgerConfig, today: date) -> TransactionEngine:
    """고정 날짜를 사용하는 거래 엔진"""
    return TransactionEngine(db, config=ledger_config, today=lambda: today)


@pytest_asyncio.fixture
async def seed(engine: TransactionEngine, db: SQLiteAdapter) -> SimpleNamespace:
    """기본 데이터

    테넌트 1: 계좌 2개, 카테고리 3개 (income/expense/either), 비용 센터 1개
    테넌트 2: 계좌/카테고리 각 1개

    모든 계좌 생성일은 2025-01-01로 고정.
    """
    tenant, other_tenant = 1, 2

    checking = await engine.accounts.create(
        tenant, {"name": "Checking", "kind": "checking", "initial_balance": "1000.00"}
    )
    savings = await engine.accounts.create(
        tenant, {"name": "Savings", "kind": "savings", "initial_balance": "500.00"}
    )
    salary = await engine.categories.create(
        tenant, {"name": "Salary", "kind": "income", "color": "#00aa00"}
    )
    rent = await engine.categories.create(
        tenant, {"name": "Rent", "kind": "expense", "color": "#aa0000"}
    )
    misc = await engine.categories.create(tenant, {"name": "Misc", "kind": "either"})
    ops = await engine.cost_centers.create(tenant, {"name": "Ops"})

    foreign_account = await engine.accounts.create(
        other_tenant, {"name": "Foreign", "initial_balance": "50.00"}
    )
    foreign_category = await engine.categories.create(
        other_tenant, {"name": "Foreign Rent", "kind": "expense"}
    )

    await db.execute("UPDATE accounts SET created_at = '2025-01-01T00:00:00+00:00'")
    await db.commit()

    return SimpleNamespace(
        tenant=tenant,
        other_tenant=other_tenant,
        checking=checking,
        savings=savings,
        salary=salary,
        rent=rent,
        misc=misc,
        ops=ops,
        foreign_account=foreign_account,
        foreign_category=foreign_category,
    )
