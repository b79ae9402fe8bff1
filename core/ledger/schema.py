"""
원장 스키마 초기화

시작 시 호출되어 원장 테이블과 인덱스를 생성.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.

모든 테이블은 tenant_id로 격리되며, 조회용 인덱스는 tenant_id로 시작한다.
금액 컬럼은 Decimal 문자열(TEXT), 날짜 컬럼은 YYYY-MM-DD.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


LEDGER_TABLES: tuple[str, ...] = ("accounts", "categories", "cost_centers", "transactions")


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """원장 스키마 초기화 (테이블 + 인덱스)

    Args:
        db: 연결된 SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await db.commit()
    logger.info("원장 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """원장 테이블 생성"""

    # accounts (version: 잔액 갱신 낙관적 락)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            tenant_id        INTEGER NOT NULL,
            name             TEXT NOT NULL,
            kind             TEXT NOT NULL,
            bank_name        TEXT,
            branch           TEXT,
            account_number   TEXT,
            initial_balance  TEXT NOT NULL DEFAULT '0.00',
            current_balance  TEXT NOT NULL DEFAULT '0.00',
            color            TEXT,
            is_active        INTEGER NOT NULL DEFAULT 1,
            version          INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # categories (parent_id: 자기 참조 계층)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            tenant_id        INTEGER NOT NULL,
            name             TEXT NOT NULL,
            description      TEXT,
            kind             TEXT NOT NULL,
            color            TEXT,
            icon             TEXT,
            parent_id        INTEGER REFERENCES categories(id),
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # cost_centers
    await db.execute("""
        CREATE TABLE IF NOT EXISTS cost_centers (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            tenant_id        INTEGER NOT NULL,
            name             TEXT NOT NULL,
            description      TEXT,
            color            TEXT,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # transactions (parent_id: 할부 시리즈 루트)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id                      INTEGER PRIMARY KEY AUTOINCREMENT,
            tenant_id               INTEGER NOT NULL,
            kind                    TEXT NOT NULL,
            description             TEXT NOT NULL,
            amount                  TEXT NOT NULL,
            issue_date              TEXT NOT NULL,
            due_date                TEXT NOT NULL,
            payment_date            TEXT,
            status                  TEXT NOT NULL DEFAULT 'pending',
            recurrence              TEXT NOT NULL DEFAULT 'none',
            source_account_id       INTEGER NOT NULL REFERENCES accounts(id),
            destination_account_id  INTEGER REFERENCES accounts(id),
            category_id             INTEGER REFERENCES categories(id),
            cost_center_id          INTEGER REFERENCES cost_centers(id),
            parent_id               INTEGER REFERENCES transactions(id),
            document_number         TEXT,
            reconciled              INTEGER NOT NULL DEFAULT 0,
            notes                   TEXT,
            created_by              TEXT,
            updated_by              TEXT,
            created_at              TEXT NOT NULL,
            updated_at              TEXT NOT NULL
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성 (모두 tenant_id 선두)"""
    await db.execute("CREATE INDEX IF NOT EXISTS idx_accounts_tenant ON accounts(tenant_id, id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_accounts_tenant_active ON accounts(tenant_id, is_active)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_categories_tenant ON categories(tenant_id, id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_categories_tenant_parent ON categories(tenant_id, parent_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_cost_centers_tenant ON cost_centers(tenant_id, id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant ON transactions(tenant_id, id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_parent ON transactions(tenant_id, parent_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_due ON transactions(tenant_id, due_date)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_payment ON transactions(tenant_id, payment_date)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_status ON transactions(tenant_id, status)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_source ON transactions(tenant_id, source_account_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_destination ON transactions(tenant_id, destination_account_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_category ON transactions(tenant_id, category_id)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_tenant_cost_center ON transactions(tenant_id, cost_center_id)")
