"""
계좌 잔액 감사

저장된 current_balance를 초기 잔액 + 정산 거래 효과로 재계산한 값과 비교.
불일치가 있으면 종료 코드 1.

사용법:
    python -m scripts.audit_balances --tenant 1
    python -m scripts.audit_balances --tenant 1 --db data/finledger.db
"""

import argparse
import asyncio
import logging
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Defaults
from core.ledger.reports import LedgerReports
from core.logging import setup_logging_from_config
from scripts.init_ledger_db import resolve_config

logger = logging.getLogger(__name__)


async def main(
    db_path: Path,
    tenant_id: int,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> int:
    """감사 실행

    Returns:
        불일치 계좌 수
    """
    async with SQLiteAdapter(db_path, readonly=True, busy_timeout_ms=busy_timeout_ms) as db:
        drifts = await LedgerReports(db).audit_balances(tenant_id)

    if not drifts:
        logger.info(f"테넌트 {tenant_id}: 모든 계좌 잔액 일치")
        return 0

    for drift in drifts:
        logger.error(
            f"  - 계좌 {drift.account_id} ({drift.name}): "
            f"저장 {drift.recorded} / 기대 {drift.expected} / 차이 {drift.difference}"
        )
    return len(drifts)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="계좌 잔액 감사")
    parser.add_argument("--tenant", type=int, required=True, help="테넌트 ID")
    parser.add_argument("--db", help="DB 파일 경로")
    parser.add_argument("--settings", help="settings.yaml 경로")
    args = parser.parse_args()

    config = resolve_config(args.db, args.settings)
    setup_logging_from_config("audit_balances", config.logging)

    mismatches = asyncio.run(
        main(config.database.path, args.tenant, config.database.busy_timeout_ms)
    )
    sys.exit(1 if mismatches else 0)
