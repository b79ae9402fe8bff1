"""
원장 DB 초기화

테이블/인덱스 생성 (이미 있으면 건너뜀).

사용법:
    python -m scripts.init_ledger_db
    python -m scripts.init_ledger_db --db data/finledger.db
    python -m scripts.init_ledger_db --settings config/settings.yaml
"""

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import AppConfig, get_settings
from core.constants import Defaults, Paths
from core.ledger.schema import LEDGER_TABLES, init_ledger_schema
from core.logging import setup_logging_from_config

logger = logging.getLogger(__name__)


def resolve_config(db: str | None, settings: str | None) -> AppConfig:
    """--settings > 기본 settings.yaml(있으면) > 기본값

    --db가 있으면 DB 경로만 덮어쓴다 (잠금 대기/로깅 설정은 유지).
    """
    if settings:
        config = get_settings(Path(settings)).config
    elif Paths.SETTINGS_FILE.exists():
        config = get_settings().config
    else:
        config = AppConfig()

    if db:
        config = replace(config, database=replace(config.database, path=Path(db)))
    return config


def resolve_db_path(db: str | None, settings: str | None) -> Path:
    """--db > --settings > 기본 settings.yaml(있으면) > 기본 경로"""
    return resolve_config(db, settings).database.path


async def main(db_path: Path, busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS) -> None:
    """스키마 초기화 실행

    Args:
        db_path: 원장 DB 경로
        busy_timeout_ms: 잠금 대기 시간 (밀리초)
    """
    logger.info(f"원장 DB 초기화: {db_path}")

    async with SQLiteAdapter(db_path, busy_timeout_ms=busy_timeout_ms) as db:
        await init_ledger_schema(db)

        for table in LEDGER_TABLES:
            exists = await db.table_exists(table)
            logger.info(f"  - {table}: {'OK' if exists else 'MISSING'}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="원장 DB 초기화")
    parser.add_argument("--db", help="DB 파일 경로 (기본: settings.yaml 또는 data/finledger.db)")
    parser.add_argument("--settings", help="settings.yaml 경로")
    args = parser.parse_args()

    config = resolve_config(args.db, args.settings)
    setup_logging_from_config("init_ledger_db", config.logging)

    asyncio.run(main(config.database.path, config.database.busy_timeout_ms))
