"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
원장 쓰기 연결과 리포트용 읽기 전용 연결이 동시에 접근 가능하도록 설정.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults
from core.domain.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)


def _is_lock_error(error: sqlite3.OperationalError) -> bool:
    """SQLITE_BUSY / SQLITE_LOCKED 여부"""
    message = str(error).lower()
    return "locked" in message or "busy" in message


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)

    # 디렉토리가 없으면 생성
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if readonly:
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)
        # WAL 모드 설정 (읽기 전용 연결에서는 변경 불가)
        await conn.execute("PRAGMA journal_mode=WAL")

    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    원자적 작업 단위(transaction) 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (리포트 조회용)
        busy_timeout_ms: 잠금 대기 시간 (초과 시 ConcurrencyConflict)

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """작업 단위 진행 중 여부"""
        return self._tx_lock.locked()

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(
            self.db_path, self.readonly, self.busy_timeout_ms
        )

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    @asynccontextmanager
    async def _unit_guard(self) -> AsyncIterator[None]:
        """다른 태스크의 작업 단위가 끝날 때까지 대기

        같은 연결을 공유하므로 진행 중인 작업 단위의 미커밋 변경이
        다른 태스크에 보이지 않도록 한다. 작업 단위를 연 태스크는 그대로 통과.
        """
        if self._tx_owner is not None and self._tx_owner is asyncio.current_task():
            yield
            return
        async with self._tx_lock:
            yield

    async def _execute(
        self,
        conn: aiosqlite.Connection,
        sql: str,
        parameters: tuple[Any, ...] | None,
    ) -> aiosqlite.Cursor:
        if parameters:
            return await conn.execute(sql, parameters)
        return await conn.execute(sql)

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        conn = self._require_conn()
        async with self._unit_guard():
            return await self._execute(conn, sql, parameters)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        conn = self._require_conn()
        async with self._unit_guard():
            return await conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        conn = self._require_conn()
        async with self._unit_guard():
            cursor = await self._execute(conn, sql, parameters)
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        conn = self._require_conn()
        async with self._unit_guard():
            cursor = await self._execute(conn, sql, parameters)
            return list(await cursor.fetchall())

    async def fetchone_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> dict[str, Any] | None:
        """단일 행 조회 (컬럼명 → 값 dict)"""
        conn = self._require_conn()
        async with self._unit_guard():
            cursor = await self._execute(conn, sql, parameters)
            row = await cursor.fetchone()
        if row is None:
            return None
        columns = [col[0] for col in cursor.description]
        return dict(zip(columns, row))

    async def fetchall_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """전체 행 조회 (컬럼명 → 값 dict 목록)"""
        conn = self._require_conn()
        async with self._unit_guard():
            cursor = await self._execute(conn, sql, parameters)
            rows = await cursor.fetchall()
        columns = [col[0] for col in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """원자적 작업 단위 컨텍스트 매니저

        BEGIN IMMEDIATE로 쓰기 잠금을 먼저 확보한 뒤 검증 조회 → 변경을 수행.
        성공 시 자동 커밋, 예외 시 자동 롤백 후 원래 예외를 다시 던짐.
        같은 연결의 작업 단위는 asyncio.Lock으로 직렬화된다 (중첩 호출 금지).
        작업 단위가 열려 있는 동안 다른 태스크의 조회는 커밋/롤백까지 대기한다.

        Raises:
            ConcurrencyConflict: 잠금 대기 시간 초과 (재시도 가능)

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("UPDATE ...")
            # 성공 시 자동 커밋
        ```
        """
        conn = self._require_conn()

        async with self._tx_lock:
            self._tx_owner = asyncio.current_task()
            try:
                try:
                    await conn.execute("BEGIN IMMEDIATE")
                except sqlite3.OperationalError as e:
                    if _is_lock_error(e):
                        raise ConcurrencyConflict(
                            "Could not acquire write lock",
                            db_path=str(self.db_path),
                        ) from e
                    raise

                try:
                    yield conn
                    await conn.commit()
                except sqlite3.OperationalError as e:
                    await conn.rollback()
                    if _is_lock_error(e):
                        raise ConcurrencyConflict(
                            "Database write conflict",
                            db_path=str(self.db_path),
                        ) from e
                    raise
                except BaseException:
                    await conn.rollback()
                    raise
            finally:
                self._tx_owner = None

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def index_columns(self, index_name: str) -> list[str]:
        """인덱스 컬럼 목록 조회 (순서대로)"""
        rows = await self.fetchall(f"PRAGMA index_info({index_name})")
        return [row[2] for row in sorted(rows, key=lambda r: r[0])]

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
