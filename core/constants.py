"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    LOG_LEVEL: str = "INFO"
    BUSY_TIMEOUT_MS: int = 30000

    # 반복 거래
    INSTALLMENT_COUNT: int = 12  # 할부 개수 미지정 시
    MAX_INSTALLMENT_COUNT: int = 360

    # 목록 조회
    PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500
    RECENT_TRANSACTIONS: int = 10


class Money:
    """금액 관련 상수"""

    QUANTUM: Decimal = Decimal("0.01")  # 소수점 2자리
    ZERO: Decimal = Decimal("0.00")


class SummaryPeriods:
    """대시보드 요약 기간 프리셋 (일)"""

    ALLOWED_DAYS: tuple[int, ...] = (7, 30, 90, 180, 365)
    MAX_SPAN_DAYS: int = 3660  # 일별 잔액 시계열 상한


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "finledger.db"
