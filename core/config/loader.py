"""
설정 로더

settings.yaml 로드 및 DB/원장/로깅 설정 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths, PROJECT_ROOT


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 연결 설정"""

    path: Path = Paths.LEDGER_DB
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS


@dataclass(frozen=True)
class LedgerConfig:
    """원장 엔진 설정

    불변 데이터 구조로 런타임 변경 방지
    """

    default_installment_count: int = Defaults.INSTALLMENT_COUNT
    max_installment_count: int = Defaults.MAX_INSTALLMENT_COUNT
    default_page_size: int = Defaults.PAGE_SIZE
    max_page_size: int = Defaults.MAX_PAGE_SIZE
    recent_transactions_limit: int = Defaults.RECENT_TRANSACTIONS


@dataclass(frozen=True)
class LoggingConfig:
    """로깅 설정"""

    level: str = Defaults.LOG_LEVEL
    dir: Path = Paths.LOGS_DIR


@dataclass(frozen=True)
class AppConfig:
    """전체 설정 묶음"""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class SettingsLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_path(value: str | None, default: Path) -> Path:
    """상대 경로는 프로젝트 루트 기준으로 해석"""
    if not value:
        return default
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SettingsLoadError(
            f"settings.yaml의 '{key}' 값은 1 이상의 정수여야 합니다: {value!r}"
        )
    return value


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise SettingsLoadError(f"settings.yaml의 '{name}' 섹션 형식이 잘못되었습니다")
    return section


def load_settings(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식/값이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    # database
    db_section = _section(data, "database")
    database = DatabaseConfig(
        path=_resolve_path(db_section.get("path"), Paths.LEDGER_DB),
        busy_timeout_ms=_positive_int(db_section, "busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS),
    )

    # ledger
    ledger_section = _section(data, "ledger")
    ledger = LedgerConfig(
        default_installment_count=_positive_int(
            ledger_section, "default_installment_count", Defaults.INSTALLMENT_COUNT
        ),
        max_installment_count=_positive_int(
            ledger_section, "max_installment_count", Defaults.MAX_INSTALLMENT_COUNT
        ),
        default_page_size=_positive_int(ledger_section, "default_page_size", Defaults.PAGE_SIZE),
        max_page_size=_positive_int(ledger_section, "max_page_size", Defaults.MAX_PAGE_SIZE),
        recent_transactions_limit=_positive_int(
            ledger_section, "recent_transactions_limit", Defaults.RECENT_TRANSACTIONS
        ),
    )
    if ledger.default_installment_count > ledger.max_installment_count:
        raise SettingsLoadError(
            "default_installment_count가 max_installment_count보다 클 수 없습니다"
        )
    if ledger.default_page_size > ledger.max_page_size:
        raise SettingsLoadError("default_page_size가 max_page_size보다 클 수 없습니다")

    # logging
    log_section = _section(data, "logging")
    level = str(log_section.get("level", Defaults.LOG_LEVEL)).upper()
    if level not in _VALID_LOG_LEVELS:
        raise SettingsLoadError(
            f"유효하지 않은 로그 레벨입니다: '{level}'. 유효한 값: {list(_VALID_LOG_LEVELS)}"
        )
    logging_config = LoggingConfig(
        level=level,
        dir=_resolve_path(log_section.get("dir"), Paths.LOGS_DIR),
    )

    return AppConfig(database=database, ledger=ledger, logging=logging_config)


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            type(self)._config = load_settings(settings_path)

    @property
    def config(self) -> AppConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """원장 DB 경로"""
        return self.config.database.path

    @property
    def ledger(self) -> LedgerConfig:
        """원장 엔진 설정"""
        return self.config.ledger

    @property
    def log_level(self) -> str:
        """로그 레벨"""
        return self.config.logging.level

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
