"""
pytest 공통 fixture 정의
"""

import tempfile
from pathlib import Path

import pytest

from core.config.loader import Settings


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    content = """# 테스트용 settings.yaml
database:
  path: ledger_test.db
  busy_timeout_ms: 5000

ledger:
  default_installment_count: 6
  max_installment_count: 24
  default_page_size: 20
  max_page_size: 100
  recent_transactions_limit: 5

logging:
  level: debug
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(content, encoding="utf-8")
    return settings_path


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()
