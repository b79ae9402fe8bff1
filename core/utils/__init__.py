"""
공통 유틸리티
"""

from core.utils.timezone import format_date, parse_date, utc_now, utc_now_iso

__all__ = [
    "utc_now",
    "utc_now_iso",
    "parse_date",
    "format_date",
]
