from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


ACCOUNT_SERVICE_PORT = "ACCOUNT_SERVICE_PORT"
ACCOUNT_TIMEZONE = "ACCOUNT_TIMEZONE"
ACCOUNT_INITIAL_POINTS = "ACCOUNT_INITIAL_POINTS"
ACCOUNT_DAILY_COST = "ACCOUNT_DAILY_COST"
ACCOUNT_CHECK_IN_BONUS = "ACCOUNT_CHECK_IN_BONUS"
ACCOUNT_ACTIVATION_FEE = "ACCOUNT_ACTIVATION_FEE"
ACCOUNT_PURGE_AFTER_DAYS = "ACCOUNT_PURGE_AFTER_DAYS"
ACCOUNT_USER_DATA_ROOT = "ACCOUNT_USER_DATA_ROOT"
ACCOUNT_MAX_UPDATE_RETRIES = "ACCOUNT_MAX_UPDATE_RETRIES"


@dataclass(slots=True)
class LedgerConfig:
    """포인트 원장 정책 값.

    포인트는 항상 0.5 단위이므로 금액 관련 값도 0.5 의 배수여야 한다.
    """

    initial_points: float = 20.0
    daily_cost: float = 1.0
    check_in_bonus: float = 5.0
    activation_fee: float = 1.0
    purge_after_days: int = 30
    max_update_retries: int = 5


@dataclass(slots=True)
class AppConfig:
    """account-service 전체 설정 루트."""

    port: int = 8003
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    user_data_root: Path = field(default_factory=lambda: Path("data"))
    ledger: LedgerConfig = field(default_factory=LedgerConfig)


def _read_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"invalid {name}: {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}: {raw!r}")
    return value


def _read_points(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"invalid {name}: {raw!r}") from exc
    if value < 0 or (value * 2) != int(value * 2):
        raise RuntimeError(f"{name} must be a non-negative multiple of 0.5: {raw!r}")
    return value


def load_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        initial_points=_read_points(ACCOUNT_INITIAL_POINTS, 20.0),
        daily_cost=_read_points(ACCOUNT_DAILY_COST, 1.0),
        check_in_bonus=_read_points(ACCOUNT_CHECK_IN_BONUS, 5.0),
        activation_fee=_read_points(ACCOUNT_ACTIVATION_FEE, 1.0),
        purge_after_days=_read_int(ACCOUNT_PURGE_AFTER_DAYS, 30, minimum=1),
        max_update_retries=_read_int(ACCOUNT_MAX_UPDATE_RETRIES, 5, minimum=1),
    )


def load_timezone() -> ZoneInfo:
    raw = os.getenv(ACCOUNT_TIMEZONE, "UTC").strip() or "UTC"
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"invalid {ACCOUNT_TIMEZONE}: {raw!r}") from exc


def load_config() -> AppConfig:
    """account-service 설정을 로드하여 AppConfig 로 반환한다."""

    return AppConfig(
        port=_read_int(ACCOUNT_SERVICE_PORT, 8003, minimum=1),
        timezone=load_timezone(),
        user_data_root=Path(os.getenv(ACCOUNT_USER_DATA_ROOT, "data")),
        ledger=load_ledger_config(),
    )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """FastAPI DI용 설정 싱글톤."""

    return load_config()
