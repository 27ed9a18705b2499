import os
import re
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_TRUTHY = {"1", "true", "yes", "y", "on"}
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ConfigError(ValueError):
    pass


class Settings:
    def __init__(
        self,
        server_url: str,
        api_key: str,
        sync_id: str,
        monthly_target: Decimal,
        recon_start_day: int = 28,
        recon_end_day: int = 5,
        recon_time: str = "02:00",
        other_category: Optional[str] = None,
        dry_run: bool = False,
        bank_sync: bool = False,
        health_port: int = 8080,
        timezone: str = "UTC",
        encryption_password: Optional[str] = None,
        http_timeout_secs: float = 30.0,
    ) -> None:
        self.server_url = server_url
        self.api_key = api_key
        self.sync_id = sync_id
        self.monthly_target = monthly_target
        self.recon_start_day = recon_start_day
        self.recon_end_day = recon_end_day
        self.recon_time = recon_time
        self.other_category = other_category
        self.dry_run = dry_run
        self.bank_sync = bank_sync
        self.health_port = health_port
        self.timezone = timezone
        self.encryption_password = encryption_password
        self.http_timeout_secs = http_timeout_secs

    @property
    def recon_hour_minute(self) -> tuple[int, int]:
        hours, minutes = self.recon_time.split(":")
        return int(hours), int(minutes)


def _required(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = (env.get(name) or "").strip()
    return value or None


def _optional_int(env: Mapping[str, str], name: str, fallback: int) -> int:
    value = _optional(env, name)
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer for {name}: {value}") from exc


def _optional_bool(env: Mapping[str, str], name: str) -> bool:
    value = _optional(env, name)
    return value is not None and value.lower() in _TRUTHY


def _parse_target(raw: str) -> Decimal:
    try:
        target = Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigError(
            f"FAFO_MONTHLY_TARGET must be a positive number, got {raw}"
        ) from exc
    if not target.is_finite() or target <= 0:
        raise ConfigError(f"FAFO_MONTHLY_TARGET must be a positive number, got {raw}")
    return target


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    recon_start_day = _optional_int(env, "FAFO_RECON_START_DAY", 28)
    recon_end_day = _optional_int(env, "FAFO_RECON_END_DAY", 5)
    recon_time = _optional(env, "FAFO_RECON_TIME") or "02:00"

    if not 1 <= recon_start_day <= 31:
        raise ConfigError(f"FAFO_RECON_START_DAY must be 1-31, got {recon_start_day}")
    if not 1 <= recon_end_day <= 28:
        raise ConfigError(f"FAFO_RECON_END_DAY must be 1-28, got {recon_end_day}")
    if not _TIME_RE.match(recon_time):
        raise ConfigError(f"FAFO_RECON_TIME must be HH:MM format, got {recon_time}")

    monthly_target = _parse_target(_required(env, "FAFO_MONTHLY_TARGET"))

    timezone = _optional(env, "FAFO_TIMEZONE") or "UTC"
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"FAFO_TIMEZONE is not a known timezone: {timezone}") from exc

    timeout_raw = _optional(env, "FAFO_HTTP_TIMEOUT_SECS") or "30"
    try:
        http_timeout_secs = float(timeout_raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid number for FAFO_HTTP_TIMEOUT_SECS: {timeout_raw}") from exc
    if http_timeout_secs <= 0:
        raise ConfigError(
            f"FAFO_HTTP_TIMEOUT_SECS must be positive, got {timeout_raw}"
        )

    return Settings(
        server_url=_required(env, "ACTUAL_SERVER_URL"),
        api_key=_required(env, "ACTUAL_API_KEY"),
        sync_id=_required(env, "ACTUAL_SYNC_ID"),
        monthly_target=monthly_target,
        recon_start_day=recon_start_day,
        recon_end_day=recon_end_day,
        recon_time=recon_time,
        other_category=_optional(env, "FAFO_OTHER_CATEGORY"),
        dry_run=_optional_bool(env, "FAFO_DRY_RUN"),
        bank_sync=_optional_bool(env, "FAFO_BANK_SYNC"),
        health_port=_optional_int(env, "FAFO_HEALTH_PORT", 8080),
        timezone=timezone,
        encryption_password=_optional(env, "ACTUAL_ENCRYPTION_PASSWORD"),
        http_timeout_secs=http_timeout_secs,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
