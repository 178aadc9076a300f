"""
Edge Case Engine Settings
Centralized configuration from environment variables

Values are read once at import time; a .env file in the working directory is
loaded first if present.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _get_env(key: str, default: str = "", required: bool = False) -> str:
    """Get environment variable with optional requirement enforcement."""
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set!")
    return value


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(os.getenv(key, str(default)))


def _get_env_optional_int(key: str) -> Optional[int]:
    """Get integer environment variable, None when unset or empty."""
    value = os.getenv(key, "").strip()
    return int(value) if value else None


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    return os.getenv(key, str(default)).lower() in ("true", "1", "yes")


def _get_env_list(key: str, default: str = "", separator: str = ",") -> List[str]:
    """Get list from comma-separated environment variable."""
    value = os.getenv(key, default)
    return [item.strip() for item in value.split(separator) if item.strip()]


# =============================================================================
# ENGINE SETTINGS
# =============================================================================
@dataclass
class EngineSettings:
    """Detection and recovery tuning."""

    # Optional YAML catalog; the bundled default rules are used when unset
    rules_path: Optional[str] = field(
        default_factory=lambda: _get_env("EDGE_CASE_RULES_PATH") or None
    )
    strict_catalog: bool = field(
        default_factory=lambda: _get_env_bool("EDGE_CASE_STRICT_CATALOG", False)
    )
    disabled_rules: List[str] = field(
        default_factory=lambda: _get_env_list("EDGE_CASE_DISABLED_RULES")
    )

    recent_detections_limit: int = field(
        default_factory=lambda: _get_env_int("EDGE_CASE_RECENT_LIMIT", 20)
    )
    # Unset scans the whole history the caller supplies
    recovery_history_limit: Optional[int] = field(
        default_factory=lambda: _get_env_optional_int("EDGE_CASE_RECOVERY_HISTORY_LIMIT")
    )
    batch_max_workers: int = field(
        default_factory=lambda: _get_env_int("EDGE_CASE_BATCH_WORKERS", 1)
    )
    maintenance_short_trip_km: float = field(
        default_factory=lambda: _get_env_float("EDGE_CASE_MAINTENANCE_CUTOFF_KM", 50.0)
    )

    # Baseline lookups
    use_database_baselines: bool = field(
        default_factory=lambda: _get_env_bool("EDGE_CASE_DB_BASELINES", False)
    )
    baseline_cache_bucket_km: float = field(
        default_factory=lambda: _get_env_float("EDGE_CASE_BASELINE_BUCKET_KM", 5000.0)
    )


# =============================================================================
# DATABASE SETTINGS
# =============================================================================
@dataclass
class DatabaseSettings:
    """MySQL connection used for baseline efficiency lookups."""

    host: str = field(default_factory=lambda: _get_env("MYSQL_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("MYSQL_PORT", 3306))
    user: str = field(default_factory=lambda: _get_env("MYSQL_USER", "fleet_reader"))
    password: str = field(default_factory=lambda: _get_env("MYSQL_PASSWORD", ""))
    database: str = field(
        default_factory=lambda: _get_env("MYSQL_DATABASE", "fleet_operations")
    )
    charset: str = "utf8mb4"
    connect_timeout: int = field(
        default_factory=lambda: _get_env_int("MYSQL_CONNECT_TIMEOUT", 5)
    )

    def get_connection_dict(self) -> Dict:
        """Return connection dictionary for pymysql."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "charset": self.charset,
            "connect_timeout": self.connect_timeout,
            "autocommit": True,
        }


# =============================================================================
# LOGGING SETTINGS
# =============================================================================
@dataclass
class LoggingSettings:
    level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO").upper())
    json_format: bool = field(default_factory=lambda: _get_env_bool("LOG_JSON", False))


class Settings:
    """Main settings container."""

    def __init__(self):
        self.engine = EngineSettings()
        self.database = DatabaseSettings()
        self.logging = LoggingSettings()

    def validate(self) -> List[str]:
        """Validate settings and return list of warnings."""
        warnings = []

        if self.engine.recent_detections_limit < 0:
            warnings.append("EDGE_CASE_RECENT_LIMIT is negative - no recent detections will be listed")

        if self.engine.batch_max_workers < 1:
            warnings.append("EDGE_CASE_BATCH_WORKERS below 1 - running batches sequentially")

        if self.engine.use_database_baselines and not self.database.password:
            warnings.append("MYSQL_PASSWORD not set for baseline lookups")

        return warnings

    def to_dict(self) -> Dict:
        """Export settings as dictionary (for debugging, excludes secrets)."""
        return {
            "rules_path": self.engine.rules_path,
            "strict_catalog": self.engine.strict_catalog,
            "disabled_rules": self.engine.disabled_rules,
            "recent_detections_limit": self.engine.recent_detections_limit,
            "recovery_history_limit": self.engine.recovery_history_limit,
            "batch_max_workers": self.engine.batch_max_workers,
            "maintenance_short_trip_km": self.engine.maintenance_short_trip_km,
            "use_database_baselines": self.engine.use_database_baselines,
            "database_host": self.database.host,
            "log_level": self.logging.level,
        }


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get global settings instance."""
    return settings

