from __future__ import annotations
import os

# ------------------------------------------------------------------------------
# Helper: get env var with fallback
# ------------------------------------------------------------------------------
def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return v if v is not None and v != "" else default

def _env_list(name: str, default: str = "") -> list[str]:
    return [p.strip() for p in _env(name, default).split(",") if p.strip()]

# ------------------------------------------------------------------------------
# Store
# ------------------------------------------------------------------------------
DB_URL: str = _env("DB_URL", "sqlite://./db.sqlite3")
DB_GENERATE_SCHEMAS: bool = _env("DB_GENERATE_SCHEMAS", "true").lower() in ("1", "true", "yes")

# ------------------------------------------------------------------------------
# Logging / HTTP
# ------------------------------------------------------------------------------
LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")
LOG_FORMAT: str = _env("LOG_FORMAT", "text")  # text | json
CORS_ORIGINS: list[str] = _env_list("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")

# ------------------------------------------------------------------------------
# Reports
# ------------------------------------------------------------------------------
PERIOD_MAX_SUB_CLIENTS: int = int(_env("PERIOD_MAX_SUB_CLIENTS", "4"))
LATEST_REPORTS_LIMIT: int = int(_env("LATEST_REPORTS_LIMIT", "10"))
RECENT_LOSSES_MONTHS: int = int(_env("RECENT_LOSSES_MONTHS", "4"))

# DISCOM buckets that may carry credited-energy targets in a losses request
DISCOM_KEYS: list[str] = _env_list("DISCOM_KEYS", "DGVCL,MGVCL,PGVCL,UGVCL,TAECO,TSECO,TEL")

# Date layouts accepted in interval and logger data (first match wins)
INTERVAL_DATE_FORMATS: list[str] = _env_list("INTERVAL_DATE_FORMATS", "%d-%m-%Y,%d/%m/%Y,%Y-%m-%d")
