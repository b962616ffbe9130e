from __future__ import annotations

import os
from typing import List, Optional

# Make this module act like a package so that `from sales_dashboard.config.defaults import ...`
# works even though this file exists. This avoids the name clash with the directory `config/`.
__path__ = [os.path.join(os.path.dirname(__file__), "config")]


def _split_csv_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    # Upload ceiling, checked before any parsing happens
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10MB default

    # Logging
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Number of buckets returned for the grouped dashboard chart
    CHART_TOP_N: int = int(os.getenv("CHART_TOP_N", "10"))

    CORS_ORIGINS: List[str] = _split_csv_env(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )


settings = Settings()
