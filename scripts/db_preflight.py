"""Database and ERP production preflight checks.

Usage:
    python scripts/db_preflight.py

Checks the deployment safety requirements before a StockTake release.
Exits non-zero when any required control fails.
"""

from __future__ import annotations

import os
import sys


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def run() -> int:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    database_url = os.getenv("DATABASE_URL", "sqlite:///./stocktake.db")
    auto_create_tables = _bool_env("AUTO_CREATE_TABLES", True)
    erp_base_url = os.getenv("ERP_BASE_URL", "").strip()
    erp_api_token = os.getenv("ERP_API_TOKEN", "").strip()

    checks: list[tuple[str, bool, str]] = []

    checks.append((
        "ENVIRONMENT is explicitly set",
        bool(environment),
        f"ENVIRONMENT={environment or '<empty>'}",
    ))

    if environment in {"production", "prod"}:
        checks.extend(
            [
                (
                    "DATABASE_URL is not SQLite",
                    "sqlite" not in database_url.lower(),
                    f"DATABASE_URL={database_url}",
                ),
                (
                    "AUTO_CREATE_TABLES is disabled",
                    not auto_create_tables,
                    f"AUTO_CREATE_TABLES={auto_create_tables}",
                ),
                (
                    "ERP_BASE_URL is configured",
                    bool(erp_base_url),
                    f"ERP_BASE_URL={erp_base_url or '<empty>'}",
                ),
                (
                    "ERP_API_TOKEN is set",
                    bool(erp_api_token),
                    "ERP_API_TOKEN is set" if erp_api_token else "ERP_API_TOKEN is missing",
                ),
            ]
        )

    has_failures = False
    print("StockTake Preflight")
    print(f"- environment: {environment}")
    for title, ok, detail in checks:
        marker = "PASS" if ok else "FAIL"
        print(f"[{marker}] {title} ({detail})")
        if not ok:
            has_failures = True

    if has_failures:
        print("\nPreflight failed. Resolve failed checks before deployment.")
        return 1

    print("\nPreflight passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
