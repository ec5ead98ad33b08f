from __future__ import annotations

"""Preflight checks for container startup.

- ensures data directory exists for SQLite
- prints config summary with credentials masked
"""

import os
from trucktracker.config import settings


def mask_database_url(db_url: str) -> str:
    if "@" in db_url:
        # Hide password: show scheme + host only
        parts = db_url.split("@")
        return parts[0].split("://")[0] + "://***@" + parts[-1]
    return db_url


def mask_token(token: str | None) -> str:
    if not token:
        return "<unset>"
    return token[:4] + "***" if len(token) > 8 else "***"


def main():
    os.makedirs("data", exist_ok=True)
    print("Preflight OK")
    print(f"DATABASE_URL={mask_database_url(settings.database_url)}")
    print(f"OPTIMUS_API_URL={settings.optimus_api_url or '<unset>'}")
    print(f"OPTIMUS_BEARER_TOKEN={mask_token(settings.optimus_bearer_token)}")
    print(f"GEOCODER_BASE_URL={settings.geocoder_base_url}")
    print(f"REFRESH_INTERVAL_MINUTES={settings.refresh_interval_minutes}")
    print(f"CORS_ORIGINS={settings.cors_origins}")


if __name__ == "__main__":
    main()
