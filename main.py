"""
main.py — Server launcher and entry point.

    python main.py

The application factory lives in deskspace/main.py. Direct uvicorn usage:

    uvicorn deskspace.main:app --reload
"""

from __future__ import annotations

import uvicorn

from deskspace.utils.config import get_settings


def main() -> None:
    """Start the booking API server."""
    settings = get_settings()
    print("=" * 60)
    print(f"  {settings.app_name} {settings.app_version}")
    print("=" * 60)
    print(f"  Server   : http://{settings.host}:{settings.port}")
    print(f"  API docs : http://{settings.host}:{settings.port}/docs")
    print(f"  Database : {settings.database_path}")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "deskspace.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
