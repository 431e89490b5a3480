"""
CLI entry point for serving the API.

Usage:
    # Serve with host/port from the environment
    python -m app

    # Override the bind address
    python -m app --host 127.0.0.1 --port 3000
"""

import argparse
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Skill Mingle API server")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Bind port")
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )
    args = parser.parse_args()

    import uvicorn

    logger.info(
        "Starting %s in %s mode at http://%s:%d",
        settings.project_name,
        settings.environment,
        args.host,
        args.port,
    )
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
