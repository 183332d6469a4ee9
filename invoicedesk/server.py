"""
Run the InvoiceDesk API under uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from invoicedesk.config import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="InvoiceDesk API server")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port to listen on (defaults to $PORT or 3000)",
    )
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )
    args = parser.parse_args()

    # Validate configuration before binding the port.
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    logging.getLogger(__name__).info("Server starting on port %s", args.port)

    uvicorn.run(
        "invoicedesk.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
