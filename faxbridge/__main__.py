"""Entry point to launch the spool bridge with uvicorn."""
from __future__ import annotations

import uvicorn

from faxbridge.core.logging import setup_logging
from faxbridge.core.settings import get_settings


def main() -> None:  # pragma: no cover - thin wrapper around uvicorn
    settings = get_settings()
    setup_logging(settings)

    from faxbridge.app import create_app

    uvicorn.run(
        create_app(),
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
