"""Runtime entrypoint for the AccessiList HTTP API."""

from __future__ import annotations

from typing import Any

import uvicorn

APP_FACTORY = "accessilist.api.app:create_app"


def serve(
    *,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
    reload: bool = False,
    workers: int | None = None,
    dry_run: bool = False,
    **extra: Any,
) -> int:
    """Start the HTTP API server.

    The app is built by ``create_app`` in each worker, reading configuration
    from the environment.

    Args:
        dry_run: Build the app once and return without serving.
    """
    if dry_run:
        from accessilist.api.app import create_app

        create_app()
        return 0

    uvicorn_kwargs: dict[str, Any] = {
        "host": host,
        "port": port,
        "log_level": log_level,
        "reload": reload,
        "factory": True,
    }
    if workers is not None:
        uvicorn_kwargs["workers"] = workers
    uvicorn_kwargs.update(extra)

    uvicorn.run(APP_FACTORY, **uvicorn_kwargs)
    return 0


__all__ = ["serve", "APP_FACTORY"]
