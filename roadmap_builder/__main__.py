from __future__ import annotations

import uvicorn

from .settings import settings


def main() -> None:
    """Serve the API with uvicorn using the configured host and port."""

    uvicorn.run(
        "roadmap_builder.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
