"""Run the service with uvicorn: ``python -m random_status`` or ``random-status-api``."""

import uvicorn

from random_status.config import Settings


def main() -> None:
    settings = Settings()
    # log_config=None leaves logging to create_app(); uvicorn's own loggers
    # propagate to the root logger and come out as JSON too
    uvicorn.run(
        "random_status.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
