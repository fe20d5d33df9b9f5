import sys

import uvicorn

from consultant.config import settings
from consultant.logging_config import get_logger, setup_logging

logger = get_logger("bootstrap")


def main() -> None:
    setup_logging(settings.log_level)

    missing = settings.missing_credentials()
    if missing:
        logger.error("Config error: required variables are not set", extra={"context": {"missing": missing}})
        sys.exit(1)

    logger.info(
        "Starting server",
        extra={"context": {"host": settings.webhook_host, "port": settings.webhook_port}},
    )
    uvicorn.run("consultant.main:app", host=settings.webhook_host, port=settings.webhook_port, log_config=None)


if __name__ == "__main__":
    main()
