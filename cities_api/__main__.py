"""Run the cities API with uvicorn."""

import sys

import uvicorn

from cities_api.config import get_settings
from cities_api.logging_config import logger


def main() -> int:
    settings = get_settings()
    if not settings.has_auth_token:
        logger.error("AUTH_TOKEN_MISSING", detail="AUTH_TOKEN not provided as an environment variable")
        return 1
    logger.info("SERVICE_LISTENING", url=f"http://{settings.host}:{settings.port}/")
    uvicorn.run("cities_api.main:app", host=settings.host, port=settings.port, reload=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
