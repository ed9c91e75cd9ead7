"""Run the course catalog API with uvicorn."""

import logging

import uvicorn

from .config import settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Server is running on port %d", settings.port)
    logger.info("Health check available at http://localhost:%d/health", settings.port)
    logger.info("API endpoints available at http://localhost:%d/api", settings.port)
    uvicorn.run("course_catalog.api:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
