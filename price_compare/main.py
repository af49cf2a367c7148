"""Application entry point.

Builds the aiohttp application serving the comparison API, wires it to the
dependency container, configures logging and manages the Redis connection
across the server lifetime.
"""

import logging

from aiohttp import web

from .compare.handlers import (
    comparison_service_key,
    competitor_registry_key,
    routes,
    selector_detector_key,
)
from .config import config
from .core.container import Container

logger = logging.getLogger(__name__)

container_key = web.AppKey("container", Container)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging with the configured level."""
    logging.basicConfig(
        format="%(asctime)s - %(levelname)s - %(message)s",
        level=getattr(logging, (level or config.server.log_level).upper(), logging.INFO),
    )


async def initialize_resources(app: web.Application) -> None:
    """Initialize application resources."""
    container = app[container_key]
    cache = container.comparison_cache()
    if await cache.connect():
        logger.info("Redis comparison cache connected")
    else:
        logger.info("Redis comparison cache unavailable, scraping every request")


async def cleanup_resources(app: web.Application) -> None:
    """Cleanup application resources."""
    container = app[container_key]
    try:
        await container.comparison_cache().close()
        logger.info("Comparison cache closed")
    except Exception as e:
        logger.warning(f"Error during cleanup: {e}")


def create_app(container: Container | None = None) -> web.Application:
    """Build the web application.

    Args:
        container: Dependency container, a fresh one when omitted.

    Returns:
        Application with routes and lifecycle hooks registered.
    """
    if container is None:
        container = Container()

    app = web.Application()
    app[container_key] = container
    app[comparison_service_key] = container.comparison_service()
    app[competitor_registry_key] = container.competitor_registry()
    app[selector_detector_key] = container.selector_detector()
    app.add_routes(routes)

    app.on_startup.append(initialize_resources)
    app.on_cleanup.append(cleanup_resources)
    return app


def main() -> None:
    """Main application entry point.

    Starts the HTTP server on the configured host and port. Handler
    cancellation is enabled so a client that disconnects cancels its
    comparison run and releases the browser.
    """
    configure_logging()
    app = create_app()

    logger.info(
        f"Starting comparison API on {config.server.listen_host}:{config.server.port}"
    )
    web.run_app(
        app,
        host=config.server.listen_host,
        port=config.server.port,
        handler_cancellation=True,
        print=None,
    )


if __name__ == "__main__":
    main()
