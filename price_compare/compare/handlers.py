"""HTTP handlers for the comparison API.

Routes:
- POST /api/compare/search: compare a product across competitors
- POST /api/compare/detect-selectors: suggest selectors for a search page
- GET /api/compare/competitors: list configured competitors

Services are looked up on the application under the keys below so tests can
install doubles without touching the global container.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from ..models import DetectedSelectors
from ..scrapers.selector_detector import LOW_CONFIDENCE_THRESHOLD
from ..services.competitor_registry import YamlCompetitorRegistry
from . import messages
from .comparison_service import ComparisonService
from .types import DetectSelectorsPayload

logger = logging.getLogger(__name__)

SelectorDetector = Callable[[str], Awaitable[DetectedSelectors | None]]

comparison_service_key = web.AppKey("comparison_service", ComparisonService)
competitor_registry_key = web.AppKey("competitor_registry", YamlCompetitorRegistry)
selector_detector_key = web.AppKey("selector_detector", SelectorDetector)

routes = web.RouteTableDef()


async def _read_json(request: web.Request) -> dict[str, Any] | None:
    """Parse a JSON object body, None when the body is not one."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status)


@routes.post("/api/compare/search")
async def search(request: web.Request) -> web.Response:
    """Compare a product across all active competitors."""
    body = await _read_json(request)
    if body is None:
        return _error(messages.INVALID_JSON, 400)

    product_name = body.get("productName")
    if not isinstance(product_name, str):
        product_name = None

    service = request.app[comparison_service_key]
    response = await service.compare(product_name)

    if response.success:
        status = 200
    elif response.message == messages.PRODUCT_NAME_REQUIRED:
        status = 400
    else:
        status = 500

    return web.json_response(response.model_dump(mode="json", by_alias=True), status=status)


@routes.post("/api/compare/detect-selectors")
async def detect_selectors(request: web.Request) -> web.Response:
    """Suggest product selectors for a candidate competitor's search page."""
    body = await _read_json(request)
    if body is None:
        return _error(messages.INVALID_JSON, 400)

    search_url = body.get("searchUrl")
    if not isinstance(search_url, str) or not search_url.strip():
        return _error(messages.SEARCH_URL_REQUIRED, 400)

    logger.info(f"Detecting selectors for: {search_url}")
    detector = request.app[selector_detector_key]
    try:
        detected = await detector(search_url.strip())
    except Exception as e:
        logger.error(f"Error detecting selectors: {e}")
        return _error(messages.DETECT_FAILED, 500)

    if detected is None:
        return _error(messages.SELECTORS_NOT_DETECTED, 400)

    payload: DetectSelectorsPayload = {
        "success": True,
        "selectors": detected.model_dump(
            by_alias=True, exclude={"confidence", "detected_product_count"}
        ),
        "confidence": detected.confidence,
        "detectedProductCount": detected.detected_product_count,
    }
    if detected.confidence >= LOW_CONFIDENCE_THRESHOLD:
        payload["message"] = messages.SELECTORS_DETECTED
    else:
        payload["message"] = messages.SELECTORS_LOW_CONFIDENCE
        payload["warning"] = messages.LOW_CONFIDENCE_WARNING

    return web.json_response(payload)


@routes.get("/api/compare/competitors")
async def list_competitors(request: web.Request) -> web.Response:
    """List configured competitors sorted by name."""
    registry = request.app[competitor_registry_key]
    try:
        competitors = sorted(registry.list_all(), key=lambda competitor: competitor.name)
    except Exception as e:
        logger.error(f"Error fetching competitors: {e}")
        return _error(messages.COMPETITORS_FAILED, 500)

    return web.json_response(
        {
            "success": True,
            "competitors": [
                competitor.model_dump(mode="json", by_alias=True) for competitor in competitors
            ],
        }
    )
