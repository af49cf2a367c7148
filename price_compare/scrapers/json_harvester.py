"""Product harvesting from arbitrary embedded JSON.

Search pages frequently ship their results as JSON: Next.js page state,
framework hydration blobs or XHR responses intercepted during page load. The
shapes differ per site, so the input is walked as an untyped tree and every
object is tested for product-likeness.
"""

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from .dom_harvester import RawProduct, is_plausible_product_name
from .price import coerce_price_text

logger = logging.getLogger(__name__)

NAME_KEYS = ("name", "title", "productName", "product_name")
IMAGE_KEYS = ("image", "images", "thumbnail", "media", "mainImage")
IMAGE_OBJECT_KEYS = ("url", "src", "path", "link", "image", "thumbnail")
PRICE_KEYS = (
    "price",
    "sellingPrice",
    "selling_price",
    "salePrice",
    "sale_price",
    "mrp",
    "listPrice",
    "list_price",
)
URL_KEYS = ("url", "seoUrl", "seo_url", "slug", "handle")


def _first_string(value: Any) -> str:
    """Unwrap nested lists/objects until a string is found."""
    if not value:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return _first_string(value[0])
    if isinstance(value, dict):
        for key in IMAGE_OBJECT_KEYS:
            if value.get(key):
                return _first_string(value[key])
    return ""


def _first_present(node: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = node.get(key)
        if value:
            return value
    return None


def _get_name(node: dict[str, Any]) -> str:
    for key in NAME_KEYS:
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _get_image(node: dict[str, Any]) -> str:
    return _first_string(_first_present(node, IMAGE_KEYS))


def _get_price_text(node: dict[str, Any], currency_symbol: str) -> str:
    for key in PRICE_KEYS:
        value = node.get(key)
        if value is not None:
            return coerce_price_text(value, currency_symbol)
    return ""


def resolve_product_url(raw: str, base_url: str) -> str:
    """Resolve a product link found in structured data.

    Args:
        raw: Absolute URL, root-relative path or bare slug.
        base_url: Competitor site root.

    Returns:
        Absolute URL; slugs are placed under /products/.
    """
    if not raw:
        return ""
    base = base_url.rstrip("/")
    if raw.startswith(("http://", "https://")):
        return raw
    if raw.startswith("/"):
        return f"{base}{raw}"
    return f"{base}/products/{raw}"


def _get_url(node: dict[str, Any], base_url: str) -> str:
    for key in URL_KEYS:
        value = node.get(key)
        if value:
            return resolve_product_url(value, base_url) if isinstance(value, str) else ""
    return ""


def collect_products_from_json(
    root: Any,
    competitor_name: str,
    base_url: str,
    currency_symbol: str = "₹",
) -> list[RawProduct]:
    """Collect product-shaped objects from an arbitrary JSON tree.

    An object is product-like when it yields a name, an image and a price.
    Product-like objects are still descended into, since variants and related
    products are often nested inside them.

    Args:
        root: Parsed JSON (dicts, lists and scalars).
        competitor_name: Competitor the data was fetched from.
        base_url: Competitor site root for resolving product links.
        currency_symbol: Prefix for rendered price text.

    Returns:
        Raw products in traversal order, de-duplicated by URL else name+image.
    """
    results: list[RawProduct] = []
    seen: set[str] = set()

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for child in node:
                visit(child)
            return
        if not isinstance(node, dict):
            return

        name = _get_name(node)
        image = _get_image(node)
        price_text = _get_price_text(node, currency_symbol)
        if name and image and price_text:
            url = _get_url(node, base_url)
            key = url or f"{name}-{image}"
            if (
                key not in seen
                and is_plausible_product_name(name)
                and not image.startswith("data:")
            ):
                seen.add(key)
                results.append(
                    {
                        "name": name,
                        "brandName": "",
                        "priceText": price_text,
                        "image": image,
                        "url": url,
                        "competitor": competitor_name,
                    }
                )

        for child in node.values():
            visit(child)

    visit(root)
    return results


def extract_embedded_state(html: str) -> Any | None:
    """Parse the Next.js page-state JSON bundled in a page.

    Args:
        html: Rendered page HTML.

    Returns:
        Parsed __NEXT_DATA__ payload, or None if absent or malformed.
    """
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if not script or not script.string:
        return None

    try:
        return json.loads(script.string)
    except json.JSONDecodeError as e:
        logger.debug(f"Malformed __NEXT_DATA__ payload: {e}")
        return None
