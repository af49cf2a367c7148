"""Markup-agnostic product tile extraction from a rendered search page.

Competitor search pages share no common markup, so tiles are located by a
structural signal instead of per-site selectors: an image-bearing link whose
smallest surrounding container shows a currency-prefixed price. The walk runs
inside the page (EXTRACT_PRODUCTS_JS) against the live DOM and returns plain
dictionaries only.
"""

import logging
from typing import Any, TypedDict

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 200
CODE_FRAGMENTS = ("{", "}", ".product", "var ", "function", "document.")

COUNT_LINKED_IMAGES_JS = "() => document.querySelectorAll('a[href] img').length"
SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body.scrollHeight)"

EXTRACT_PRODUCTS_JS = r"""
({ competitorName, currencySymbol }) => {
  const escaped = currencySymbol.replace(/[.*+?^${}()|[\]\\]/g, '\\$&');
  const pricePattern = escaped + '\\s*([\\d,]+(?:\\.\\d+)?)';
  const skipPattern = /(^\/$|#$|javascript:|mailto:|login|register|cart|checkout|account|search|contact|privacy|terms|category|categories|collection|collections|blog|news|compare|wishlist|pages|about|brand|store|warranty)/i;
  const codeFragments = ['{', '}', '.product', 'var ', 'function', 'document.'];
  const titleSelectors = [
    '[class*="title"]',
    '[class*="name"]',
    '[class*="product-name"]',
    '.product-item-name',
    'h1', 'h2', 'h3', 'h4',
  ];
  const fitsName = (text) => text.length >= 3 && text.length <= 200;

  const results = [];
  const seen = new Set();

  for (const link of document.querySelectorAll('a[href]')) {
    try {
      const href = link.href || '';
      if (seen.has(href)) continue;
      if (skipPattern.test(href) || href.length < 20) continue;

      const img = link.querySelector('img');
      if (!img) continue;

      // Smallest ancestor that still looks like a single tile with a price.
      let node = link;
      let container = null;
      for (let level = 0; level < 8 && node; level++) {
        const text = node.textContent || '';
        const priceCount = (text.match(new RegExp(pricePattern, 'g')) || []).length;
        const imageCount = node.querySelectorAll('img').length;
        const linkCount = node.querySelectorAll('a[href]').length;
        const textLength = text.replace(/\s+/g, ' ').trim().length;
        if (priceCount > 0 && imageCount <= 5 && linkCount <= 10 && textLength > 0 && textLength < 2000) {
          container = node;
          break;
        }
        node = node.parentElement;
      }
      if (!container) continue;

      seen.add(href);

      const srcset = img.getAttribute('srcset') || '';
      const candidates = [
        img.getAttribute('src') ? img.src : '',
        img.getAttribute('data-src') || '',
        img.getAttribute('data-lazy-src') || '',
        srcset ? srcset.split(',')[0].trim().split(' ')[0] : '',
      ];
      const image = candidates.find((src) => src && !src.startsWith('data:')) || '';
      if (!image) continue;

      let name = '';
      const alt = (img.getAttribute('alt') || '').trim();
      if (fitsName(alt)) name = alt;

      if (!name) {
        for (const selector of titleSelectors) {
          const el = container.querySelector(selector);
          const text = el ? (el.innerText || el.textContent || '').trim() : '';
          if (fitsName(text) && !text.includes(currencySymbol) && !text.includes('{')) {
            name = text;
            break;
          }
        }
      }

      if (!name) {
        const title = (link.getAttribute('title') || '').trim();
        if (fitsName(title)) name = title;
      }

      if (!name || !fitsName(name)) continue;
      if (codeFragments.some((fragment) => name.includes(fragment))) continue;

      const priceMatch = (container.textContent || '').match(new RegExp(pricePattern));
      const priceText = priceMatch ? currencySymbol + priceMatch[1].replace(/,/g, '') : '';

      results.push({
        name,
        brandName: '',
        priceText: priceText || 'Price not available',
        image,
        url: href,
        competitor: competitorName,
      });
    } catch (err) {
      console.debug('Skipping malformed product tile', err);
    }
  }

  return results;
}
"""


class RawProduct(TypedDict, total=False):
    """Product candidate as returned by the in-page and JSON harvesters."""

    name: str
    brandName: str
    priceText: str
    image: str
    url: str
    competitor: str


def is_plausible_product_name(name: str | None) -> bool:
    """Check that a harvested name looks like a product title.

    Args:
        name: Candidate product name.

    Returns:
        False for empty or out-of-bounds names and for script/CSS fragments.
    """
    if not name:
        return False
    name = name.strip()
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    return not any(fragment in name for fragment in CODE_FRAGMENTS)


def product_key(product: RawProduct) -> str:
    """Identity of a candidate: its URL, else its name and image."""
    return product.get("url") or f"{product.get('name', '')}-{product.get('image', '')}"


def dedupe_products(products: list[RawProduct]) -> list[RawProduct]:
    """Drop repeated candidates while keeping first-seen order."""
    seen: set[str] = set()
    unique: list[RawProduct] = []
    for product in products:
        key = product_key(product)
        if key in seen:
            continue
        seen.add(key)
        unique.append(product)
    return unique


async def extract_products_from_page(
    page: Any, competitor_name: str, currency_symbol: str = "₹"
) -> list[RawProduct]:
    """Run the tile walk inside the page and return validated candidates.

    Args:
        page: Playwright page with the search results loaded.
        competitor_name: Competitor the page belongs to.
        currency_symbol: Currency prefix that marks a price.

    Returns:
        Raw products found on the page, de-duplicated by URL.
    """
    raw = await page.evaluate(
        EXTRACT_PRODUCTS_JS,
        {"competitorName": competitor_name, "currencySymbol": currency_symbol},
    )

    products: list[RawProduct] = []
    for candidate in raw or []:
        if not isinstance(candidate, dict):
            continue
        image = candidate.get("image") or ""
        if not image or image.startswith("data:"):
            continue
        if not is_plausible_product_name(candidate.get("name")):
            continue
        products.append(candidate)  # type: ignore[arg-type]

    unique = dedupe_products(products)
    logger.debug(f"DOM harvest for {competitor_name}: {len(unique)} candidates")
    return unique
