"""Selector auto-detection for onboarding a new competitor.

Loads a competitor's search page once in an isolated browser and guesses the
CSS selectors of its product tiles. The result is advisory: it pre-fills the
competitor configuration form and is reviewed by a person before use. It is
never consulted on the live comparison path.
"""

import logging
from collections.abc import Callable
from typing import Any

from ..config import CrawlConfig, config
from ..models import DetectedSelectors
from .headless import HeadlessBrowser

logger = logging.getLogger(__name__)

MIN_CONTAINER_COUNT = 3
STRONG_CONTAINER_COUNT = 5
LOW_CONFIDENCE_THRESHOLD = 50

DEFAULT_NAME_SELECTOR = "h3, h4, .title"
DEFAULT_BRAND_SELECTOR = ".brand, span"
DEFAULT_PRICE_SELECTOR = ".price"
DEFAULT_IMAGE_SELECTOR = "img"
DEFAULT_URL_SELECTOR = "a"

DETECT_SELECTORS_JS = r"""
() => {
  const containerPatterns = [
    '[data-product]',
    '[data-product-id]',
    '.product-item',
    '.product-card',
    '.product',
    '.item',
    '[itemtype*="Product"]',
    '.grid-item',
    '.search-result',
    'article',
  ];
  const pricePatterns = [
    '.price',
    '.product-price',
    '[data-price]',
    '.cost',
    '.amount',
    'span[class*="price"]',
    'div[class*="price"]',
  ];
  const namePatterns = [
    'h2', 'h3', 'h4',
    '.product-title',
    '.product-name',
    '.title',
    '.name',
    'a[class*="title"]',
    'span[class*="title"]',
  ];
  const brandPatterns = [
    '.brand',
    '.brand-name',
    '.manufacturer',
    '[class*="brand"]',
    'span[class*="brand"]',
    '.product-brand',
    'a[class*="brand"]',
  ];
  const firstClass = (el) => {
    const cls = typeof el.className === 'string' ? el.className.trim() : '';
    return cls ? cls.split(/\s+/)[0] : '';
  };

  let container = '';
  let containerCount = 0;
  for (const pattern of containerPatterns) {
    const count = document.querySelectorAll(pattern).length;
    if (count >= 3 && count > containerCount) {
      container = pattern;
      containerCount = count;
    }
  }

  if (!container) {
    const classCount = {};
    for (const div of document.querySelectorAll('div[class]')) {
      const cls = firstClass(div);
      if (cls) classCount[cls] = (classCount[cls] || 0) + 1;
    }
    for (const [cls, count] of Object.entries(classCount)) {
      if (count >= 3 && count > containerCount) {
        container = '.' + CSS.escape(cls);
        containerCount = count;
      }
    }
  }

  if (!container) {
    return { container: '', containerCount };
  }

  const samples = Array.from(document.querySelectorAll(container)).slice(0, 5);
  const findInSamples = (patterns, accept) => {
    for (const pattern of patterns) {
      for (const sample of samples) {
        const el = sample.querySelector(pattern);
        if (el && accept(el)) return pattern;
      }
    }
    return '';
  };

  let priceSelector = findInSamples(pricePatterns, () => true);
  if (!priceSelector) {
    const currencyRe = /[₹$£€]\s*[\d,]+|Rs\.?\s*[\d,]+/;
    for (const sample of samples) {
      const walker = document.createTreeWalker(sample, NodeFilter.SHOW_TEXT);
      while (walker.nextNode()) {
        const parent = walker.currentNode.parentElement;
        if (currencyRe.test(walker.currentNode.textContent || '') && parent && firstClass(parent)) {
          priceSelector = '.' + CSS.escape(firstClass(parent));
          break;
        }
      }
      if (priceSelector) break;
    }
  }

  const nameSelector = findInSamples(
    namePatterns, (el) => (el.textContent || '').trim().length > 5);
  const brandSelector = findInSamples(
    brandPatterns, (el) => (el.textContent || '').trim().length > 0);

  let imageSelector = '';
  const img = samples[0].querySelector('img');
  if (img) {
    imageSelector = firstClass(img) ? 'img.' + CSS.escape(firstClass(img)) : 'img';
  }

  let urlSelector = '';
  const link = samples[0].querySelector('a[href*="product"], a[href*="item"]')
    || samples[0].querySelector('a[href]');
  if (link) {
    urlSelector = firstClass(link) ? 'a.' + CSS.escape(firstClass(link)) : 'a';
  }

  return {
    container,
    containerCount,
    priceSelector,
    nameSelector,
    brandSelector,
    imageSelector,
    urlSelector,
  };
}
"""


def score_detection(report: dict[str, Any]) -> int:
    """Additive confidence for a detection report.

    Args:
        report: Raw report returned by DETECT_SELECTORS_JS.

    Returns:
        Score in 0-100.
    """
    count = int(report.get("containerCount") or 0)
    confidence = 0
    if count >= STRONG_CONTAINER_COUNT:
        confidence += 30
    elif count >= MIN_CONTAINER_COUNT:
        confidence += 20
    if report.get("priceSelector"):
        confidence += 25
    if report.get("nameSelector"):
        confidence += 20
    if report.get("brandSelector"):
        confidence += 15
    if report.get("imageSelector"):
        confidence += 10
    return min(confidence, 100)


def build_detected_selectors(report: dict[str, Any] | None) -> DetectedSelectors | None:
    """Turn a raw in-page detection report into a selector suggestion.

    Args:
        report: Raw report, None when evaluation produced nothing.

    Returns:
        DetectedSelectors, or None when fewer than three repeating containers
        were found and the site cannot be auto-configured.
    """
    if not report or not report.get("container"):
        return None
    if int(report.get("containerCount") or 0) < MIN_CONTAINER_COUNT:
        return None

    return DetectedSelectors(
        product_container=report["container"],
        product_name=report.get("nameSelector") or DEFAULT_NAME_SELECTOR,
        product_brand=report.get("brandSelector") or DEFAULT_BRAND_SELECTOR,
        product_price=report.get("priceSelector") or DEFAULT_PRICE_SELECTOR,
        product_image=report.get("imageSelector") or DEFAULT_IMAGE_SELECTOR,
        product_url=report.get("urlSelector") or DEFAULT_URL_SELECTOR,
        confidence=score_detection(report),
        detected_product_count=int(report["containerCount"]),
    )


async def auto_detect_selectors(
    search_url: str,
    browser_factory: Callable[[], HeadlessBrowser] = HeadlessBrowser,
    settings: CrawlConfig | None = None,
) -> DetectedSelectors | None:
    """Infer product tile selectors from a competitor search page.

    Uses its own browser, independent of any comparison run.

    Args:
        search_url: Search results URL of the candidate competitor.
        browser_factory: Creates the isolated browser.
        settings: Navigation timeout source.

    Returns:
        Suggested selectors, or None if detection failed or found too few tiles.
    """
    settings = settings or config.crawl
    logger.info(f"Auto-detecting selectors for: {search_url}")

    try:
        async with browser_factory() as browser:
            async with browser.page() as page:
                await page.goto(
                    search_url, wait_until="networkidle", timeout=settings.detector_timeout_ms
                )
                report = await page.evaluate(DETECT_SELECTORS_JS)
    except Exception as e:
        logger.error(f"Error auto-detecting selectors for {search_url}: {e}")
        return None

    detected = build_detected_selectors(report)
    if detected is None:
        logger.warning(f"No repeating product container found on {search_url}")
    else:
        logger.info(
            f"Auto-detection result for {search_url}: {detected.product_container} "
            f"({detected.detected_product_count} tiles, confidence {detected.confidence})"
        )
    return detected
