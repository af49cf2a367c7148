"""Competitor Price Comparison Package.

Compares a product query against the search results of configured competitor
storefronts. Competitor pages are rendered with a headless browser and product
tiles are harvested from the live DOM and from JSON embedded in the page.

The application follows a modular architecture with separate concerns for:
- Crawling competitor search pages (generic and paginated site families)
- Harvesting product listings from markup and structured data
- Caching comparison results per query and competitor
- Serving comparison and selector-detection requests over HTTP
"""
