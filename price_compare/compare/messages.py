"""User-facing message constants for comparison responses.

Centralizes the messages returned by the comparison service and the HTTP
handlers so that clients see consistent wording.
"""

# Comparison
PRODUCT_NAME_REQUIRED = "Product name is required"
NO_PRODUCTS_FOUND = "No products found"
COMPARE_FAILED = "Failed to compare products"
COMPARE_COMPLETED = "Found {count} products across {competitors} competitors"

# Selector detection
SEARCH_URL_REQUIRED = "Search URL is required"
SELECTORS_DETECTED = "Selectors detected successfully"
SELECTORS_LOW_CONFIDENCE = "Selectors detected with low confidence. Please verify."
LOW_CONFIDENCE_WARNING = "Low confidence detection"
SELECTORS_NOT_DETECTED = "Could not detect selectors automatically. Please enter them manually."
DETECT_FAILED = "Failed to detect selectors"

# Competitor registry
COMPETITORS_FAILED = "Failed to fetch competitor configurations"

# Request parsing
INVALID_JSON = "Request body must be a JSON object"
