"""Exceptions raised across the comparison engine.

Only run-level failures are modelled here. Failures scoped to a single
competitor or a single product tile are recovered where they happen.
"""


class PriceCompareError(Exception):
    """Base exception for comparison engine failures."""


class BrowserLaunchError(PriceCompareError):
    """Raised when the headless browser cannot be started."""


class CompetitorConfigError(PriceCompareError):
    """Raised when competitor configuration cannot be loaded or is invalid."""
