"""
Remote Provider Layer.

This package handles all communication with the exchange rate and time
providers.
"""

from .client import BaseAPIClient
from .rate_limiter import AdaptiveRateLimiter
from .rates import RatesAPIClient
from .worldtime import TimeAPIClient

__all__ = ["AdaptiveRateLimiter", "BaseAPIClient", "RatesAPIClient", "TimeAPIClient"]
