"""Currency conversion with a per-run cached exchange rate.

The rate is looked up at most once per run.  Whatever the first lookup
yields (the service's rate rounded to 6 decimals, or the configured
fallback when the service fails) is cached and used for every conversion
in that run, so all converted totals in one report share one rate.
"""

import logging
import math
import os
from dataclasses import dataclass

import requests

from ..schema.loader import DEFAULT_FALLBACK_RATE, RateServiceConfig

logger = logging.getLogger(__name__)


class RateLookupError(RuntimeError):
    """Raised when the rate service returns no usable rate."""


@dataclass
class ExchangeRateCache:
    """Holds the single rate for one run; ``None`` until first use."""
    rate: float | None = None
    from_fallback: bool = False


# ---------------------------------------------------------------------------
# Rate service client
# ---------------------------------------------------------------------------

class RateClient:
    """Client for a Wise-style ``/rates`` endpoint.

    ``GET {base_url}/rates?source=USD&target=GBP`` with basic auth returns
    a JSON list whose first element carries the ``rate``.
    """

    def __init__(self, config: RateServiceConfig | None = None,
                 token: str | None = None,
                 session: requests.Session | None = None) -> None:
        self.config = config or RateServiceConfig()
        self.token = token if token is not None else os.getenv(self.config.token_env, "")
        self._session = session or requests.Session()

    def get_rate(self, source: str, target: str) -> float:
        url = f"{self.config.base_url.rstrip('/')}/rates"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Basic {self.token}"
        try:
            response = self._session.get(
                url,
                params={"source": source, "target": target},
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RateLookupError(f"rate request failed: {exc}") from exc

        if response.status_code != 200:
            raise RateLookupError(f"rate service returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise RateLookupError("rate service response was not valid JSON") from exc

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise RateLookupError(f"unexpected rate payload: {data!r}")
        try:
            rate = float(data[0].get("rate"))
        except (TypeError, ValueError):
            raise RateLookupError(f"rate missing from payload: {data[0]!r}") from None
        if math.isnan(rate) or rate <= 0:
            raise RateLookupError(f"rate service returned unusable rate {rate}")
        return rate


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------

class CurrencyConverter:
    """Convert source-currency amounts using one cached rate.

    Parameters
    ----------
    client : object with ``get_rate(source, target)``, optional
        Rate service.  ``None`` means always use the fallback rate.
    cache : ExchangeRateCache, optional
        Per-run cache; a fresh one is created when omitted.
    fallback_rate : float
        Rate used when the service fails.
    """

    def __init__(self, client=None, cache: ExchangeRateCache | None = None,
                 fallback_rate: float = DEFAULT_FALLBACK_RATE,
                 source: str = "USD", target: str = "GBP") -> None:
        self.client = client
        self.cache = cache if cache is not None else ExchangeRateCache()
        self.fallback_rate = fallback_rate
        self.source = source
        self.target = target

    def rate(self) -> float:
        """The run's rate; performs the one lookup on first call. Never raises."""
        if self.cache.rate is not None:
            return self.cache.rate

        if self.client is None:
            logger.info("No rate service configured; using fallback rate %s", self.fallback_rate)
            return self._use_fallback()

        logger.info("Fetching %s to %s exchange rate", self.source, self.target)
        try:
            rate = self.client.get_rate(self.source, self.target)
            rate = round(float(rate), 6)
        except Exception as exc:
            logger.warning("Exchange rate lookup failed (%s); falling back to %s",
                           exc, self.fallback_rate)
            return self._use_fallback()

        self.cache.rate = rate
        self.cache.from_fallback = False
        logger.info("%s to %s exchange rate: %s", self.source, self.target, rate)
        return rate

    def _use_fallback(self) -> float:
        self.cache.rate = self.fallback_rate
        self.cache.from_fallback = True
        return self.fallback_rate

    def convert(self, amount) -> float:
        """Convert *amount*; None / NaN / non-numbers convert to 0."""
        if amount is None or isinstance(amount, bool):
            return 0.0
        try:
            value = float(amount)
        except (TypeError, ValueError):
            return 0.0
        if math.isnan(value):
            return 0.0
        return value * self.rate()
