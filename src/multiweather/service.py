# orchestration and business rules.
# one long-lived ThreadPoolExecutor per provider set fans out one call per provider, as_completed fans in
# any single provider failure invalidates the whole aggregate (first error wins)

from __future__ import annotations
import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional
from .client import OpenWeatherMapClient, ProviderError, WeatherAPIClient, WeatherProvider
from .config import Settings
from .models import Reading, mean, round_half_away

logger = logging.getLogger(__name__)

# room for a few concurrent requests, each fanning out over every provider
WORKERS_PER_PROVIDER = 4

def _provider_name(provider: WeatherProvider) -> str:
    return getattr(provider, "name", type(provider).__name__)

# single provider path: call -> wrap as a Reading
def fetch_reading(provider: WeatherProvider, city: str) -> Reading:
    # keeping this small makes it ideal as the function we submit to the thread pool
    name = _provider_name(provider)
    try:
        value = float(provider.temperature(city))
    except ProviderError:
        raise
    except Exception as exc:
        # third-party providers may raise or return anything, tag it with who failed
        raise ProviderError(name, str(exc) or type(exc).__name__) from exc
    if not math.isfinite(value):
        raise ProviderError(name, f"non-finite temperature {value}")
    return Reading(provider=name, city=city, fahrenheit=value)

class MultiWeatherProvider:
    # a fixed, ordered set of providers that is itself a provider, so sets can nest
    # the pool's threads outlive requests, so each client's thread-local session is reused
    name = "multi"

    def __init__(self, providers: Iterable[WeatherProvider], max_workers: Optional[int] = None):
        self.providers = tuple(providers)
        self.max_workers = max_workers or max(1, len(self.providers) * WORKERS_PER_PROVIDER)
        self._pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="provider")

    def __len__(self) -> int:
        return len(self.providers)

    def __enter__(self) -> MultiWeatherProvider:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        # stop the pool without waiting on in-flight calls, then close provider sessions
        self._pool.shutdown(wait=False, cancel_futures=True)
        for provider in self.providers:
            close = getattr(provider, "close", None)
            if close is not None:
                close()

    def readings(self, city: str) -> List[Reading]:
        # one concurrent call per provider, results in completion order
        if not self.providers:
            raise ProviderError(None, "no weather providers configured")

        futures = [self._pool.submit(fetch_reading, p, city) for p in self.providers]
        results: List[Reading] = []
        try:
            for fut in as_completed(futures):
                results.append(fut.result())
        except ProviderError as exc:
            logger.warning("aggregation for %r failed: %s", city, exc)
            # calls not started yet are dropped, calls in flight finish on their own
            # (bounded by the client timeout) and their outcome is discarded
            for fut in futures:
                fut.cancel()
            raise
        return results

    def temperature(self, city: str) -> float:
        readings = self.readings(city)
        return round_half_away(mean(r.fahrenheit for r in readings))

# the fixed provider set, built once at startup from explicit settings
def build_providers(settings: Settings) -> List[WeatherProvider]:
    common = {"timeout": settings.timeout, "max_retries": settings.max_retries}
    return [
        OpenWeatherMapClient(
            settings.openweathermap_api_key,
            base_url=settings.openweathermap_base_url,
            **common,
        ),
        WeatherAPIClient(
            settings.weatherapi_key,
            base_url=settings.weatherapi_base_url,
            **common,
        ),
    ]
