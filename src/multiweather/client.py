# OOP boundary for external i/o
# all http/keys/retries live here, so the aggregator and handler stay pure and testable
# each provider keeps a thread-local session per worker of the aggregator's long-lived ThreadPoolExecutor

from __future__ import annotations
import logging
import math
import threading
from typing import Any, Dict, List, Optional, Protocol
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from .models import kelvin_to_fahrenheit, round_half_away

logger = logging.getLogger(__name__)

class ProviderError(RuntimeError):
    # single error type for every failure: transport, http status, decode or shape
    # provider is the failing provider's name, None for aggregate level failures
    def __init__(self, provider: Optional[str], message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}" if provider else message)

class WeatherProvider(Protocol):
    """Anything that can report a whole-degree fahrenheit temperature for a city.

    ``temperature`` raises :class:`ProviderError` when it cannot.
    """

    name: str

    def temperature(self, city: str) -> float:
        ...

class ProviderClient:
    # shared http plumbing: base URL, auth key, timeout, retries, sessions
    name = "provider"
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        user_agent: str = "multiweather/0.1",
    ):
        if not api_key:
            # fail when key is missing to avoid confusing 401s from the provider later
            raise ProviderError(self.name, "API key not set")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

        # zero retries by default: one failed attempt is terminal for this request
        self._retry = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
            with self._sessions_lock:
                self._sessions.append(sess)
        return sess

    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        # one GET, everything that goes wrong comes back as ProviderError
        city = params.get("q")
        try:
            resp = self._session().get(self.base_url + path, params=params, timeout=self.timeout)
        except (requests.RequestException, ValueError) as exc:
            # ValueError covers urllib3 rejecting the request before it is sent
            raise ProviderError(self.name, f"request error for {city!r}: {exc}") from exc

        if resp.status_code >= 400:
            # include a short response snippet to speed up triage
            snippet = (resp.text or "")[:300]
            raise ProviderError(self.name, f"HTTP {resp.status_code} for {city!r}. Body: {snippet}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(self.name, f"invalid JSON for {city!r}: {exc}") from exc

        if not isinstance(data, dict):
            raise ProviderError(self.name, f"unexpected API shape for {city!r}: not an object")
        return data

    def _field(self, data: Dict[str, Any], section: str, key: str) -> float:
        try:
            value = float(data[section][key])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"unexpected API shape: missing {section}.{key}") from exc
        if not math.isfinite(value):
            raise ProviderError(self.name, f"unexpected API shape: {section}.{key} is {value}")
        return value

    def temperature(self, city: str) -> float:
        raise NotImplementedError

    def close(self) -> None:
        # closes the sessions of every worker thread that used this client
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for sess in sessions:
            sess.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r})"

class OpenWeatherMapClient(ProviderClient):
    # current weather endpoint, reports kelvin
    name = "openweathermap"
    BASE_URL = "http://api.openweathermap.org"

    def __init__(self, api_key: str | None, base_url: str = BASE_URL, **kwargs: Any):
        super().__init__(api_key, base_url, **kwargs)

    def temperature(self, city: str) -> float:
        data = self._get_json("/data/2.5/weather", {"APPID": self.api_key, "q": city})
        fahrenheit = kelvin_to_fahrenheit(self._field(data, "main", "temp"))
        logger.info("%s: %s: %.2f", self.name, city, fahrenheit)
        return fahrenheit

class WeatherAPIClient(ProviderClient):
    # current conditions endpoint, already reports fahrenheit
    name = "weatherapi"
    BASE_URL = "http://api.weatherapi.com"

    def __init__(self, api_key: str | None, base_url: str = BASE_URL, **kwargs: Any):
        super().__init__(api_key, base_url, **kwargs)

    def temperature(self, city: str) -> float:
        data = self._get_json("/v1/current.json", {"key": self.api_key, "q": city, "aqi": "no"})
        fahrenheit = round_half_away(self._field(data, "current", "temp_f"))
        logger.info("%s: %s: %.2f", self.name, city, fahrenheit)
        return fahrenheit
