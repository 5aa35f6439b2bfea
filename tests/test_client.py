# provider clients against stubbed http (requests-mock), never the real apis

import json
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from multiweather.client import OpenWeatherMapClient, ProviderError, WeatherAPIClient

DATA = Path(__file__).parent / "data"
OWM_URL = "http://owm.test/data/2.5/weather"
WAPI_URL = "http://wapi.test/v1/current.json"


def load(name):
    return json.loads((DATA / name).read_text())


def query_of(request):
    return parse_qs(urlsplit(request.url).query)


def test_openweathermap_converts_kelvin(requests_mock):
    requests_mock.get(OWM_URL, json=load("openweathermap_boston.json"))
    client = OpenWeatherMapClient("secret", base_url="http://owm.test")

    assert client.temperature("Boston") == 68

    # the key and city go out verbatim as APPID and q
    assert query_of(requests_mock.last_request) == {"APPID": ["secret"], "q": ["Boston"]}


def test_openweathermap_rounds_after_conversion(requests_mock):
    requests_mock.get(OWM_URL, json={"main": {"temp": 300.15}})
    client = OpenWeatherMapClient("secret", base_url="http://owm.test")
    assert client.temperature("Lagos") == 81


def test_weatherapi_rounds_fahrenheit(requests_mock):
    requests_mock.get(WAPI_URL, json={"current": {"temp_f": 70.5}})
    client = WeatherAPIClient("secret", base_url="http://wapi.test/")

    assert client.temperature("Boston") == 71
    assert query_of(requests_mock.last_request) == {"key": ["secret"], "q": ["Boston"], "aqi": ["no"]}


def test_weatherapi_fixture(requests_mock):
    requests_mock.get(WAPI_URL, json=load("weatherapi_boston.json"))
    assert WeatherAPIClient("secret", base_url="http://wapi.test").temperature("Boston") == 68


def test_success_is_logged(requests_mock, caplog):
    requests_mock.get(WAPI_URL, json={"current": {"temp_f": 68.0}})
    with caplog.at_level("INFO", logger="multiweather.client"):
        WeatherAPIClient("secret", base_url="http://wapi.test").temperature("Boston")
    assert "weatherapi: Boston: 68.00" in caplog.text


def test_network_failure_is_provider_error(requests_mock):
    requests_mock.get(OWM_URL, exc=requests.exceptions.ConnectionError("connection refused"))
    client = OpenWeatherMapClient("secret", base_url="http://owm.test")

    with pytest.raises(ProviderError) as info:
        client.temperature("Boston")
    # the failing provider is named in the error
    assert info.value.provider == "openweathermap"
    assert str(info.value).startswith("openweathermap: ")
    assert isinstance(info.value.__cause__, requests.exceptions.ConnectionError)


def test_http_error_status(requests_mock):
    requests_mock.get(WAPI_URL, status_code=401, text='{"error": {"message": "API key is invalid."}}')
    client = WeatherAPIClient("bad", base_url="http://wapi.test")

    with pytest.raises(ProviderError, match="HTTP 401"):
        client.temperature("Boston")


def test_malformed_json(requests_mock):
    requests_mock.get(WAPI_URL, text="<html>not json</html>")
    with pytest.raises(ProviderError, match="invalid JSON"):
        WeatherAPIClient("secret", base_url="http://wapi.test").temperature("Boston")


@pytest.mark.parametrize("payload", [
    {},
    {"main": {}},
    {"main": {"temp": "warm"}},
    {"main": None},
    [],
    {"main": {"temp": "nan"}},
    {"main": {"temp": "inf"}},
    {"main": {"temp": "-Infinity"}},
])
def test_unexpected_shape(requests_mock, payload):
    requests_mock.get(OWM_URL, json=payload)
    with pytest.raises(ProviderError, match="unexpected API shape"):
        OpenWeatherMapClient("secret", base_url="http://owm.test").temperature("Boston")


def test_missing_key_fails_at_construction():
    with pytest.raises(ProviderError, match="API key not set"):
        WeatherAPIClient("")
    with pytest.raises(ProviderError, match="API key not set"):
        OpenWeatherMapClient(None)


def test_rejected_request_is_provider_error(requests_mock):
    # urllib3 raises ValueError, not RequestException, for things like a zero timeout
    requests_mock.get(WAPI_URL, exc=ValueError("timeout cannot be set to a value less than or equal to 0"))
    with pytest.raises(ProviderError, match="request error") as info:
        WeatherAPIClient("secret", base_url="http://wapi.test").temperature("Boston")
    assert info.value.provider == "weatherapi"


def test_session_reused_within_a_thread_and_closed(requests_mock, monkeypatch):
    requests_mock.get(WAPI_URL, json={"current": {"temp_f": 68}})
    closed = []
    monkeypatch.setattr(requests.Session, "close", lambda self: closed.append(self))
    client = WeatherAPIClient("secret", base_url="http://wapi.test")

    for _ in range(3):
        client.temperature("Boston")
    assert len(client._sessions) == 1

    client.close()
    assert len(closed) == 1
    assert client._sessions == []
