# thin http adapter: path -> city -> aggregator -> json

from __future__ import annotations
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from .client import ProviderError, WeatherProvider
from .models import CityTemperature, format_duration

JSON_UTF8 = "application/json; charset=utf-8"

def create_app(provider: WeatherProvider) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # uvicorn shutdown: release the worker pool and provider sessions
        close = getattr(provider, "close", None)
        if close is not None:
            close()

    app = FastAPI(title="multiweather", docs_url=None, redoc_url=None, openapi_url=None, lifespan=lifespan)
    # the provider (normally a MultiWeatherProvider) is shared read-only by every request
    app.state.provider = provider

    @app.exception_handler(ProviderError)
    async def provider_error(request: Request, exc: ProviderError) -> PlainTextResponse:
        return PlainTextResponse(str(exc), status_code=500)

    # sync endpoint, so fastapi runs it in its threadpool and the fan-out never blocks the loop
    @app.get("/weather/{city:path}")
    def weather(city: str, request: Request) -> JSONResponse:
        begin = time.perf_counter()
        temp = request.app.state.provider.temperature(city)
        result = CityTemperature(city=city, temp=temp, took=format_duration(time.perf_counter() - begin))
        return JSONResponse(result.as_json(), media_type=JSON_UTF8)

    return app
