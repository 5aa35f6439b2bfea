# connects the process to the service: either serve http, or look up cities given on the command line

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional
from pydantic import ValidationError
from .client import ProviderError
from .config import Settings, load_settings
from .service import MultiWeatherProvider, build_providers

logger = logging.getLogger(__name__)

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def serve(settings: Settings, multi: MultiWeatherProvider) -> None:
    # imported here so one-shot lookups don't pay for the web stack
    import uvicorn
    from .app import create_app

    logger.info("listening on %s:%d with %d providers", settings.host, settings.port, len(multi))
    uvicorn.run(create_app(multi), host=settings.host, port=settings.port, log_level=settings.log_level.lower())

def lookup(multi: MultiWeatherProvider, cities: List[str]) -> int:
    # cities run one after another, each one fans out over all providers
    for city in cities:
        try:
            temp = multi.temperature(city)
        except ProviderError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(f"{city}: {temp:.0f}°F")
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="multiweather", description="Average temperature across weather providers.")
    parser.add_argument("cities", nargs="*", help="look these cities up and exit instead of serving http")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(settings)
        multi = MultiWeatherProvider(build_providers(settings), max_workers=settings.max_workers)
    except (ValidationError, ProviderError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.cities:
        with multi:
            return lookup(multi, args.cities)
    # the app closes the provider set on shutdown
    serve(settings, multi)
    return 0

if __name__ == "__main__":
    sys.exit(main())
