# models and tiny numeric helpers to keep data shapes and rounding rules explicit and reusable across the app

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable

KELVIN_OFFSET = 273.15

@dataclass(frozen=True)
class Reading:
    # immutable value object for one provider's answer, in whole-degree fahrenheit
    provider: str
    city: str
    fahrenheit: float

@dataclass(frozen=True)
class CityTemperature:
    # output value object serialized by the http handler as {city, temp, took}
    city: str
    temp: float
    took: str

    def as_json(self) -> dict:
        # whole degrees go out as 68, not 68.0
        temp = int(self.temp) if float(self.temp).is_integer() else self.temp
        return {"city": self.city, "temp": temp, "took": self.took}

def round_half_away(value: float) -> float:
    # whole-degree rounding with .5 going away from zero (70.5 -> 71, -70.5 -> -71)
    # the builtin round() goes to even, which would turn 70.5 into 70
    # adding 0.0 folds -0.0 into 0.0 so json never shows "-0.0"
    return math.copysign(math.floor(abs(value) + 0.5), value) + 0.0

def kelvin_to_fahrenheit(kelvin: float) -> float:
    return round_half_away((kelvin - KELVIN_OFFSET) * 9 / 5 + 32)

def mean(values: Iterable[float]) -> float:
    # simple average that returns NaN on empty input to avoid zero division
    values = list(values)
    return sum(values) / len(values) if values else float("nan")

def format_duration(seconds: float) -> str:
    # short human readable duration for the "took" field
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.0f}µs"
    if seconds < 1:
        return f"{seconds * 1000:.3f}ms"
    return f"{seconds:.3f}".rstrip("0").rstrip(".") + "s"
