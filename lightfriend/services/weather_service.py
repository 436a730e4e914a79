"""
Current weather lookup for the weather tool.

Single Open-Meteo call, no API key. The result is flattened into a short
sentence the voice assistant can read out as-is.
"""
from __future__ import annotations

import logging

import httpx

from lightfriend.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

# WMO weather interpretation codes, grouped
_WEATHER_CODES: dict[int, str] = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "fog",
    51: "light drizzle",
    53: "drizzle",
    55: "heavy drizzle",
    61: "light rain",
    63: "rain",
    65: "heavy rain",
    71: "light snow",
    73: "snow",
    75: "heavy snow",
    80: "rain showers",
    81: "rain showers",
    82: "violent rain showers",
    95: "thunderstorm",
    96: "thunderstorm with hail",
    99: "thunderstorm with hail",
}


def describe_weather_code(code: int | None) -> str:
    if code is None:
        return "unknown conditions"
    return _WEATHER_CODES.get(code, "unknown conditions")


async def fetch_current_weather(lat: float, lng: float) -> dict:
    """
    Returns:
      temperature_c   (°C) at 2m
      wind_speed      (m/s) at 10m
      humidity_pct    (%)
      conditions      human readable WMO code
      summary         one sentence for the assistant
    """
    params = {
        "latitude": round(lat, 4),
        "longitude": round(lng, 4),
        "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
        "wind_speed_unit": "ms",
        "timezone": "auto",
    }
    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            resp = await client.get(OPEN_METEO_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as exc:
        logger.error("Open-Meteo request failed (lat=%s, lng=%s): %s", lat, lng, exc)
        raise UpstreamServiceError("Weather", str(exc)) from exc
    except ValueError as exc:
        logger.error("Open-Meteo returned a non-JSON body: %s", exc)
        raise UpstreamServiceError("Weather", "invalid response body") from exc

    current = data.get("current") or {}
    result = {
        "temperature_c": current.get("temperature_2m"),
        "wind_speed": current.get("wind_speed_10m"),
        "humidity_pct": current.get("relative_humidity_2m"),
        "conditions": describe_weather_code(current.get("weather_code")),
    }
    result["summary"] = (
        f"It is {result['temperature_c']}°C with {result['conditions']}, "
        f"wind {result['wind_speed']} m/s and humidity {result['humidity_pct']}%."
    )
    logger.info("Open-Meteo current weather for lat=%s lng=%s: %s", lat, lng, result["summary"])
    return result
