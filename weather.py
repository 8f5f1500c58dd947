import logging
import os
from pathlib import Path

import httpx
from dotenv import load_dotenv

from models import WeatherReport

# Load .env from project root
load_dotenv(dotenv_path=Path(__file__).parent / ".env")

OPENWEATHER_BASE_URL = os.getenv(
    "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5/weather"
)
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
WEATHER_UNITS = os.getenv("WEATHER_UNITS", "imperial")

logger = logging.getLogger(__name__)


class WeatherFetchError(Exception):
    pass


async def fetch_current_weather(
    location: str,
    *,
    api_key: str | None = None,
    units: str | None = None,
) -> WeatherReport:
    """Fetch current conditions for a location from OpenWeatherMap.

    Raises WeatherFetchError on any failure; callers turn that into speech.
    """
    api_key = api_key or OPENWEATHER_API_KEY
    units = units or WEATHER_UNITS

    if not api_key:
        logger.error("OPENWEATHER_API_KEY is not set; cannot fetch weather for %r", location)
        raise WeatherFetchError("weather API key not configured")

    params = {"q": location, "units": units, "appid": api_key}

    logger.info("Fetching weather: location=%r units=%s", location, units)
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(OPENWEATHER_BASE_URL, params=params, timeout=10.0)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        logger.error("Weather request timed out for location=%r", location)
        raise WeatherFetchError("weather service timed out") from exc
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Weather service HTTP error %s for location=%r",
            exc.response.status_code,
            location,
        )
        raise WeatherFetchError(
            f"weather service returned {exc.response.status_code}"
        ) from exc
    except httpx.RequestError as exc:
        logger.error("Weather service unreachable for location=%r: %s", location, exc)
        raise WeatherFetchError("weather service unreachable") from exc

    try:
        data = response.json()
        main = data["main"]
        return WeatherReport(
            location=data.get("name") or location,
            description=data["weather"][0]["description"],
            temperature=main["temp"],
            temp_min=main["temp_min"],
            temp_max=main["temp_max"],
            units=units,
        )
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        logger.error("Malformed weather payload for location=%r: %s", location, exc)
        raise WeatherFetchError("malformed weather payload") from exc
