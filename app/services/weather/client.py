"""
Weather Service
OpenWeatherMap client for the spray calendar.

Only the free endpoints are used (current weather + 5 day / 3 hour
forecast). The forecast is folded into daily records and padded out to
FORECAST_DAYS with synthesised days built around the real averages.

Data shape (plain dicts, close to OpenWeatherMap's own):
    {
        "current": {"temp", "humidity", "wind_speed", "weather", "rain"},
        "daily": [{"dt", "temp": {"day", "min", "max"}, "humidity",
                   "wind_speed", "weather", "pop", "rain"}, ...],
        "alerts": [...],
        "mock": bool,
    }
Wind speeds are km/h throughout.
"""

import asyncio
import logging
import random
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from app.config import (
    FORECAST_DAYS,
    OPENWEATHERMAP_API_KEY,
    OPENWEATHERMAP_BASE_URL,
    is_key_configured,
)

logger = logging.getLogger(__name__)

# Timeout configuration
TIMEOUT = httpx.Timeout(30.0, connect=10.0)

REAL_FORECAST_DAYS = 5
MS_TO_KMH = 3.6

CLEAR_SKY = {"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}
FEW_CLOUDS = {"id": 801, "main": "Clouds", "description": "few clouds", "icon": "02d"}
SCATTERED_CLOUDS = {"id": 802, "main": "Clouds", "description": "scattered clouds", "icon": "03d"}


async def get_weather_data(
    lat: float,
    lon: float,
    api_key: Optional[str] = OPENWEATHERMAP_API_KEY,
    http_client: Optional[httpx.AsyncClient] = None,
    rng=random,
) -> Dict[str, Any]:
    """
    Fetch current weather and a FORECAST_DAYS daily forecast.

    Falls back to mock data when the key is missing, the API answers with
    an error, or the network fails.
    """
    if not is_key_configured(api_key):
        logger.info("Using mock weather data (no valid API key provided)")
        return get_mock_weather_data(rng)

    params = {"lat": lat, "lon": lon, "units": "metric", "appid": api_key}

    try:
        if http_client is not None:
            current_response, forecast_response = await _fetch_both(http_client, params)
        else:
            async with httpx.AsyncClient(timeout=TIMEOUT) as client:
                current_response, forecast_response = await _fetch_both(client, params)
    except httpx.HTTPError as e:
        logger.error(f"Weather API request failed for ({lat}, {lon}): {e}")
        return get_mock_weather_data(rng)

    if current_response.status_code != 200 or forecast_response.status_code != 200:
        logger.warning(
            f"Weather API error: {current_response.status_code}/{forecast_response.status_code}. "
            "Using mock data instead."
        )
        return get_mock_weather_data(rng)

    try:
        current = current_response.json()
        forecast = forecast_response.json()
        daily = transform_forecast_to_daily(forecast.get("list", []), rng=rng)
        current_rain = current.get("rain")
        weather = {
            "current": {
                "temp": current["main"]["temp"],
                "humidity": current["main"]["humidity"],
                "wind_speed": current["wind"]["speed"] * MS_TO_KMH,
                "weather": current.get("weather", []),
                "rain": current_rain,
            },
            "daily": daily,
            "alerts": [],  # Free API doesn't include alerts
            "mock": False,
        }
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Unexpected weather API payload: {e}")
        return get_mock_weather_data(rng)

    if not daily:
        logger.warning("Weather forecast was empty. Using mock data instead.")
        return get_mock_weather_data(rng)

    logger.info(f"Weather fetched for ({lat}, {lon}): {len(daily)} days")
    return weather


async def _fetch_both(client: httpx.AsyncClient, params: Dict[str, Any]):
    return await asyncio.gather(
        client.get(f"{OPENWEATHERMAP_BASE_URL}/weather", params=params),
        client.get(f"{OPENWEATHERMAP_BASE_URL}/forecast", params=params),
    )


def transform_forecast_to_daily(
    forecast_list: List[Dict[str, Any]],
    extend_to: int = FORECAST_DAYS,
    rng=random,
) -> List[Dict[str, Any]]:
    """
    Fold 3-hourly forecast items into one record per calendar day (UTC).

    Day temperature is the mean of the slots; humidity, wind, pop and rain
    keep the day's maximum. The first REAL_FORECAST_DAYS days are real, the
    rest up to ``extend_to`` are synthesised from their averages.
    """
    days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    for item in sorted(forecast_list, key=lambda x: x["dt"]):
        key = datetime.fromtimestamp(item["dt"], tz=timezone.utc).date().isoformat()
        temp = item["main"]["temp"]
        humidity = item["main"]["humidity"]
        wind = item["wind"]["speed"] * MS_TO_KMH
        pop = item.get("pop") or 0
        rain = (item.get("rain") or {}).get("3h", 0)

        day = days.get(key)
        if day is None:
            days[key] = {
                "dt": item["dt"],
                "temp": {"min": temp, "max": temp, "day": temp},
                "humidity": humidity,
                "wind_speed": wind,
                "weather": item.get("weather", []),
                "pop": pop,
                "rain": rain,
                "_temps": [temp],
            }
            continue

        day["temp"]["min"] = min(day["temp"]["min"], temp)
        day["temp"]["max"] = max(day["temp"]["max"], temp)
        day["_temps"].append(temp)
        day["humidity"] = max(day["humidity"], humidity)
        day["wind_speed"] = max(day["wind_speed"], wind)
        day["pop"] = max(day["pop"], pop)
        day["rain"] = max(day["rain"], rain)

    real_days = []
    for day in list(days.values())[:REAL_FORECAST_DAYS]:
        temps = day.pop("_temps")
        day["temp"]["day"] = sum(temps) / len(temps)
        real_days.append(day)

    if not real_days:
        return []

    return real_days + _extend_forecast(real_days, extend_to - len(real_days), rng)


def _extend_forecast(real_days: List[Dict[str, Any]], count: int, rng) -> List[Dict[str, Any]]:
    avg_temp = sum(d["temp"]["day"] for d in real_days) / len(real_days)
    avg_humidity = sum(d["humidity"] for d in real_days) / len(real_days)
    last = real_days[-1]
    last_date = datetime.fromtimestamp(last["dt"], tz=timezone.utc)

    extended = []
    for i in range(1, count + 1):
        day_temp = avg_temp + (rng.random() - 0.5) * 6  # ±3°C
        cloudy = rng.random() > 0.7
        extended.append({
            "dt": int((last_date + timedelta(days=i)).timestamp()),
            "temp": {
                "min": day_temp - 3 - rng.random() * 2,
                "max": day_temp + 3 + rng.random() * 2,
                "day": day_temp,
            },
            "humidity": max(30.0, min(90.0, avg_humidity + (rng.random() - 0.5) * 20)),
            "wind_speed": max(0.0, last["wind_speed"] + (rng.random() - 0.5) * 4),
            "weather": [SCATTERED_CLOUDS if cloudy else CLEAR_SKY],
            "pop": rng.random() * 0.3,
            "rain": rng.random() * 2 if rng.random() > 0.8 else 0,
            "synthetic": True,
        })
    return extended


def get_mock_weather_data(rng=random, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Mock weather for development and when the API key is missing."""
    now = now or datetime.now(timezone.utc)
    start = int(now.timestamp())

    daily = []
    for i in range(FORECAST_DAYS):
        daily.append({
            "dt": start + i * 86400,
            "temp": {
                "day": 22 + rng.random() * 5,
                "min": 18 + rng.random() * 3,
                "max": 25 + rng.random() * 5,
            },
            "humidity": 60 + rng.randrange(20),
            "wind_speed": 2 + rng.random() * 5,
            "weather": [CLEAR_SKY if i % 2 == 0 else FEW_CLOUDS],
            "pop": rng.random() * 0.3,
            "rain": 0,
        })

    alerts = []
    if rng.randrange(3) == 0:
        alerts.append({
            "sender_name": "Garden Buddy Weather Alert (MOCK)",
            "event": "Heavy Rain Warning",
            "start": start + 86400,
            "end": start + 2 * 86400,
            "description": "This is a mock weather alert for demonstration purposes.",
        })

    return {
        "current": {
            "temp": 22.5,
            "humidity": 65,
            "wind_speed": 3.5,
            "weather": [CLEAR_SKY],
            "rain": None,
        },
        "daily": daily,
        "alerts": alerts,
        "mock": True,
    }


async def check_weather_api_status(
    api_key: Optional[str] = OPENWEATHERMAP_API_KEY,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Check the current-weather endpoint with a fixed city."""
    if not is_key_configured(api_key):
        return {
            "status": "error",
            "message": "OpenWeatherMap API key not configured",
            "hasApiKey": False,
        }

    params = {"q": "London", "units": "metric", "appid": api_key}
    try:
        if http_client is not None:
            response = await http_client.get(f"{OPENWEATHERMAP_BASE_URL}/weather", params=params)
        else:
            async with httpx.AsyncClient(timeout=TIMEOUT) as client:
                response = await client.get(f"{OPENWEATHERMAP_BASE_URL}/weather", params=params)
    except httpx.HTTPError as e:
        logger.error(f"Weather status check failed: {e}")
        return {"status": "error", "message": f"Network error: {e}", "hasApiKey": True}

    if response.status_code != 200:
        return {"status": "error", "message": f"API Error: {response.status_code}", "hasApiKey": True}

    data = response.json()
    return {
        "status": "success",
        "message": "Weather API is working correctly",
        "hasApiKey": True,
        "testLocation": data.get("name"),
        "temperature": (data.get("main") or {}).get("temp"),
    }
