import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException

from app.config import OPENWEATHERMAP_API_KEY
from app.dependencies import get_http_client, get_store
from app.models import SprayEventRequest
from app.services.storage import DiagnosisStore
from app.services.weather import (
    build_spray_calendar,
    check_weather_api_status,
    get_spray_recommendations,
    get_weather_data,
    score_color,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["weather"])


def _parse_coordinate(value: Optional[str], limit: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float("nan")
    if number != number or not -limit <= number <= limit:
        raise HTTPException(
            status_code=400,
            detail="Invalid coordinates. Latitude must be between -90 and 90, longitude between -180 and 180",
        )
    return number


@router.get("/weather")
async def weather(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    crop: str = "general",
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Weather, spray recommendation and a scored spray calendar for a location."""
    if not lat or not lon:
        raise HTTPException(status_code=400, detail="Missing required parameters: lat and lon")

    latitude = _parse_coordinate(lat, 90)
    longitude = _parse_coordinate(lon, 180)

    weather_data = await get_weather_data(latitude, longitude, OPENWEATHERMAP_API_KEY, http_client)
    recommendation = get_spray_recommendations(weather_data, crop)
    calendar = [
        {**day.model_dump(mode="json", by_alias=True), "color": score_color(day.score)}
        for day in build_spray_calendar(weather_data, crop)
    ]

    return {
        "weather": weather_data,
        "sprayRecommendations": recommendation.model_dump(mode="json", by_alias=True),
        "sprayCalendar": calendar,
        "location": {"latitude": latitude, "longitude": longitude, "cropType": crop},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/weather-status")
async def weather_status(http_client: httpx.AsyncClient = Depends(get_http_client)):
    return await check_weather_api_status(OPENWEATHERMAP_API_KEY, http_client)


@router.post("/spray-events", status_code=201)
async def add_spray_event(body: SprayEventRequest, store: DiagnosisStore = Depends(get_store)):
    row = await store.add_spray_event(body.field_id, body.day)
    if row is None:
        raise HTTPException(status_code=502, detail="Failed to add spray event")
    return row
