from app.services.weather.client import (
    check_weather_api_status,
    get_mock_weather_data,
    get_weather_data,
    transform_forecast_to_daily,
)
from app.services.weather.spray import (
    build_spray_calendar,
    get_spray_recommendations,
    score_color,
    score_spray_day,
)

__all__ = [
    "check_weather_api_status",
    "get_mock_weather_data",
    "get_weather_data",
    "transform_forecast_to_daily",
    "build_spray_calendar",
    "get_spray_recommendations",
    "score_color",
    "score_spray_day",
]
