"""
Spray suitability scoring.

Pure functions over the weather dicts produced by ``weather.client``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from app.models import SprayDay, SprayRecommendation, TimeOfDay

logger = logging.getLogger(__name__)

DEFAULT_IDEAL_TEMP = 20.0
IDEAL_TEMPERATURES = {
    "tomato": 22.0,
    "grape": 18.0,
    "apple": 15.0,
}

SCORE_GOOD_COLOR = "#4CAF50"
SCORE_FAIR_COLOR = "#FFC107"
SCORE_POOR_COLOR = "#F44336"

FUNGAL_PRODUCTS = {
    "tomato": ["Copper fungicide", "Neem oil"],
    "grape": ["Sulfur spray", "Potassium bicarbonate"],
}
DEFAULT_FUNGAL_PRODUCTS = ["General fungicide", "Copper spray"]

PEST_PRODUCTS = {
    "tomato": ["Insecticidal soap", "Bacillus thuringiensis (BT)"],
    "grape": ["Neem oil", "Pyrethrin"],
}
DEFAULT_PEST_PRODUCTS = ["General insecticide", "Neem oil"]


def ideal_temperature(crop_type: str) -> float:
    return IDEAL_TEMPERATURES.get((crop_type or "").strip().lower(), DEFAULT_IDEAL_TEMP)


def _day_temperature(day: Dict[str, Any]) -> float:
    temp = day["temp"]
    return temp["day"] if isinstance(temp, dict) else temp


def score_spray_day(day: Dict[str, Any], crop_type: str) -> SprayDay:
    """Score one forecast day (wind in km/h, pop in 0..1) for spraying."""
    score = 100
    reasons = []

    wind = day.get("wind_speed", 0) or 0
    if wind > 20:
        score -= 50
        reasons.append("High wind")
    elif wind > 10:
        score -= 20
        reasons.append("Moderate wind")

    pop = day.get("pop", 0) or 0
    if pop > 0.5:
        score -= 50
        reasons.append("High chance of rain")
    elif pop > 0.2:
        score -= 20
        reasons.append("Chance of rain")

    temp = _day_temperature(day)
    temp_diff = abs(temp - ideal_temperature(crop_type))
    if temp_diff > 10:
        score -= 30
        reasons.append("Temperature not ideal")
    elif temp_diff > 5:
        score -= 10
        reasons.append("Temperature slightly off")

    # Less evaporation in the evening when the air is dry
    humidity = day.get("humidity")
    best_time = TimeOfDay.EVENING if humidity is not None and humidity < 40 else TimeOfDay.MORNING

    weather = day.get("weather") or [{}]
    return SprayDay(
        date=datetime.fromtimestamp(day["dt"], tz=timezone.utc),
        score=max(0, min(100, score)),
        raw_score=score,
        reasons=reasons,
        best_time_of_day=best_time,
        conditions=weather[0].get("main", "Unknown"),
        temperature=temp,
        wind_speed=wind,
        rain_probability=pop,
    )


def build_spray_calendar(weather: Dict[str, Any], crop_type: str) -> List[SprayDay]:
    daily = sorted(weather.get("daily") or [], key=lambda d: d["dt"])
    return [score_spray_day(day, crop_type) for day in daily]


def score_color(score: int) -> str:
    if score >= 80:
        return SCORE_GOOD_COLOR
    if score >= 60:
        return SCORE_FAIR_COLOR
    return SCORE_POOR_COLOR


# ============================================================================#
# Disease / pest risk
# ============================================================================#

def is_fungal_disease_risk(weather: Dict[str, Any]) -> bool:
    current = weather["current"]
    humidity = current["humidity"]
    temp = current["temp"]

    rain = current.get("rain") or {}
    rained_recently = (rain.get("1h") or 0) > 0
    daily = weather.get("daily") or []
    rain_forecast = bool(daily) and (daily[0].get("pop") or 0) > 0.4

    return (humidity > 70 and 15 <= temp <= 30) or rained_recently or rain_forecast


def is_pest_infestation_risk(weather: Dict[str, Any]) -> bool:
    current = weather["current"]
    return current["humidity"] < 50 and current["temp"] > 25


def get_spray_recommendations(weather: Dict[str, Any], crop_type: str) -> SprayRecommendation:
    if not weather or not weather.get("current"):
        return SprayRecommendation(
            should_spray=False,
            risk_level="low",
            reason="Unable to determine risk due to missing weather data",
        )

    fungal = is_fungal_disease_risk(weather)
    pest = is_pest_infestation_risk(weather)

    if fungal and pest:
        risk_level = "high"
        reason = "Current weather conditions are favorable for both fungal diseases and pest infestations."
    elif fungal:
        risk_level = "medium"
        reason = "Current weather conditions are favorable for fungal diseases."
    elif pest:
        risk_level = "medium"
        reason = "Current weather conditions are favorable for pest infestations."
    else:
        risk_level = "low"
        reason = "Current weather conditions do not pose a significant risk to your crops."

    should_spray = risk_level != "low"
    if not should_spray:
        return SprayRecommendation(should_spray=False, risk_level=risk_level, reason=reason)

    if weather["current"].get("wind_speed", 0) > 10:
        best_time = "Wait for calmer conditions before spraying."
    else:
        best_time = "Early morning or late evening when temperatures are cooler."

    crop = (crop_type or "").strip().lower()
    products: List[str] = []
    if fungal:
        products += FUNGAL_PRODUCTS.get(crop, DEFAULT_FUNGAL_PRODUCTS)
    if pest:
        products += PEST_PRODUCTS.get(crop, DEFAULT_PEST_PRODUCTS)

    logger.info(f"Spray recommendation for {crop or 'general'}: risk={risk_level}")
    return SprayRecommendation(
        should_spray=True,
        risk_level=risk_level,
        reason=reason,
        best_time_to_spray=best_time,
        recommended_products=products,
    )
