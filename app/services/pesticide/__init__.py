from app.services.pesticide.database import (
    get_dosage_recommendation,
    get_ipm_recommendations,
    get_pesticide_by_id,
    get_pesticide_dosages,
    get_registered_pesticides,
    search_pesticides,
)
from app.services.pesticide.research import get_pesticide_research_data

__all__ = [
    "get_dosage_recommendation",
    "get_ipm_recommendations",
    "get_pesticide_by_id",
    "get_pesticide_dosages",
    "get_registered_pesticides",
    "search_pesticides",
    "get_pesticide_research_data",
]
