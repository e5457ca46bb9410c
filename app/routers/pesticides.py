import logging
from typing import List

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import get_http_client
from app.models import DosageRecommendation, IPMRecommendation, PesticideDosage, PesticideResearchData
from app.services.pesticide import (
    get_dosage_recommendation,
    get_ipm_recommendations,
    get_pesticide_by_id,
    get_pesticide_dosages,
    get_pesticide_research_data,
    get_registered_pesticides,
    search_pesticides,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pesticides", tags=["pesticides"])


@router.get("/dosages", response_model=List[PesticideDosage])
async def dosages(disease: str = "", plant: str = ""):
    return get_pesticide_dosages(disease, plant)


@router.get("/search", response_model=List[PesticideDosage])
async def search(q: str = Query(..., min_length=1)):
    return search_pesticides(q)


@router.get("/registered", response_model=List[PesticideDosage])
async def registered():
    return get_registered_pesticides()


@router.get("/ipm", response_model=List[IPMRecommendation])
async def ipm(disease: str = "", plant: str = ""):
    return get_ipm_recommendations(disease, plant)


@router.get("/research", response_model=PesticideResearchData)
async def research(
    crop: str = Query(..., min_length=1),
    disease: str = Query(..., min_length=1),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    return await get_pesticide_research_data(crop, disease, http_client)


@router.get("/{pesticide_id}", response_model=PesticideDosage)
async def pesticide(pesticide_id: str):
    dosage = get_pesticide_by_id(pesticide_id)
    if dosage is None:
        raise HTTPException(status_code=404, detail="Pesticide not found")
    return dosage


@router.get("/{pesticide_id}/dosage", response_model=DosageRecommendation)
async def dosage_recommendation(
    pesticide_id: str,
    field_size_ha: float = Query(..., gt=0),
    spray_volume_per_ha: float = Query(400.0, gt=0),
):
    dosage = get_pesticide_by_id(pesticide_id)
    if dosage is None:
        raise HTTPException(status_code=404, detail="Pesticide not found")
    return get_dosage_recommendation(dosage, field_size_ha, spray_volume_per_ha)
