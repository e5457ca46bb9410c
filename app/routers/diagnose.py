import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from app.config import DIAGNOSE_RATE_LIMIT
from app.dependencies import get_diagnosis_service
from app.models import DiagnoseRequest, DiagnosisResponse
from app.services.diagnosis import DiagnosisService, Provider
from app.services.diagnosis.dispatch import PROVIDER_ALIASES
from app.utils.rate_limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["diagnosis"])

KNOWN_PROVIDER_IDS = {p.value for p in Provider} | set(PROVIDER_ALIASES) | {"diagnose-hybrid"}


async def _run_diagnosis(
    body: DiagnoseRequest,
    provider_id: str,
    service: DiagnosisService,
) -> DiagnosisResponse:
    image = body.image_data()
    if not image:
        raise HTTPException(status_code=400, detail="No image provided")
    return await service.diagnose(image, body.plant_type, provider_id)


@router.post("/diagnose", response_model=DiagnosisResponse)
@limiter.limit(DIAGNOSE_RATE_LIMIT)
async def diagnose(
    request: Request,
    body: DiagnoseRequest,
    service: DiagnosisService = Depends(get_diagnosis_service),
):
    """Diagnose with the provider named in the body (plant database when unset)."""
    return await _run_diagnosis(body, body.provider, service)


@router.post("/{provider}", response_model=DiagnosisResponse)
@limiter.limit(DIAGNOSE_RATE_LIMIT)
async def diagnose_with_provider(
    request: Request,
    provider: str,
    body: DiagnoseRequest,
    service: DiagnosisService = Depends(get_diagnosis_service),
):
    """Per-provider endpoint: /api/openai, /api/claude, /api/perplexity, ..."""
    provider_id = provider.lower()
    if provider_id not in KNOWN_PROVIDER_IDS:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
    if provider_id == "diagnose-hybrid":
        provider_id = Provider.PLANT_DATABASE.value
    return await _run_diagnosis(body, provider_id, service)
