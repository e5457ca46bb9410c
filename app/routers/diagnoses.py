import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import get_store
from app.models import SaveDiagnosisRequest
from app.services.storage import DiagnosisStore
from app.utils.images import split_data_uri

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diagnoses", tags=["diagnoses"])


@router.post("", status_code=201)
async def save_diagnosis(body: SaveDiagnosisRequest, store: DiagnosisStore = Depends(get_store)):
    image_url = body.image_url

    if body.image and not image_url:
        media_type, payload = split_data_uri(body.image)
        try:
            image_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="Image is not valid base64")

        uploaded = await store.upload_image(body.user_id, image_bytes, media_type or "image/jpeg")
        if uploaded is None:
            raise HTTPException(status_code=502, detail="Image upload failed")
        image_url = uploaded["url"]

    row = await store.save_diagnosis(body.user_id, image_url, body.plant_type, body.result)
    if row is None:
        raise HTTPException(status_code=502, detail="Failed to save diagnosis")
    return row


@router.get("")
async def list_diagnoses(
    user_id: str = Query(...),
    limit: int = Query(20, ge=1, le=100),
    store: DiagnosisStore = Depends(get_store),
):
    return {"diagnoses": await store.list_diagnoses(user_id, limit)}


@router.get("/{diagnosis_id}")
async def get_diagnosis(diagnosis_id: str, store: DiagnosisStore = Depends(get_store)):
    row = await store.get_diagnosis(diagnosis_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Diagnosis not found")
    return row
