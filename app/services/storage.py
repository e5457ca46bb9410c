"""
Diagnosis storage on Supabase.

Wraps an injected Supabase client (``supabase.create_client``) so routes and
tests can swap it out. Supabase failures are logged and surface as
``None`` / ``[]``; a storage outage never breaks a diagnosis.

Tables used:
    diagnoses         - saved diagnoses per user
    cached_diagnoses  - diagnosis JSON keyed by image hash
    spray_events      - spray days added to a field's calendar
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.config import SUPABASE_IMAGE_BUCKET
from app.models import DiagnosisResult, SprayDay

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class DiagnosisStore:
    def __init__(self, supabase_client, bucket: str = SUPABASE_IMAGE_BUCKET):
        self.client = supabase_client
        self.bucket = bucket

    # ============================================================================#
    # Images
    # ============================================================================#

    async def upload_image(
        self, user_id: str, image_bytes: bytes, content_type: str = "image/jpeg"
    ) -> Optional[Dict[str, str]]:
        """Upload a plant photo to the bucket; returns ``{path, url}``."""
        try:
            ext = _EXTENSIONS.get(content_type, "jpg")
            path = f"{user_id}/{uuid.uuid4().hex}.{ext}"
            bucket = self.client.storage.from_(self.bucket)
            bucket.upload(path, image_bytes, {"content-type": content_type})
            url = bucket.get_public_url(path)
            logger.info(f"✓ Uploaded image: {path}")
            return {"path": path, "url": url}
        except Exception as e:
            logger.error(f"Image upload error: {e}")
            return None

    # ============================================================================#
    # Diagnoses
    # ============================================================================#

    async def save_diagnosis(
        self,
        user_id: str,
        image_url: Optional[str],
        plant_type: str,
        result: DiagnosisResult,
    ) -> Optional[Dict[str, Any]]:
        try:
            row = {
                "user_id": user_id,
                "image_url": image_url,
                "plant_type": plant_type,
                "disease_name": result.disease,
                "confidence_score": result.confidence,
                "ai_diagnosis": result.model_dump(mode="json", by_alias=True),
                "status": "pending",
            }
            response = self.client.table("diagnoses").insert(row).execute()
            if response.data:
                logger.info(f"✓ Saved diagnosis for user {user_id}: {result.disease}")
                return response.data[0]
            return None
        except Exception as e:
            logger.error(f"Save diagnosis error: {e}")
            return None

    async def list_diagnoses(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        try:
            response = self.client.table("diagnoses")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
            return response.data or []
        except Exception as e:
            logger.error(f"List diagnoses error: {e}")
            return []

    async def get_diagnosis(self, diagnosis_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.table("diagnoses")\
                .select("*")\
                .eq("id", diagnosis_id)\
                .limit(1)\
                .execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Get diagnosis error: {e}")
            return None

    # ============================================================================#
    # Result cache
    # ============================================================================#

    async def cache_diagnosis(self, image_hash: str, result: DiagnosisResult) -> None:
        try:
            self.client.table("cached_diagnoses").upsert({
                "image_hash": image_hash,
                "diagnosis": result.model_dump(mode="json", by_alias=True),
                "created_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="image_hash").execute()
            logger.info(f"✓ Cache set: {image_hash[:12]}")
        except Exception as e:
            logger.error(f"Cache diagnosis error: {e}")

    async def get_cached_diagnosis(self, image_hash: str) -> Optional[DiagnosisResult]:
        try:
            response = self.client.table("cached_diagnoses")\
                .select("diagnosis")\
                .eq("image_hash", image_hash)\
                .order("created_at", desc=True)\
                .limit(1)\
                .execute()
            if not response.data:
                return None
            logger.info(f"✓ Cache hit: {image_hash[:12]}")
            return DiagnosisResult.model_validate(response.data[0]["diagnosis"])
        except Exception as e:
            logger.error(f"Cache get error: {e}")
            return None

    # ============================================================================#
    # Spray calendar
    # ============================================================================#

    async def add_spray_event(self, field_id: str, day: SprayDay) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.table("spray_events").insert({
                "field_id": field_id,
                "scheduled_date": day.date.isoformat(),
                "best_time_of_day": day.best_time_of_day.value,
                "weather_conditions": {
                    "temp": day.temperature,
                    "wind": day.wind_speed,
                    "rain_probability": day.rain_probability,
                    "conditions": day.conditions,
                },
                "notes": f"Spray score: {day.score}%",
            }).execute()
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Add spray event error: {e}")
            return None
