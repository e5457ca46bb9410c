"""
Community voting on saved diagnoses.

A vote names the disease the voter believes is right. Votes that agree
with the stored diagnosis count as upvotes, votes naming another disease
count as downvotes. The vote balance nudges the AI confidence by at most
0.3 in either direction.
"""

import logging
from collections import Counter
from typing import Optional

from app.models import VoteSummary

logger = logging.getLogger(__name__)

MAX_VOTE_WEIGHT = 0.3
VOTES_FOR_FULL_WEIGHT = 20
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95


def adjust_confidence(base_confidence: float, upvotes: int, downvotes: int) -> float:
    total = upvotes + downvotes
    if total == 0:
        return base_confidence

    ratio = (upvotes - downvotes) / total
    weight = min(MAX_VOTE_WEIGHT, total / VOTES_FOR_FULL_WEIGHT)
    return min(max(base_confidence + ratio * weight, MIN_CONFIDENCE), MAX_CONFIDENCE)


class CommunityVoting:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    async def _get_diagnosis(self, diagnosis_id: str) -> Optional[dict]:
        result = self.supabase.table("diagnoses")\
            .select("id, disease_name, confidence_score")\
            .eq("id", diagnosis_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    async def cast_vote(self, diagnosis_id: str, user_id: str, voted_disease: str) -> bool:
        """Record a vote. Returns False if the user already voted or the insert failed."""
        try:
            existing = self.supabase.table("community_votes")\
                .select("id")\
                .eq("diagnosis_id", diagnosis_id)\
                .eq("user_id", user_id)\
                .execute()
            if existing.data:
                logger.info(f"User {user_id} already voted on {diagnosis_id}")
                return False

            self.supabase.table("community_votes").insert({
                "diagnosis_id": diagnosis_id,
                "user_id": user_id,
                "voted_disease": voted_disease,
            }).execute()
            logger.info(f"✓ Vote recorded on {diagnosis_id}: {voted_disease}")
            return True
        except Exception as e:
            logger.error(f"Failed to record vote: {e}")
            return False

    async def remove_vote(self, diagnosis_id: str, user_id: str) -> bool:
        try:
            result = self.supabase.table("community_votes")\
                .delete()\
                .eq("diagnosis_id", diagnosis_id)\
                .eq("user_id", user_id)\
                .execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"Failed to remove vote: {e}")
            return False

    async def get_vote_summary(
        self,
        diagnosis_id: str,
        user_id: Optional[str] = None,
        base_confidence: Optional[float] = None,
    ) -> VoteSummary:
        try:
            votes = self.supabase.table("community_votes")\
                .select("id, user_id, voted_disease")\
                .eq("diagnosis_id", diagnosis_id)\
                .execute().data or []
            diagnosis = await self._get_diagnosis(diagnosis_id)
        except Exception as e:
            logger.error(f"Failed to load votes for {diagnosis_id}: {e}")
            return VoteSummary(diagnosis_id=diagnosis_id, confidence=base_confidence)

        diagnosed = (diagnosis or {}).get("disease_name")
        if base_confidence is None and diagnosis:
            base_confidence = diagnosis.get("confidence_score")

        if diagnosed:
            upvotes = sum(1 for v in votes if v["voted_disease"].lower() == diagnosed.lower())
        else:
            upvotes = len(votes)
        downvotes = len(votes) - upvotes

        counts = Counter(v["voted_disease"] for v in votes)
        leading = counts.most_common(1)[0][0] if counts else None

        return VoteSummary(
            diagnosis_id=diagnosis_id,
            upvotes=upvotes,
            downvotes=downvotes,
            leading_disease=leading,
            user_has_voted=bool(user_id) and any(v["user_id"] == user_id for v in votes),
            confidence=adjust_confidence(base_confidence, upvotes, downvotes)
            if base_confidence is not None else None,
        )
