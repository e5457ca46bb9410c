import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_voting
from app.models import VoteRequest, VoteSummary
from app.services.community import CommunityVoting

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/community", tags=["community"])


@router.post("/votes", response_model=VoteSummary, status_code=201)
async def cast_vote(body: VoteRequest, voting: CommunityVoting = Depends(get_voting)):
    recorded = await voting.cast_vote(body.diagnosis_id, body.user_id, body.voted_disease)
    if not recorded:
        raise HTTPException(status_code=409, detail="User has already voted on this diagnosis")
    return await voting.get_vote_summary(body.diagnosis_id, body.user_id)


@router.get("/votes/{diagnosis_id}", response_model=VoteSummary)
async def vote_summary(
    diagnosis_id: str,
    user_id: Optional[str] = None,
    base_confidence: Optional[float] = None,
    voting: CommunityVoting = Depends(get_voting),
):
    return await voting.get_vote_summary(diagnosis_id, user_id, base_confidence)


@router.delete("/votes/{diagnosis_id}")
async def remove_vote(diagnosis_id: str, user_id: str, voting: CommunityVoting = Depends(get_voting)):
    if not await voting.remove_vote(diagnosis_id, user_id):
        raise HTTPException(status_code=404, detail="Vote not found")
    return {"status": "success"}
