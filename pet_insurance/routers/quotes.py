"""
Quotes router for premium quotes.
"""

from fastapi import APIRouter, Depends, Request
import logging

from pet_insurance.schemas import QuoteRequest, QuoteResponse
from pet_insurance.deps import get_current_user
from pet_insurance.models import User
from pet_insurance.services.pricing import calculate_quote

logger = logging.getLogger("pet_insurance")

router = APIRouter()


@router.post("/quotes", response_model=QuoteResponse)
async def create_quote(
    request: QuoteRequest,
    request_obj: Request,
    user: User = Depends(get_current_user)
):
    """
    Price a policy from tier, species and age.

    Nothing is persisted; unknown tiers and species are priced with the
    standard tier and a neutral species multiplier.
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")

    quote = calculate_quote(request.coverage_type, request.species, request.age_years)

    logger.info(
        f"Quote calculated | request_id={request_id} | user_id={user.id} | "
        f"coverage_type={quote['coverage_type']} | species={request.species} | "
        f"age_years={request.age_years} | premium={quote['premium']}"
    )

    return QuoteResponse(**quote)
