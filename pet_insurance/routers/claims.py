"""
Claims router for filing and settling claims.
"""

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from typing import List
import logging

from pet_insurance.clock import to_naive_utc
from pet_insurance.schemas import ClaimCreate, ClaimRejectRequest, ClaimResponse
from pet_insurance.deps import (
    get_current_user,
    require_roles,
    ensure_can_access,
    check_idempotency_key,
    store_idempotency_response,
    generate_request_hash
)
from pet_insurance.db import get_session
from pet_insurance.errors import ClaimNotFound, ClinicNotFound, PolicyNotFound
from pet_insurance.models import Claim, Clinic, Policy, User
from pet_insurance.services.lifecycle import (
    approve_claim,
    mark_claim_paid,
    open_claim,
    reject_claim,
    start_review
)
from pet_insurance.services.repository import get_claim, get_policy, save_claim

logger = logging.getLogger("pet_insurance")

router = APIRouter()


def load_claim(claim_id: int, session: Session) -> Claim:
    claim = get_claim(claim_id, session)
    if claim is None:
        raise ClaimNotFound(claim_id)
    return claim


@router.post("/claims", response_model=ClaimResponse, status_code=201)
async def create_claim(
    request: ClaimCreate,
    request_obj: Request,
    user: User = Depends(require_roles("owner", "veterinarian", "agent")),
    session: Session = Depends(get_session)
):
    """
    File a claim against an active policy.

    This endpoint:
    1. Replays the stored response for a repeated X-Idempotency-Key
    2. Checks the policy exists, belongs to the caller and is active now
    3. Creates the claim as pending
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")
    request_hash = generate_request_hash(request.model_dump(mode="json"))

    cached_response = check_idempotency_key(request_obj, user, request_hash, session)
    if cached_response:
        logger.info(f"Returning cached response | request_id={request_id} | user_id={user.id}")
        return cached_response

    policy = get_policy(request.policy_id, session)
    if policy is None:
        raise PolicyNotFound(request.policy_id)
    if user.role == "owner":
        ensure_can_access(user, policy.owner_id)
    if request.clinic_id is not None and session.get(Clinic, request.clinic_id) is None:
        raise ClinicNotFound(request.clinic_id)

    claim_data = request.model_dump(exclude={"policy_id"})
    claim_data["incident_date"] = to_naive_utc(request.incident_date)

    claim = open_claim(policy, claim_data)
    save_claim(claim, session)

    logger.info(
        f"Claim created | request_id={request_id} | claim_id={claim.id} | "
        f"policy_id={policy.id} | claim_amount={claim.claim_amount}"
    )

    response_data = ClaimResponse.model_validate(claim)

    idempotency_key = request_obj.headers.get("X-Idempotency-Key")
    if idempotency_key:
        store_idempotency_response(
            idempotency_key,
            user,
            request_obj.method,
            request_obj.url.path,
            request_hash,
            response_data.model_dump(mode="json"),
            session
        )

    return response_data


@router.get("/claims", response_model=List[ClaimResponse])
async def list_claims(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Owners get claims on their own policies; other roles get all claims."""
    query = session.query(Claim)
    if user.role == "owner":
        query = query.join(Policy, Claim.policy_id == Policy.id).filter(Policy.owner_id == user.id)
    return query.order_by(Claim.created_at.desc()).all()


@router.get("/claims/{claim_id}", response_model=ClaimResponse)
async def get_claim_by_id(
    claim_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    claim = load_claim(claim_id, session)
    if user.role == "owner":
        policy = get_policy(claim.policy_id, session)
        ensure_can_access(user, policy.owner_id if policy else None)
    return claim


@router.put("/claims/{claim_id}/review", response_model=ClaimResponse)
async def review_claim(
    claim_id: int,
    user: User = Depends(require_roles("agent")),
    session: Session = Depends(get_session)
):
    """Take a pending claim into review."""
    claim = load_claim(claim_id, session)
    start_review(claim)
    return save_claim(claim, session)


@router.put("/claims/{claim_id}/approve", response_model=ClaimResponse)
async def approve(
    claim_id: int,
    user: User = Depends(require_roles("agent")),
    session: Session = Depends(get_session)
):
    """Approve a claim; the payout is settled against the policy terms."""
    claim = load_claim(claim_id, session)
    policy = get_policy(claim.policy_id, session)
    approve_claim(claim, policy, user.id)
    return save_claim(claim, session)


@router.put("/claims/{claim_id}/reject", response_model=ClaimResponse)
async def reject(
    claim_id: int,
    request: ClaimRejectRequest,
    user: User = Depends(require_roles("agent")),
    session: Session = Depends(get_session)
):
    """Reject a claim with a reason."""
    claim = load_claim(claim_id, session)
    reject_claim(claim, request.rejection_reason, user.id)
    return save_claim(claim, session)


@router.put("/claims/{claim_id}/pay", response_model=ClaimResponse)
async def pay(
    claim_id: int,
    user: User = Depends(require_roles("agent")),
    session: Session = Depends(get_session)
):
    """Mark an approved claim as paid."""
    claim = load_claim(claim_id, session)
    mark_claim_paid(claim)
    return save_claim(claim, session)
