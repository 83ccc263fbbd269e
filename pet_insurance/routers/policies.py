"""
Policies router for issuing, reading, renewing and cancelling policies.
"""

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from typing import List
import logging

from pet_insurance.clock import to_naive_utc, utcnow
from pet_insurance.schemas import PolicyCreate, PolicyResponse
from pet_insurance.deps import get_current_user, require_roles, ensure_can_access
from pet_insurance.db import get_session
from pet_insurance.errors import PetNotFound, PolicyNotFound
from pet_insurance.models import Pet, Policy, User
from pet_insurance.services.lifecycle import (
    add_one_year,
    cancel_policy,
    generate_policy_number,
    refresh_policy_status,
    renew_policy
)
from pet_insurance.services.pricing import quote_for_pet
from pet_insurance.services.repository import load_policy_fresh, save_policy

logger = logging.getLogger("pet_insurance")

router = APIRouter()


def load_policy(policy_id: int, session: Session) -> Policy:
    policy = load_policy_fresh(policy_id, session)
    if policy is None:
        raise PolicyNotFound(policy_id)
    return policy


@router.post("/policies", response_model=PolicyResponse, status_code=201)
async def create_policy(
    request: PolicyCreate,
    request_obj: Request,
    user: User = Depends(require_roles("owner", "agent")),
    session: Session = Depends(get_session)
):
    """
    Issue a one-year policy for a pet.

    This endpoint:
    1. Looks up the pet (owners may only insure their own pets)
    2. Prices the pet with the pricing engine
    3. Sets the term to one year from the start date
    4. Saves the policy, which derives its initial status
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")

    pet = session.get(Pet, request.pet_id)
    if pet is None or not pet.is_active:
        raise PetNotFound(request.pet_id)
    ensure_can_access(user, pet.owner_id)

    now = utcnow()
    start_date = to_naive_utc(request.start_date) if request.start_date else now
    quote = quote_for_pet(pet, request.coverage_type, today=start_date.date())

    policy = Policy(
        policy_number=generate_policy_number(now),
        pet_id=pet.id,
        owner_id=pet.owner_id,
        start_date=start_date,
        end_date=add_one_year(start_date),
        status="pending",
        premium=quote["premium"],
        coverage_amount=quote["coverage_amount"],
        deductible=quote["deductible"],
        coverage_type=quote["coverage_type"],
        notes=request.notes
    )
    save_policy(policy, session, now)

    logger.info(
        f"Policy created | request_id={request_id} | policy_id={policy.id} | "
        f"pet_id={pet.id} | coverage_type={policy.coverage_type} | "
        f"premium={policy.premium} | status={policy.status}"
    )
    return policy


@router.get("/policies", response_model=List[PolicyResponse])
async def list_policies(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Owners get their own policies; other roles get all of them."""
    query = session.query(Policy)
    if user.role == "owner":
        query = query.filter(Policy.owner_id == user.id)

    now = utcnow()
    policies = query.order_by(Policy.created_at.desc()).all()
    for policy in policies:
        if refresh_policy_status(policy, now):
            save_policy(policy, session, now)
    return policies


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Retrieve a policy with its status derived as of now."""
    policy = load_policy(policy_id, session)
    ensure_can_access(user, policy.owner_id)
    return policy


@router.post("/policies/{policy_id}/renew", response_model=PolicyResponse)
async def renew(
    policy_id: int,
    user: User = Depends(require_roles("owner", "agent")),
    session: Session = Depends(get_session)
):
    """Extend a policy by one year."""
    policy = load_policy(policy_id, session)
    ensure_can_access(user, policy.owner_id)

    now = utcnow()
    renew_policy(policy, now)
    return save_policy(policy, session, now)


@router.delete("/policies/{policy_id}", response_model=PolicyResponse)
async def cancel(
    policy_id: int,
    user: User = Depends(require_roles("agent")),
    session: Session = Depends(get_session)
):
    """Cancel a policy."""
    policy = load_policy(policy_id, session)
    cancel_policy(policy)
    return save_policy(policy, session)
