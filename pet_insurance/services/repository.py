"""
Storage service: loading and saving policies and claims.

Lookups return None when a record does not exist; database errors propagate.
"""

from typing import List, Optional, Sequence
from datetime import datetime

from pet_insurance.clock import utcnow
from pet_insurance.models import Policy, Claim
from pet_insurance.services.lifecycle import refresh_policy_status


def get_policy(policy_id: int, db_session) -> Optional[Policy]:
    """Find a policy by id."""
    return db_session.get(Policy, policy_id)


def save_policy(policy: Policy, db_session, now: Optional[datetime] = None) -> Policy:
    """
    Persist a policy, recomputing its status first.

    Args:
        policy: Policy record
        db_session: Database session
        now: Reference time for the status derivation

    Returns:
        The refreshed policy
    """
    if now is None:
        now = utcnow()

    refresh_policy_status(policy, now)
    policy.updated_at = now

    db_session.add(policy)
    db_session.commit()
    db_session.refresh(policy)
    return policy


def load_policy_fresh(policy_id: int, db_session, now: Optional[datetime] = None) -> Optional[Policy]:
    """Find a policy and persist its status if it went stale since the last save."""
    policy = get_policy(policy_id, db_session)
    if policy is not None and refresh_policy_status(policy, now):
        save_policy(policy, db_session, now)
    return policy


def find_active_policy_for_pet(pet_id: int, db_session, now: Optional[datetime] = None) -> Optional[Policy]:
    """
    Find a policy that is active for the pet at ``now``.

    Pending and active policies are re-derived before the check, so a policy
    whose start date has arrived counts and one that has lapsed does not.
    """
    candidates = db_session.query(Policy).filter(
        Policy.pet_id == pet_id,
        Policy.status.in_(["pending", "active"])
    ).order_by(Policy.end_date.desc()).all()

    active = None
    for policy in candidates:
        if refresh_policy_status(policy, now):
            save_policy(policy, db_session, now)
        if active is None and policy.status == "active":
            active = policy
    return active


def get_claim(claim_id: int, db_session) -> Optional[Claim]:
    """Find a claim by id."""
    return db_session.get(Claim, claim_id)


def save_claim(claim: Claim, db_session) -> Claim:
    """Persist a claim."""
    db_session.add(claim)
    db_session.commit()
    db_session.refresh(claim)
    return claim


def find_recent_claims(
    pet_id: int,
    statuses: Sequence[str],
    since: datetime,
    db_session
) -> List[Claim]:
    """
    Claims for a pet in any of ``statuses`` created at or after ``since``.

    Args:
        pet_id: Pet ID
        statuses: Claim statuses to match
        since: Start of the time window
        db_session: Database session

    Returns:
        Matching claims, newest first
    """
    return db_session.query(Claim).filter(
        Claim.pet_id == pet_id,
        Claim.status.in_(list(statuses)),
        Claim.created_at >= since
    ).order_by(Claim.created_at.desc()).all()
