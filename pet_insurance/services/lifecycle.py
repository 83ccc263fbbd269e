"""
Lifecycle service: valid status transitions for policies and claims.

Functions here change records in memory only; persisting them is the
caller's job (see services/repository.py).
"""

from typing import Dict, Any, Optional
from datetime import datetime
import logging
import random

from pet_insurance.clock import utcnow
from pet_insurance.errors import InsuranceError, PolicyNotFound, PolicyNotActive, InvalidTransition
from pet_insurance.models import Claim
from pet_insurance.services.settlement import approved_amount_for_policy

logger = logging.getLogger("pet_insurance")

# Claims that can still be reviewed
REVIEWABLE_CLAIM_STATUSES = ("pending", "under_review")


# ============================================================================
# Policies
# ============================================================================

def derive_policy_status(policy, now: Optional[datetime] = None) -> str:
    """
    Compute the status a policy should have at ``now``.

    Rules:
    - cancelled is terminal and never recomputed
    - end_date in the past -> expired
    - pending and start_date <= now <= end_date -> active
    - otherwise the stored status stands

    Args:
        policy: Policy record (anything with status, start_date, end_date)
        now: Reference time, defaults to current UTC time

    Returns:
        Derived status
    """
    if now is None:
        now = utcnow()

    if policy.status == "cancelled":
        return "cancelled"
    if policy.end_date < now:
        return "expired"
    if policy.status == "pending" and policy.start_date <= now <= policy.end_date:
        return "active"
    return policy.status


def refresh_policy_status(policy, now: Optional[datetime] = None) -> bool:
    """Apply derive_policy_status to the record. Returns True if it changed."""
    new_status = derive_policy_status(policy, now)
    if new_status == policy.status:
        return False
    logger.info(
        f"Policy status derived | policy_id={policy.id} | "
        f"from={policy.status} | to={new_status}"
    )
    policy.status = new_status
    return True


def add_one_year(moment: datetime) -> datetime:
    """Same calendar day next year; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        return moment.replace(year=moment.year + 1, day=28)


def cancel_policy(policy):
    """Cancel a policy. Cancelled policies stay cancelled."""
    if policy.status == "cancelled":
        raise InvalidTransition("policy", policy.status, "cancelled")

    logger.info(f"Policy cancelled | policy_id={policy.id} | from={policy.status}")
    policy.status = "cancelled"
    return policy


def renew_policy(policy, now: Optional[datetime] = None):
    """
    Extend a policy by one year.

    The new end date is one year after the later of the current end date and
    now; the policy becomes active.
    """
    if now is None:
        now = utcnow()

    if policy.status == "cancelled":
        raise InvalidTransition("policy", policy.status, "active")

    policy.end_date = add_one_year(max(policy.end_date, now))
    policy.status = "active"
    logger.info(
        f"Policy renewed | policy_id={policy.id} | "
        f"end_date={policy.end_date.isoformat()}"
    )
    return policy


def generate_policy_number(now: Optional[datetime] = None) -> str:
    """Policy number in the POL-<epoch ms>-<n> format."""
    return _generate_number("POL", now)


# ============================================================================
# Claims
# ============================================================================

def generate_claim_number(now: Optional[datetime] = None) -> str:
    """Claim number in the CLM-<epoch ms>-<n> format."""
    return _generate_number("CLM", now)


def _generate_number(prefix: str, now: Optional[datetime]) -> str:
    if now is None:
        now = utcnow()
    epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    return f"{prefix}-{epoch_ms}-{random.randint(0, 999)}"


def open_claim(
    policy,
    claim_data: Dict[str, Any],
    now: Optional[datetime] = None
) -> Claim:
    """
    Create a pending claim against a policy.

    Args:
        policy: Policy record, or None if the id did not resolve
        claim_data: Claim fields (incident_date, description, claim_type,
            claim_amount, optional diagnosis and notes)
        now: Reference time for the status check and claim date

    Returns:
        New, unsaved Claim

    Raises:
        PolicyNotFound: policy is None
        PolicyNotActive: policy is not active at ``now``
    """
    if policy is None:
        raise PolicyNotFound()
    if now is None:
        now = utcnow()

    # Stored status may be stale between saves
    refresh_policy_status(policy, now)
    if policy.status != "active":
        raise PolicyNotActive(policy.id, policy.status)

    claim = Claim(
        claim_number=generate_claim_number(now),
        policy_id=policy.id,
        pet_id=policy.pet_id,
        claim_date=now,
        status="pending",
        **claim_data
    )
    return claim


def start_review(claim):
    """Move a pending claim to under_review."""
    if claim.status != "pending":
        raise InvalidTransition("claim", claim.status, "under_review")
    claim.status = "under_review"
    logger.info(f"Claim under review | claim_id={claim.id}")
    return claim


def approve_claim(
    claim,
    policy,
    reviewer_id: Optional[int],
    now: Optional[datetime] = None
):
    """
    Approve a claim and settle its payout.

    Raises:
        PolicyNotFound: the claim's policy no longer exists
        InvalidTransition: claim is not pending or under review
    """
    if claim.status not in REVIEWABLE_CLAIM_STATUSES:
        raise InvalidTransition("claim", claim.status, "approved")
    if policy is None:
        raise PolicyNotFound(claim.policy_id)
    if now is None:
        now = utcnow()

    claim.approved_amount = approved_amount_for_policy(claim.claim_amount, policy)
    # Only open claims hold an automatic-claim slot
    claim.dedup_key = None
    claim.status = "approved"
    claim.reviewed_by = reviewer_id
    claim.review_date = now

    logger.info(
        f"Claim approved | claim_id={claim.id} | claim_amount={claim.claim_amount} | "
        f"approved_amount={claim.approved_amount} | reviewer={reviewer_id}"
    )
    return claim


def reject_claim(
    claim,
    reason: str,
    reviewer_id: Optional[int],
    now: Optional[datetime] = None
):
    """
    Reject a claim with a reason.

    Raises:
        InsuranceError: reason is empty
        InvalidTransition: claim is not pending or under review
    """
    if claim.status not in REVIEWABLE_CLAIM_STATUSES:
        raise InvalidTransition("claim", claim.status, "rejected")
    if not reason or not reason.strip():
        raise InsuranceError("A rejection reason is required")
    if now is None:
        now = utcnow()

    claim.status = "rejected"
    claim.rejection_reason = reason.strip()
    claim.dedup_key = None
    claim.reviewed_by = reviewer_id
    claim.review_date = now

    logger.info(f"Claim rejected | claim_id={claim.id} | reviewer={reviewer_id}")
    return claim


def mark_claim_paid(claim, now: Optional[datetime] = None):
    """
    Mark an approved claim as paid.

    Raises:
        InvalidTransition: claim is not approved; the claim is left untouched
    """
    if claim.status != "approved":
        raise InvalidTransition("claim", claim.status, "paid")
    if now is None:
        now = utcnow()

    claim.status = "paid"
    claim.payment_date = now

    logger.info(f"Claim paid | claim_id={claim.id} | amount={claim.approved_amount}")
    return claim
