"""
Settlement service for computing claim payouts.
"""


def calculate_approved_amount(
    claim_amount: float,
    deductible: float,
    coverage_amount: float
) -> float:
    """
    Calculate the payout for a claim.

    Formula: approved = min(claim_amount - deductible, coverage_amount), floored at 0

    Args:
        claim_amount: Amount claimed
        deductible: Policy deductible
        coverage_amount: Policy coverage ceiling

    Returns:
        Approved payout, at the precision of the inputs (cents)
    """
    approved = claim_amount - deductible

    if approved > coverage_amount:
        approved = coverage_amount

    if approved < 0:
        approved = 0

    # Float subtraction noise only; inputs are kept to cents
    return round(approved, 2)


def approved_amount_for_policy(claim_amount: float, policy) -> float:
    """
    Apply the policy's deductible and coverage ceiling to a claim amount.

    The policy status is not checked here; claim creation already required
    an active policy.
    """
    return calculate_approved_amount(claim_amount, policy.deductible, policy.coverage_amount)
