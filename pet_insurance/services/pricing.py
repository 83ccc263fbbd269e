"""
Pricing service for calculating pet insurance premiums.
"""

from typing import Dict, Any, Optional
from datetime import date
import math

DEFAULT_COVERAGE_TYPE = "standard"

BASE_RATES = {
    "basic": 500,
    "standard": 1000,
    "premium": 2000,
}

SPECIES_MULTIPLIERS = {
    "dog": 1.2,
    "cat": 1.0,
    "bird": 0.6,
    "rabbit": 0.8,
    "other": 1.0,
}

# Higher tiers carry lower deductibles; kept exactly as underwritten.
COVERAGE_AMOUNTS = {
    "basic": 10000,
    "standard": 25000,
    "premium": 50000,
}

DEDUCTIBLES = {
    "basic": 500,
    "standard": 300,
    "premium": 100,
}

PROFIT_MARGIN = 1.25


def round_half_up(value: float) -> int:
    """Round to a whole unit with .5 going up (562.5 -> 563)."""
    return int(math.floor(value + 0.5))


def normalize_coverage_type(coverage_type: Optional[str]) -> str:
    """Map unknown tiers to the standard tier."""
    if coverage_type in BASE_RATES:
        return coverage_type
    return DEFAULT_COVERAGE_TYPE


def get_species_multiplier(species: Optional[str]) -> float:
    """Species loading; unknown species are priced like 'other'."""
    return SPECIES_MULTIPLIERS.get(species, SPECIES_MULTIPLIERS["other"])


def get_age_multiplier(age_years: float) -> float:
    """
    Age loading by band.

    Bands:
    - age <= 2 -> 0.9
    - age <= 5 -> 1.0
    - age <= 8 -> 1.3
    - else     -> 1.5

    A boundary age belongs to the lower band.
    """
    if age_years <= 2:
        return 0.9
    elif age_years <= 5:
        return 1.0
    elif age_years <= 8:
        return 1.3
    else:
        return 1.5


def calculate_quote(
    coverage_type: Optional[str],
    species: Optional[str],
    age_years: float
) -> Dict[str, Any]:
    """
    Calculate a premium quote for a pet.

    Formula: premium = round(base_rate * species_mult * age_mult * profit_margin)

    Args:
        coverage_type: Tier (basic, standard or premium); unknown -> standard
        species: Pet species; unknown -> multiplier 1.0
        age_years: Pet age in years

    Returns:
        Quote dict with premium, coverage_amount, deductible and breakdown
    """
    tier = normalize_coverage_type(coverage_type)

    base_rate = BASE_RATES[tier]
    species_mult = get_species_multiplier(species)
    age_mult = get_age_multiplier(age_years)

    # Premium before the company margin
    base_premium = base_rate * species_mult * age_mult

    premium = round_half_up(base_premium * PROFIT_MARGIN)
    company_profit = round_half_up(base_premium * (PROFIT_MARGIN - 1))

    breakdown = {
        "base_rate": base_rate,
        "species_multiplier": species_mult,
        "age_multiplier": age_mult,
        "profit_margin": PROFIT_MARGIN,
        "base_premium": round(base_premium, 2),
        "company_profit": company_profit
    }

    return {
        "coverage_type": tier,
        "premium": premium,
        "coverage_amount": COVERAGE_AMOUNTS[tier],
        "deductible": DEDUCTIBLES[tier],
        "breakdown": breakdown
    }


def calculate_age_years(date_of_birth: date, today: Optional[date] = None) -> int:
    """Whole years since birth; a birthday not yet reached this year does not count."""
    if today is None:
        today = date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return max(age, 0)


def quote_for_pet(pet, coverage_type: Optional[str], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Price a registered pet from its species and date of birth.

    Args:
        pet: Pet record
        coverage_type: Requested tier
        today: Reference date for the age calculation

    Returns:
        Quote dict as returned by calculate_quote, plus the age used
    """
    age_years = calculate_age_years(pet.date_of_birth, today)
    quote = calculate_quote(coverage_type, pet.species, age_years)
    quote["age_years"] = age_years
    return quote
