"""
Pets router for registering, updating, removing and pricing pets.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from typing import List
import logging

from pet_insurance.schemas import PetCreate, PetResponse, PetUpdate, QuoteResponse
from pet_insurance.deps import get_current_user, require_roles, ensure_can_access
from pet_insurance.db import get_session
from pet_insurance.errors import PetNotFound
from pet_insurance.models import Pet, User
from pet_insurance.services.pricing import calculate_age_years, quote_for_pet

logger = logging.getLogger("pet_insurance")

router = APIRouter()


def to_pet_response(pet: Pet) -> PetResponse:
    return PetResponse(
        id=pet.id,
        name=pet.name,
        species=pet.species,
        breed=pet.breed,
        date_of_birth=pet.date_of_birth,
        owner_id=pet.owner_id,
        age_years=calculate_age_years(pet.date_of_birth)
    )


def load_pet(pet_id: int, session: Session) -> Pet:
    pet = session.get(Pet, pet_id)
    if pet is None or not pet.is_active:
        raise PetNotFound(pet_id)
    return pet


@router.post("/pets", response_model=PetResponse, status_code=201)
async def create_pet(
    request: PetCreate,
    user: User = Depends(require_roles("owner")),
    session: Session = Depends(get_session)
):
    """Register a pet for the calling owner."""
    pet = Pet(owner_id=user.id, **request.model_dump())
    session.add(pet)
    session.commit()
    session.refresh(pet)
    return to_pet_response(pet)


@router.get("/pets", response_model=List[PetResponse])
async def list_pets(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Owners get their own pets; other roles get every active pet."""
    query = session.query(Pet).filter(Pet.is_active == True)  # noqa: E712
    if user.role == "owner":
        query = query.filter(Pet.owner_id == user.id)
    return [to_pet_response(pet) for pet in query.all()]


@router.get("/pets/{pet_id}", response_model=PetResponse)
async def get_pet(
    pet_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    pet = load_pet(pet_id, session)
    if user.role != "veterinarian":
        ensure_can_access(user, pet.owner_id)
    return to_pet_response(pet)


@router.get("/pets/{pet_id}/quote", response_model=QuoteResponse)
async def quote_pet(
    pet_id: int,
    coverage_type: str = Query("standard"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Price a registered pet from its species and current age."""
    pet = load_pet(pet_id, session)
    ensure_can_access(user, pet.owner_id)
    return QuoteResponse(**quote_for_pet(pet, coverage_type))


def ensure_pet_owner(user: User, pet: Pet) -> None:
    """Only the owner (or an admin) may change or remove a pet."""
    if user.role != "admin" and user.id != pet.owner_id:
        raise HTTPException(status_code=403, detail="Access denied")


@router.put("/pets/{pet_id}", response_model=PetResponse)
async def update_pet(
    pet_id: int,
    request: PetUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Update a pet's details. Existing policies keep the premium they were priced at."""
    pet = load_pet(pet_id, session)
    ensure_pet_owner(user, pet)

    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(pet, field, value)
    session.add(pet)
    session.commit()
    session.refresh(pet)

    logger.info(f"Pet updated | pet_id={pet.id} | user_id={user.id}")
    return to_pet_response(pet)


@router.delete("/pets/{pet_id}")
async def delete_pet(
    pet_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """
    Remove a pet.

    The record is deactivated rather than deleted so that its policies,
    claims and medical history stay intact.
    """
    pet = load_pet(pet_id, session)
    ensure_pet_owner(user, pet)

    pet.is_active = False
    session.add(pet)
    session.commit()

    logger.info(f"Pet deactivated | pet_id={pet.id} | user_id={user.id}")
    return {"message": "Pet removed", "id": pet_id}
