"""
Medical records router: visit records written by veterinarians.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List
import logging

from pet_insurance.clock import to_naive_utc, utcnow
from pet_insurance.schemas import MedicalRecordCreate, MedicalRecordResponse, MedicalRecordUpdate
from pet_insurance.deps import get_current_user, require_roles, ensure_can_access
from pet_insurance.db import get_session
from pet_insurance.errors import ClaimNotFound, ClinicNotFound, MedicalRecordNotFound, PetNotFound
from pet_insurance.models import Claim, Clinic, MedicalRecord, Pet, User

logger = logging.getLogger("pet_insurance")

router = APIRouter()


def authorize_pet_history(pet: Pet, user: User) -> None:
    """Veterinarians read any history; everyone else goes through the ownership check."""
    if user.role != "veterinarian":
        ensure_can_access(user, pet.owner_id)


def load_record(record_id: int, session: Session) -> MedicalRecord:
    record = session.get(MedicalRecord, record_id)
    if record is None:
        raise MedicalRecordNotFound(record_id)
    return record


@router.post("/medical-records", response_model=MedicalRecordResponse, status_code=201)
async def create_medical_record(
    request: MedicalRecordCreate,
    user: User = Depends(require_roles("veterinarian")),
    session: Session = Depends(get_session)
):
    """
    Record a visit.

    The calling veterinarian is stored as the author. The pet must be
    registered and active, and the clinic must exist.
    """
    pet = session.get(Pet, request.pet_id)
    if pet is None or not pet.is_active:
        raise PetNotFound(request.pet_id)
    if session.get(Clinic, request.clinic_id) is None:
        raise ClinicNotFound(request.clinic_id)
    if request.related_claim_id is not None and session.get(Claim, request.related_claim_id) is None:
        raise ClaimNotFound(request.related_claim_id)

    data = request.model_dump()
    data["visit_date"] = to_naive_utc(request.visit_date) if request.visit_date else utcnow()

    record = MedicalRecord(veterinarian_id=user.id, **data)
    session.add(record)
    session.commit()
    session.refresh(record)

    logger.info(
        f"Medical record created | record_id={record.id} | pet_id={pet.id} | "
        f"record_type={record.record_type} | veterinarian_id={user.id}"
    )
    return record


@router.get("/pets/{pet_id}/medical-records", response_model=List[MedicalRecordResponse])
async def pet_medical_history(
    pet_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """A pet's medical history, latest visit first."""
    pet = session.get(Pet, pet_id)
    if pet is None:
        raise PetNotFound(pet_id)
    authorize_pet_history(pet, user)

    return session.query(MedicalRecord).filter(
        MedicalRecord.pet_id == pet_id
    ).order_by(MedicalRecord.visit_date.desc()).all()


@router.get("/medical-records/{record_id}", response_model=MedicalRecordResponse)
async def get_medical_record(
    record_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    record = load_record(record_id, session)
    authorize_pet_history(session.get(Pet, record.pet_id), user)
    return record


@router.put("/medical-records/{record_id}", response_model=MedicalRecordResponse)
async def update_medical_record(
    record_id: int,
    request: MedicalRecordUpdate,
    user: User = Depends(require_roles("veterinarian")),
    session: Session = Depends(get_session)
):
    """Amend a record. The pet, clinic and author stay fixed."""
    record = load_record(record_id, session)

    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "visit_date" in changes:
        changes["visit_date"] = to_naive_utc(changes["visit_date"])
    for field, value in changes.items():
        setattr(record, field, value)
    record.updated_at = utcnow()

    session.add(record)
    session.commit()
    session.refresh(record)

    logger.info(f"Medical record updated | record_id={record.id} | veterinarian_id={user.id}")
    return record
