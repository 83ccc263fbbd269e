"""
Clinics router: the veterinary clinics directory.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List, Optional

from pet_insurance.schemas import ClinicResponse
from pet_insurance.db import get_session
from pet_insurance.errors import ClinicNotFound
from pet_insurance.models import Clinic

router = APIRouter()


@router.get("/clinics", response_model=List[ClinicResponse])
async def list_clinics(
    city: Optional[str] = None,
    session: Session = Depends(get_session)
):
    """Active clinics, optionally filtered by city. Public."""
    query = session.query(Clinic).filter(Clinic.is_active == True)  # noqa: E712
    if city:
        query = query.filter(Clinic.city == city)
    return query.order_by(Clinic.name).all()


@router.get("/clinics/{clinic_id}", response_model=ClinicResponse)
async def get_clinic(
    clinic_id: int,
    session: Session = Depends(get_session)
):
    clinic = session.get(Clinic, clinic_id)
    if clinic is None or not clinic.is_active:
        raise ClinicNotFound(clinic_id)
    return clinic
