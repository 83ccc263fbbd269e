"""
IoT router for collar telemetry.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlmodel import Session
from typing import Optional
from datetime import datetime
import logging

from pet_insurance import db
from pet_insurance.clock import to_naive_utc
from pet_insurance.schemas import (
    ChartData,
    ChartInterval,
    HealthDataAccepted,
    HealthDataRequest,
    HealthReadingResponse,
    HealthStatistics,
    LocationResponse,
    ReadingList
)
from pet_insurance.deps import get_current_user, ensure_can_access
from pet_insurance.db import get_session
from pet_insurance.errors import PetNotFound
from pet_insurance.models import Pet, User
from pet_insurance.services.iot import (
    calculate_health_statistics,
    get_chart_data,
    get_critical_events,
    get_latest_location,
    get_latest_reading,
    get_reading_history,
    process_critical_reading,
    record_health_reading
)

logger = logging.getLogger("pet_insurance")

router = APIRouter()


def authorize_pet(pet_id: int, user: User, session: Session) -> Pet:
    pet = session.get(Pet, pet_id)
    if pet is None:
        raise PetNotFound(pet_id)
    if user.role != "veterinarian":
        ensure_can_access(user, pet.owner_id)
    return pet


@router.post("/iot/health-data", response_model=HealthDataAccepted, status_code=201)
async def receive_health_data(
    request: HealthDataRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session)
):
    """
    Accept a telemetry sample from a device.

    A critical reading for a known pet is handed to a background task that
    may open a claim; the outcome of that task never changes this response.
    """
    health = request.health
    location = request.location

    reading = record_health_reading({
        "device_id": request.device_id,
        "pet_id": request.pet_id,
        "timestamp": to_naive_utc(request.timestamp) if request.timestamp else None,
        "temperature": request.sensors.temperature,
        "heart_rate": request.sensors.heart_rate,
        "activity_level": request.sensors.activity_level,
        "latitude": location.latitude if location else None,
        "longitude": location.longitude if location else None,
        "health_status": health.status if health else "normal",
        "health_index": health.health_index if health else None,
        "anomaly_count": health.anomaly_count if health else 0,
        "vet_recommendation": health.vet_recommendation if health else None,
        "alert_message": health.alert_message if health else None
    }, session)

    if reading.pet_id is not None and reading.health_status == "critical":
        logger.warning(
            f"Critical health reading | device_id={reading.device_id} | "
            f"pet_id={reading.pet_id} | reading_id={reading.id}"
        )
        background_tasks.add_task(process_critical_reading, reading.pet_id, reading.id, db.engine)

    return HealthDataAccepted(
        id=reading.id,
        timestamp=reading.timestamp,
        health_status=reading.health_status
    )


@router.get("/iot/pets/{pet_id}/latest", response_model=HealthReadingResponse)
async def latest_reading(
    pet_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    authorize_pet(pet_id, user, session)
    reading = get_latest_reading(pet_id, session)
    if reading is None:
        raise HTTPException(status_code=404, detail="No monitoring data found")
    return reading


@router.get("/iot/pets/{pet_id}/history", response_model=ReadingList)
async def reading_history(
    pet_id: int,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, gt=0, le=1000),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Readings in a window, the last 24 hours by default."""
    authorize_pet(pet_id, user, session)
    readings = get_reading_history(
        pet_id,
        session,
        start=to_naive_utc(start_date) if start_date else None,
        end=to_naive_utc(end_date) if end_date else None,
        limit=limit
    )
    return ReadingList(
        count=len(readings),
        data=[HealthReadingResponse.model_validate(r) for r in readings]
    )


@router.get("/iot/pets/{pet_id}/critical", response_model=ReadingList)
async def critical_events(
    pet_id: int,
    limit: int = Query(50, gt=0, le=500),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Warning and critical readings."""
    authorize_pet(pet_id, user, session)
    readings = get_critical_events(pet_id, session, limit=limit)
    return ReadingList(
        count=len(readings),
        data=[HealthReadingResponse.model_validate(r) for r in readings]
    )


@router.get("/iot/pets/{pet_id}/statistics", response_model=HealthStatistics)
async def health_statistics(
    pet_id: int,
    days: int = Query(7, gt=0, le=365),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    authorize_pet(pet_id, user, session)
    stats = calculate_health_statistics(pet_id, session, days=days)
    if stats is None:
        raise HTTPException(status_code=404, detail="No data for statistics")
    return stats


@router.get("/iot/pets/{pet_id}/location", response_model=LocationResponse)
async def current_location(
    pet_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Last reported coordinates."""
    authorize_pet(pet_id, user, session)
    reading = get_latest_location(pet_id, session)
    if reading is None:
        raise HTTPException(status_code=404, detail="No location data found")
    return LocationResponse(
        pet_id=pet_id,
        latitude=reading.latitude,
        longitude=reading.longitude,
        timestamp=reading.timestamp
    )


@router.get("/iot/pets/{pet_id}/chart", response_model=ChartData)
async def chart_data(
    pet_id: int,
    hours: int = Query(24, gt=0, le=24 * 30),
    interval: ChartInterval = Query("hour"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Vital-sign averages per minute, hour or day for charting."""
    authorize_pet(pet_id, user, session)
    points = get_chart_data(pet_id, session, hours=hours, interval=interval)
    return ChartData(interval=interval, count=len(points), data=points)
