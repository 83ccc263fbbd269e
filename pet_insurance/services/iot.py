"""
IoT service: health telemetry storage, automatic claims and statistics.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta
import logging

import numpy as np
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from pet_insurance.clock import utcnow
from pet_insurance.models import Pet, Claim, HealthReading
from pet_insurance.services.repository import find_active_policy_for_pet, find_recent_claims

logger = logging.getLogger("pet_insurance")

# Claims that still block a new automatic claim for the same pet
OPEN_CLAIM_STATUSES = ("pending", "under_review")
AUTO_CLAIM_WINDOW = timedelta(hours=1)


@dataclass
class AutoClaimResult:
    """Outcome of an automatic claim attempt."""
    outcome: str  # created, no_active_policy, duplicate, failed
    claim: Optional[Claim] = None
    message: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.outcome == "created"


def record_health_reading(reading_data: Dict[str, Any], db_session) -> HealthReading:
    """
    Store a telemetry sample.

    An unknown pet id is dropped rather than rejected, so devices that are
    not yet paired can still report.

    Args:
        reading_data: Reading fields
        db_session: Database session

    Returns:
        Saved HealthReading
    """
    data = dict(reading_data)
    pet_id = data.pop("pet_id", None)
    if pet_id is not None and db_session.get(Pet, pet_id) is None:
        logger.info(f"Health reading for unknown pet | device_id={data.get('device_id')} | pet_id={pet_id}")
        pet_id = None
    if data.get("timestamp") is None:
        data["timestamp"] = utcnow()

    reading = HealthReading(pet_id=pet_id, **data)
    db_session.add(reading)
    db_session.commit()
    db_session.refresh(reading)
    return reading


def dedup_key_for(pet_id: int, now: datetime) -> str:
    """
    Automatic-claim slot for a pet: one per clock hour.

    Buckets are fixed clock hours, so the unique slot only serializes
    concurrent readings that fall in the same hour. Two concurrent readings
    straddling an hour boundary (10:59:59.9 and 11:00:00.1) get different
    slots and can both insert; sequential readings across the boundary are
    still caught by the one-hour window query.
    """
    hour_bucket = int((now - datetime(1970, 1, 1)).total_seconds() // 3600)
    return f"{pet_id}:{hour_bucket}"


def build_auto_claim_description(reading: HealthReading) -> str:
    return (
        "Automatic claim from IoT device.\n"
        f"Health status: {reading.health_status}\n"
        f"Health index: {reading.health_index}/100\n"
        f"Alert: {reading.alert_message or 'None'}\n"
        f"Recommendation: {reading.vet_recommendation}"
    )


def create_automatic_claim(
    pet_id: int,
    reading: HealthReading,
    db_session,
    now: Optional[datetime] = None
) -> AutoClaimResult:
    """
    Open a pending claim for a pet after a critical reading.

    Skipped when the pet has no active policy or already has an open claim
    created within the last hour. The unique dedup key on the claim makes
    the insert itself fail for a concurrent duplicate in the same clock hour.

    Args:
        pet_id: Pet ID
        reading: The critical reading
        db_session: Database session
        now: Reference time

    Returns:
        AutoClaimResult; errors are reported in the result, never raised
    """
    if now is None:
        now = utcnow()

    try:
        policy = find_active_policy_for_pet(pet_id, db_session, now)
        if policy is None:
            return AutoClaimResult("no_active_policy", message=f"No active policy for pet {pet_id}")

        recent = find_recent_claims(pet_id, OPEN_CLAIM_STATUSES, now - AUTO_CLAIM_WINDOW, db_session)
        if recent:
            return AutoClaimResult(
                "duplicate",
                claim=recent[0],
                message=f"Open claim {recent[0].claim_number} already exists"
            )

        epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
        claim = Claim(
            claim_number=f"IOT-{epoch_ms}-{pet_id}",
            policy_id=policy.id,
            pet_id=pet_id,
            claim_date=now,
            incident_date=reading.timestamp or now,
            description=build_auto_claim_description(reading),
            claim_type="illness",
            claim_amount=0,
            status="pending",
            source="iot_device",
            health_reading_id=reading.id,
            dedup_key=dedup_key_for(pet_id, now),
            created_at=now
        )
        db_session.add(claim)
        try:
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            return AutoClaimResult("duplicate", message="Concurrent automatic claim already created")
        db_session.refresh(claim)
        return AutoClaimResult("created", claim=claim)

    except Exception as e:
        db_session.rollback()
        return AutoClaimResult("failed", message=str(e))


def process_critical_reading(pet_id: int, reading_id: int, engine) -> AutoClaimResult:
    """
    Background handler for a critical reading.

    Runs after the ingestion response is sent, in its own session, and only
    logs the outcome.
    """
    with Session(engine) as session:
        try:
            reading = session.get(HealthReading, reading_id)
        except SQLAlchemyError as e:
            result = AutoClaimResult("failed", message=f"Health reading {reading_id} unavailable: {e}")
        else:
            if reading is None:
                result = AutoClaimResult("failed", message=f"Health reading {reading_id} not found")
            else:
                result = create_automatic_claim(pet_id, reading, session)

    if result.outcome == "created":
        logger.info(
            f"Automatic claim created | pet_id={pet_id} | reading_id={reading_id} | "
            f"claim_number={result.claim.claim_number}"
        )
    elif result.outcome == "failed":
        logger.error(
            f"Automatic claim failed | pet_id={pet_id} | reading_id={reading_id} | "
            f"error={result.message}"
        )
    else:
        logger.info(
            f"Automatic claim skipped | pet_id={pet_id} | reading_id={reading_id} | "
            f"reason={result.outcome} | detail={result.message}"
        )
    return result


def get_latest_reading(pet_id: int, db_session) -> Optional[HealthReading]:
    """Most recent reading for a pet."""
    return db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id
    ).order_by(HealthReading.timestamp.desc()).first()


def get_reading_history(
    pet_id: int,
    db_session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100
) -> List[HealthReading]:
    """Readings in [start, end], newest first. Defaults to the last 24 hours."""
    if end is None:
        end = utcnow()
    if start is None:
        start = end - timedelta(days=1)

    return db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id,
        HealthReading.timestamp >= start,
        HealthReading.timestamp <= end
    ).order_by(HealthReading.timestamp.desc()).limit(limit).all()


def get_critical_events(pet_id: int, db_session, limit: int = 50) -> List[HealthReading]:
    """Warning and critical readings, newest first."""
    return db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id,
        HealthReading.health_status.in_(["warning", "critical"])
    ).order_by(HealthReading.timestamp.desc()).limit(limit).all()


def get_latest_location(pet_id: int, db_session) -> Optional[HealthReading]:
    """Most recent reading for a pet that carries both coordinates."""
    return db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id,
        HealthReading.latitude.is_not(None),
        HealthReading.longitude.is_not(None)
    ).order_by(HealthReading.timestamp.desc()).first()


CHART_INTERVAL_FORMATS = {
    "minute": "%Y-%m-%d %H:%M",
    "hour": "%Y-%m-%d %H:00",
    "day": "%Y-%m-%d",
}


def get_chart_data(
    pet_id: int,
    db_session,
    hours: int = 24,
    interval: str = "hour",
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Average vital signs per time bucket over the last ``hours`` hours.

    Args:
        pet_id: Pet ID
        db_session: Database session
        hours: Window length in hours
        interval: Bucket size: minute, hour or day (unknown -> hour)
        now: End of the window

    Returns:
        One dict per non-empty bucket, oldest first
    """
    if now is None:
        now = utcnow()
    period_format = CHART_INTERVAL_FORMATS.get(interval, CHART_INTERVAL_FORMATS["hour"])

    readings = db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id,
        HealthReading.timestamp >= now - timedelta(hours=hours)
    ).order_by(HealthReading.timestamp).all()

    buckets: Dict[str, List[HealthReading]] = {}
    for reading in readings:
        buckets.setdefault(reading.timestamp.strftime(period_format), []).append(reading)

    points = []
    for period in sorted(buckets):
        group = buckets[period]
        health_index = np.array(
            [r.health_index for r in group if r.health_index is not None], dtype=float
        )
        points.append({
            "period": period,
            "avg_temperature": round(float(np.mean([r.temperature for r in group])), 2),
            "avg_heart_rate": round(float(np.mean([r.heart_rate for r in group])), 2),
            "avg_activity": round(float(np.mean([r.activity_level for r in group])), 2),
            "avg_health_index": round(float(health_index.mean()), 2) if health_index.size else None,
            "count": len(group)
        })
    return points


def calculate_health_statistics(
    pet_id: int,
    db_session,
    days: int = 7,
    now: Optional[datetime] = None
) -> Optional[Dict[str, Any]]:
    """
    Aggregate vital signs over the last ``days`` days.

    Args:
        pet_id: Pet ID
        db_session: Database session
        days: Window length in days
        now: End of the window

    Returns:
        Statistics dict, or None when there are no readings in the window
    """
    if now is None:
        now = utcnow()

    readings = db_session.query(HealthReading).filter(
        HealthReading.pet_id == pet_id,
        HealthReading.timestamp >= now - timedelta(days=days)
    ).all()

    if not readings:
        return None

    temperature = np.array([r.temperature for r in readings], dtype=float)
    heart_rate = np.array([r.heart_rate for r in readings], dtype=float)
    activity = np.array([r.activity_level for r in readings], dtype=float)
    health_index = np.array(
        [r.health_index for r in readings if r.health_index is not None], dtype=float
    )
    statuses = np.array([r.health_status for r in readings])

    return {
        "avg_temperature": round(float(temperature.mean()), 2),
        "min_temperature": float(temperature.min()),
        "max_temperature": float(temperature.max()),
        "avg_heart_rate": round(float(heart_rate.mean()), 2),
        "min_heart_rate": float(heart_rate.min()),
        "max_heart_rate": float(heart_rate.max()),
        "avg_activity": round(float(activity.mean()), 2),
        "avg_health_index": round(float(health_index.mean()), 2) if health_index.size else None,
        "total_measurements": len(readings),
        "critical_count": int(np.sum(statuses == "critical")),
        "warning_count": int(np.sum(statuses == "warning")),
        "period_days": days
    }
