"""
SQLModel database models for the pet insurance API.
"""

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import List, Optional
from datetime import date, datetime

from pet_insurance.clock import utcnow


class User(SQLModel, table=True):
    """Account authenticated by its API key."""
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    full_name: str
    role: str = "owner"  # owner, veterinarian, agent, admin
    api_key: str = Field(unique=True, index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Pet(SQLModel, table=True):
    """Registered pet."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    species: str
    breed: str
    date_of_birth: date
    owner_id: int = Field(foreign_key="user.id", index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Clinic(SQLModel, table=True):
    """Veterinary clinic where treatment and medical records originate."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    phone: str
    city: str = Field(index=True)
    address: Optional[str] = None
    license_number: str = Field(unique=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Policy(SQLModel, table=True):
    """Insurance policy for a single pet."""
    id: Optional[int] = Field(default=None, primary_key=True)
    policy_number: str = Field(unique=True, index=True)
    pet_id: int = Field(foreign_key="pet.id", index=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    start_date: datetime
    end_date: datetime
    status: str = "pending"  # pending, active, expired, cancelled
    premium: int
    coverage_amount: int
    deductible: int = 0
    coverage_type: str = "standard"
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Claim(SQLModel, table=True):
    """Claim filed against a policy."""
    id: Optional[int] = Field(default=None, primary_key=True)
    claim_number: str = Field(unique=True, index=True)
    policy_id: int = Field(foreign_key="policy.id", index=True)
    pet_id: int = Field(foreign_key="pet.id", index=True)
    claim_date: datetime = Field(default_factory=utcnow)
    incident_date: datetime
    description: str
    diagnosis: Optional[str] = None
    claim_type: str = "other"  # illness, accident, surgery, checkup, other
    claim_amount: float = 0
    approved_amount: float = 0
    status: str = Field(default="pending", index=True)  # pending, under_review, approved, rejected, paid
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")
    review_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    clinic_id: Optional[int] = Field(default=None, foreign_key="clinic.id")
    source: str = "manual"  # manual, iot_device
    health_reading_id: Optional[int] = Field(default=None, foreign_key="healthreading.id")
    # pet + hour bucket for automatic claims, NULL for manual ones
    dedup_key: Optional[str] = Field(default=None, unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class HealthReading(SQLModel, table=True):
    """Telemetry sample reported by a collar device."""
    id: Optional[int] = Field(default=None, primary_key=True)
    device_id: str = Field(index=True)
    pet_id: Optional[int] = Field(default=None, foreign_key="pet.id", index=True)
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    temperature: float
    heart_rate: float
    activity_level: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    health_status: str = Field(default="normal", index=True)
    health_index: Optional[float] = None
    anomaly_count: int = 0
    vet_recommendation: Optional[str] = None
    alert_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class MedicalRecord(SQLModel, table=True):
    """Visit record written by a veterinarian."""
    id: Optional[int] = Field(default=None, primary_key=True)
    pet_id: int = Field(foreign_key="pet.id", index=True)
    clinic_id: int = Field(foreign_key="clinic.id", index=True)
    veterinarian_id: int = Field(foreign_key="user.id")
    visit_date: datetime = Field(default_factory=utcnow, index=True)
    record_type: str  # checkup, vaccination, surgery, diagnosis, treatment, test
    diagnosis: Optional[str] = None
    symptoms: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    treatment: Optional[str] = None
    temperature: Optional[float] = None
    weight: Optional[float] = None
    heart_rate: Optional[float] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    related_claim_id: Optional[int] = Field(default=None, foreign_key="claim.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class IdempotencyKey(SQLModel, table=True):
    """Stored response for an X-Idempotency-Key, scoped to the caller."""
    __table_args__ = (UniqueConstraint("key", "user_id", "method", "path"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    method: str
    path: str
    request_hash: str
    response_json: str  # JSON string
    created_at: datetime = Field(default_factory=utcnow)
