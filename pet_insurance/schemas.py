"""
Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal
from datetime import date, datetime

ClaimType = Literal["illness", "accident", "surgery", "checkup", "other"]
Species = Literal["dog", "cat", "bird", "rabbit", "other"]
HealthStatus = Literal["normal", "warning", "critical"]
VetRecommendation = Literal["OK", "MONITOR", "CONSULT", "URGENT"]
RecordType = Literal["checkup", "vaccination", "surgery", "diagnosis", "treatment", "test"]
ChartInterval = Literal["minute", "hour", "day"]


# Quotes
class QuoteRequest(BaseModel):
    """Quote request. Unknown tiers and species are priced with defaults."""
    coverage_type: str = Field("standard", description="Tier: basic, standard or premium")
    species: str = Field(description="Species: dog, cat, bird, rabbit or other")
    age_years: float = Field(ge=0, description="Pet age in years")


class PremiumBreakdown(BaseModel):
    """How the premium was built."""
    base_rate: int
    species_multiplier: float
    age_multiplier: float
    profit_margin: float
    base_premium: float = Field(description="Premium before the company margin")
    company_profit: int


class QuoteResponse(BaseModel):
    """Premium quote."""
    coverage_type: str = Field(description="Tier actually priced")
    premium: int
    coverage_amount: int
    deductible: int
    breakdown: PremiumBreakdown
    age_years: Optional[float] = None


# Pets
class PetCreate(BaseModel):
    name: str = Field(min_length=1)
    species: Species
    breed: str = Field(min_length=1)
    date_of_birth: date


class PetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    species: str
    breed: str
    date_of_birth: date
    owner_id: int
    age_years: int


class PetUpdate(BaseModel):
    """Partial update; omitted fields keep their values."""
    name: Optional[str] = Field(None, min_length=1)
    species: Optional[Species] = None
    breed: Optional[str] = Field(None, min_length=1)
    date_of_birth: Optional[date] = None


# Clinics
class ClinicResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str
    city: str
    address: Optional[str] = None
    license_number: str


# Medical records
class MedicalRecordCreate(BaseModel):
    pet_id: int
    clinic_id: int
    visit_date: Optional[datetime] = Field(None, description="Defaults to now")
    record_type: RecordType
    diagnosis: Optional[str] = None
    symptoms: List[str] = []
    treatment: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=30, le=45)
    weight: Optional[float] = Field(None, gt=0)
    heart_rate: Optional[float] = Field(None, ge=20, le=400)
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    related_claim_id: Optional[int] = None


class MedicalRecordUpdate(BaseModel):
    """Partial update of a medical record; the pet and clinic are fixed."""
    visit_date: Optional[datetime] = None
    record_type: Optional[RecordType] = None
    diagnosis: Optional[str] = None
    symptoms: Optional[List[str]] = None
    treatment: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=30, le=45)
    weight: Optional[float] = Field(None, gt=0)
    heart_rate: Optional[float] = Field(None, ge=20, le=400)
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class MedicalRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    pet_id: int
    clinic_id: int
    veterinarian_id: int
    visit_date: datetime
    record_type: str
    diagnosis: Optional[str] = None
    symptoms: List[str] = []
    treatment: Optional[str] = None
    temperature: Optional[float] = None
    weight: Optional[float] = None
    heart_rate: Optional[float] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    related_claim_id: Optional[int] = None


# Policies
class PolicyCreate(BaseModel):
    """New policy for a pet, priced by the pricing engine."""
    pet_id: int
    coverage_type: str = Field("standard", description="Tier: basic, standard or premium")
    start_date: Optional[datetime] = Field(None, description="Defaults to now")
    notes: Optional[str] = None


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_number: str
    pet_id: int
    owner_id: int
    start_date: datetime
    end_date: datetime
    status: str
    premium: int
    coverage_amount: int
    deductible: int
    coverage_type: str
    notes: Optional[str] = None


# Claims
class ClaimCreate(BaseModel):
    policy_id: int
    incident_date: datetime
    description: str = Field(min_length=1)
    claim_type: ClaimType
    claim_amount: float = Field(ge=0, description="Amount claimed, kept to cents")
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    clinic_id: Optional[int] = None

    @field_validator("claim_amount")
    @classmethod
    def round_to_cents(cls, value: float) -> float:
        return round(value, 2)


class ClaimRejectRequest(BaseModel):
    rejection_reason: str = Field(min_length=1)


class ClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    claim_number: str
    policy_id: int
    pet_id: int
    claim_date: datetime
    incident_date: datetime
    description: str
    diagnosis: Optional[str] = None
    claim_type: str
    claim_amount: float
    approved_amount: float
    status: str
    reviewed_by: Optional[int] = None
    review_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    payment_date: Optional[datetime] = None
    clinic_id: Optional[int] = None
    source: str


# IoT
class SensorData(BaseModel):
    temperature: float = Field(ge=30, le=45)
    heart_rate: float = Field(ge=20, le=400)
    activity_level: float = Field(ge=0, le=100)


class LocationData(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class HealthData(BaseModel):
    status: HealthStatus = "normal"
    health_index: Optional[float] = Field(None, ge=0, le=100)
    anomaly_count: int = 0
    vet_recommendation: Optional[VetRecommendation] = None
    alert_message: Optional[str] = None


class HealthDataRequest(BaseModel):
    """Payload posted by a collar device."""
    device_id: str = Field(min_length=1)
    pet_id: Optional[int] = None
    timestamp: Optional[datetime] = None
    sensors: SensorData
    location: Optional[LocationData] = None
    health: Optional[HealthData] = None


class HealthDataAccepted(BaseModel):
    id: int
    timestamp: datetime
    health_status: str


class HealthReadingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    device_id: str
    pet_id: Optional[int] = None
    timestamp: datetime
    temperature: float
    heart_rate: float
    activity_level: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    health_status: str
    health_index: Optional[float] = None
    anomaly_count: int
    vet_recommendation: Optional[str] = None
    alert_message: Optional[str] = None


class HealthStatistics(BaseModel):
    avg_temperature: float
    min_temperature: float
    max_temperature: float
    avg_heart_rate: float
    min_heart_rate: float
    max_heart_rate: float
    avg_activity: float
    avg_health_index: Optional[float] = None
    total_measurements: int
    critical_count: int
    warning_count: int
    period_days: int


class ReadingList(BaseModel):
    count: int
    data: List[HealthReadingResponse]


class LocationResponse(BaseModel):
    pet_id: int
    latitude: float
    longitude: float
    timestamp: datetime


class ChartPoint(BaseModel):
    period: str = Field(description="Bucket label, e.g. 2026-06-01 14:00")
    avg_temperature: float
    avg_heart_rate: float
    avg_activity: float
    avg_health_index: Optional[float] = None
    count: int


class ChartData(BaseModel):
    interval: ChartInterval
    count: int
    data: List[ChartPoint]
