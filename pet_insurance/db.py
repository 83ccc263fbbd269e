"""
Database configuration and session management.
"""

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import make_url
from typing import Generator
import logging
import os

# Import all models to ensure they are registered with SQLModel
from pet_insurance.models import (
    User, Pet, Clinic, Policy, Claim, HealthReading, MedicalRecord, IdempotencyKey
)
from pet_insurance.cache import config_cache

logger = logging.getLogger("pet_insurance")

# Database URL - defaults to SQLite for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/pet_insurance.db")


def _build_engine(database_url: str):
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Sessions are opened in the threadpool and used from the event loop
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            directory = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(directory, exist_ok=True)
    return create_engine(database_url, echo=False, connect_args=connect_args)


# Create engine
engine = _build_engine(DATABASE_URL)


def create_db_and_tables():
    """Create database tables."""
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Get database session."""
    with Session(engine) as session:
        yield session


def load_seed_data():
    """Load demo users, pets and clinics from the seed file into the database."""
    if not os.path.exists(config_cache.seed_file):
        logger.warning(f"Seed file not found | path={config_cache.seed_file}")
        return

    with Session(engine) as session:
        for user_data in config_cache.get_users():
            if session.get(User, user_data["id"]) is None:
                session.add(User(**user_data))
        # Users must exist before pets reference them
        session.flush()

        for pet_data in config_cache.get_pets():
            if session.get(Pet, pet_data["id"]) is None:
                session.add(Pet(**pet_data))

        for clinic_data in config_cache.get_clinics():
            if session.get(Clinic, clinic_data["id"]) is None:
                session.add(Clinic(**clinic_data))

        session.commit()
    logger.info(
        f"Seed data loaded | users={len(config_cache.get_users())} | "
        f"pets={len(config_cache.get_pets())} | "
        f"clinics={len(config_cache.get_clinics())}"
    )


def initialize_database():
    """Initialize database with tables and seed data."""
    logger.info("Creating database tables...")
    create_db_and_tables()
    logger.info("Loading seed data...")
    load_seed_data()
    logger.info("Database initialization complete")
