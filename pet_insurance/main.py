"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pet_insurance.db import initialize_database
from pet_insurance.errors import InsuranceError
from pet_insurance.routers import quotes, pets, policies, claims, iot, clinics, medical_records
from pet_insurance.middleware import PerformanceMiddleware
from pet_insurance.cache import config_cache
import logging

logger = logging.getLogger("pet_insurance")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and warm up caches on startup."""
    logger.info("Starting Pet Insurance API...")

    initialize_database()
    logger.info(
        f"Config cache warmed up: {len(config_cache.get_users())} users, "
        f"{len(config_cache.get_pets())} pets"
    )

    logger.info("Startup complete")
    yield


app = FastAPI(
    title="Pet Insurance API",
    description="Policies, claims, medical records and IoT health monitoring for pet insurance",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(PerformanceMiddleware)

# Add CORS middleware (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InsuranceError)
async def insurance_error_handler(request: Request, exc: InsuranceError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(
        f"Request rejected | request_id={request_id} | "
        f"error={type(exc).__name__} | detail={exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Pet Insurance API", "status": "healthy"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# Include all routers
app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
app.include_router(pets.router, prefix="/v1", tags=["pets"])
app.include_router(policies.router, prefix="/v1", tags=["policies"])
app.include_router(claims.router, prefix="/v1", tags=["claims"])
app.include_router(iot.router, prefix="/v1", tags=["iot"])
app.include_router(clinics.router, prefix="/v1", tags=["clinics"])
app.include_router(medical_records.router, prefix="/v1", tags=["medical-records"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
