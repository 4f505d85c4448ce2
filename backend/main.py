"""
Fleet Incidents - Vehicle Incident Management System
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from routers import cars, users, incidents, settings, location, geocoding
from database import engine, Base

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    Base.metadata.create_all(bind=engine)
    logger.info("Fleet Incidents starting up...")
    yield
    # Shutdown
    logger.info("Fleet Incidents shutting down...")

app = FastAPI(
    title="Fleet Incidents API",
    description="Vehicle incident reporting with geocoded locations",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(cars.router, prefix="/api/cars", tags=["Cars"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(incidents.router, prefix="/api/incidents", tags=["Incidents"])
app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])
app.include_router(geocoding.router, prefix="/api/location", tags=["Location"])
app.include_router(location.router, prefix="/relay", tags=["Geocoding Relay"])

@app.get("/")
async def root():
    return {"status": "ok", "service": "Fleet Incidents API", "version": "1.0.0"}

@app.get("/health")
async def health():
    return {"status": "healthy"}
