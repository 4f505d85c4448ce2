"""
SQLAlchemy models for the fleet incident backend

Cars, personnel (users) and the incidents reported against them.
Incident location is stored exactly as the location picker commits it:
a text label plus latitude/longitude strings (empty when unknown).
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Float, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


# =============================================================================
# ENUM VALUES (stored as plain strings)
# =============================================================================

CAR_STATUSES = ['ACTIVE', 'INACTIVE', 'MAINTENANCE', 'RETIRED']
USER_ROLES = ['DRIVER', 'FLEET_MANAGER', 'ADMIN']

INCIDENT_SEVERITIES = ['LOW', 'MEDIUM', 'HIGH', 'CRITICAL']
INCIDENT_STATUSES = ['PENDING', 'IN_PROGRESS', 'RESOLVED', 'CLOSED', 'CANCELLED']
INCIDENT_TYPES = [
    'ACCIDENT', 'BREAKDOWN', 'THEFT', 'VANDALISM',
    'MAINTENANCE_ISSUE', 'TRAFFIC_VIOLATION', 'FUEL_ISSUE', 'OTHER',
]
UPDATE_TYPES = ['COMMENT', 'STATUS_CHANGE', 'ASSIGNMENT', 'COST_UPDATE', 'RESOLUTION']

# Statuses that count as "open" on the dashboard
OPEN_STATUSES = ('PENDING', 'IN_PROGRESS')
# Statuses that stamp resolved_at
RESOLVED_STATUSES = ('RESOLVED', 'CLOSED')


# =============================================================================
# FLEET
# =============================================================================

class Car(Base):
    """Fleet vehicle"""
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True)
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    license_plate = Column(String(20), unique=True, nullable=False)
    vin = Column(String(17), unique=True)
    color = Column(String(30))
    status = Column(String(20), default='ACTIVE', nullable=False)

    created_at = Column(DateTime(timezone=True), default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), default=func.current_timestamp(),
                        onupdate=func.current_timestamp())

    incidents = relationship("Incident", back_populates="car")
    readings = relationship("CarReading", back_populates="car")

    @property
    def display_name(self):
        return f"{self.year} {self.make} {self.model} ({self.license_plate})"


class CarReading(Base):
    """Odometer / fuel reading recorded for a car"""
    __tablename__ = "car_readings"

    id = Column(Integer, primary_key=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    mileage = Column(Integer)
    fuel_level = Column(Float)       # 0-100 percent
    notes = Column(Text)
    recorded_at = Column(DateTime(timezone=True), default=func.current_timestamp())

    car = relationship("Car", back_populates="readings")


class User(Base):
    """Fleet personnel - drivers, fleet managers, administrators"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(String(20), default='DRIVER', nullable=False)

    created_at = Column(DateTime(timezone=True), default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), default=func.current_timestamp(),
                        onupdate=func.current_timestamp())

    incidents_reported = relationship(
        "Incident", back_populates="reported_by", foreign_keys="Incident.reported_by_id"
    )
    incidents_assigned = relationship(
        "Incident", back_populates="assigned_to", foreign_keys="Incident.assigned_to_id"
    )
    incident_updates = relationship("IncidentUpdate", back_populates="user")


# =============================================================================
# INCIDENTS
# =============================================================================

class Incident(Base):
    """Accident, breakdown or maintenance issue reported against a car"""
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    reported_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to_id = Column(Integer, ForeignKey("users.id"))

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String(20), default='LOW', nullable=False)
    status = Column(String(20), default='PENDING', nullable=False)
    incident_type = Column(String(30), default='OTHER', nullable=False)

    # Committed by the location picker - strings, empty when unknown
    location = Column(String(500), default='')
    latitude = Column(String(20), default='')
    longitude = Column(String(20), default='')

    incident_date = Column(DateTime(timezone=True), default=func.current_timestamp())
    estimated_cost = Column(Float)
    actual_cost = Column(Float)
    resolved_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), default=func.current_timestamp(),
                        onupdate=func.current_timestamp())

    car = relationship("Car", back_populates="incidents")
    reported_by = relationship("User", back_populates="incidents_reported", foreign_keys=[reported_by_id])
    assigned_to = relationship("User", back_populates="incidents_assigned", foreign_keys=[assigned_to_id])
    updates = relationship(
        "IncidentUpdate", back_populates="incident",
        cascade="all, delete-orphan", order_by="IncidentUpdate.created_at",
    )


class IncidentUpdate(Base):
    """Comment / status change log entry on an incident"""
    __tablename__ = "incident_updates"

    id = Column(Integer, primary_key=True)
    incident_id = Column(Integer, ForeignKey("incidents.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    update_type = Column(String(20), default='COMMENT', nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.current_timestamp())

    incident = relationship("Incident", back_populates="updates")
    user = relationship("User", back_populates="incident_updates")
