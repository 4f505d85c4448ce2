"""
Cars router - manage fleet vehicles

License plate and VIN are unique; duplicates are rejected with 409 before
the insert. A car with incidents cannot be deleted. Mutations require an
administrator settings session.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel

from database import get_db
from models import Car, CarReading, Incident, CAR_STATUSES
from routers.settings import require_settings_session

logger = logging.getLogger(__name__)

router = APIRouter()


class CarCreate(BaseModel):
    make: str
    model: str
    year: int
    license_plate: str
    vin: Optional[str] = None
    color: Optional[str] = None
    status: Optional[str] = None  # None = ACTIVE


class CarUpdate(BaseModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    status: Optional[str] = None


class ReadingCreate(BaseModel):
    mileage: Optional[int] = None
    fuel_level: Optional[float] = None
    notes: Optional[str] = None


def car_to_dict(c: Car) -> dict:
    """Convert Car model to dict for API response"""
    return {
        "id": c.id,
        "make": c.make,
        "model": c.model,
        "year": c.year,
        "license_plate": c.license_plate,
        "vin": c.vin,
        "color": c.color,
        "status": c.status,
        "display_name": c.display_name,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "updated_at": c.updated_at.isoformat() if c.updated_at else None,
    }


def reading_to_dict(r: CarReading) -> dict:
    return {
        "id": r.id,
        "car_id": r.car_id,
        "mileage": r.mileage,
        "fuel_level": r.fuel_level,
        "notes": r.notes,
        "recorded_at": r.recorded_at.isoformat() if r.recorded_at else None,
    }


def _validate_status(status: str) -> str:
    if status.upper() not in CAR_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {CAR_STATUSES}")
    return status.upper()


def _check_unique(db: Session, license_plate: Optional[str], vin: Optional[str], exclude_id: Optional[int] = None):
    if license_plate:
        query = db.query(Car).filter(Car.license_plate == license_plate)
        if exclude_id is not None:
            query = query.filter(Car.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=409, detail="Car with this license plate already exists")
    if vin:
        query = db.query(Car).filter(Car.vin == vin)
        if exclude_id is not None:
            query = query.filter(Car.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=409, detail="Car with this VIN already exists")


@router.get("")
async def list_cars(
    status: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List cars, newest first. Optional status filter."""
    query = db.query(Car)

    if status and status.upper() != 'ALL':
        query = query.filter(Car.status == _validate_status(status))

    cars = query.order_by(Car.created_at.desc(), Car.id.desc()).all()
    return [car_to_dict(c) for c in cars]


@router.get("/{id}")
async def get_car(id: int, db: Session = Depends(get_db)):
    """Single car with its 5 latest incidents and 10 latest readings"""
    car = db.query(Car).filter(Car.id == id).first()

    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    incidents = db.query(Incident).filter(Incident.car_id == id).order_by(
        Incident.created_at.desc(), Incident.id.desc()
    ).limit(5).all()
    readings = db.query(CarReading).filter(CarReading.car_id == id).order_by(
        CarReading.recorded_at.desc(), CarReading.id.desc()
    ).limit(10).all()

    result = car_to_dict(car)
    result["incidents"] = [
        {"id": i.id, "title": i.title, "status": i.status, "severity": i.severity,
         "created_at": i.created_at.isoformat() if i.created_at else None}
        for i in incidents
    ]
    result["readings"] = [reading_to_dict(r) for r in readings]
    return result


@router.post("", status_code=201)
async def create_car(
    data: CarCreate,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Create a car"""
    if not data.make.strip() or not data.model.strip() or not data.license_plate.strip() or not data.year:
        raise HTTPException(status_code=400, detail="Missing required fields: make, model, year, license_plate")

    license_plate = data.license_plate.strip()
    vin = (data.vin or '').strip() or None
    _check_unique(db, license_plate, vin)
    status = _validate_status(data.status) if data.status else 'ACTIVE'

    car = Car(
        make=data.make.strip(),
        model=data.model.strip(),
        year=data.year,
        license_plate=license_plate,
        vin=vin,
        color=data.color,
        status=status,
    )

    db.add(car)
    db.commit()
    db.refresh(car)

    logger.info(f"Created car {car.id} ({car.license_plate})")
    return car_to_dict(car)


@router.put("/{id}")
async def update_car(
    id: int,
    data: CarUpdate,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Update a car. Uniqueness is only re-checked for values that change."""
    car = db.query(Car).filter(Car.id == id).first()

    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    update_data = data.model_dump(exclude_unset=True)

    for field in ('make', 'model', 'license_plate'):
        if field in update_data and update_data[field] is not None:
            update_data[field] = update_data[field].strip()
            if not update_data[field]:
                raise HTTPException(status_code=400, detail=f"{field} cannot be blank")
    if 'vin' in update_data:
        update_data['vin'] = (update_data['vin'] or '').strip() or None

    new_plate = update_data.get('license_plate')
    new_vin = update_data.get('vin')
    _check_unique(
        db,
        new_plate if new_plate and new_plate != car.license_plate else None,
        new_vin if new_vin and new_vin != car.vin else None,
        exclude_id=id,
    )

    if update_data.get('status'):
        update_data['status'] = _validate_status(update_data['status'])

    for field, value in update_data.items():
        if value is None and field in ('make', 'model', 'year', 'license_plate', 'status'):
            continue  # required columns cannot be cleared
        setattr(car, field, value)

    db.commit()
    db.refresh(car)

    return car_to_dict(car)


@router.delete("/{id}")
async def delete_car(
    id: int,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Delete a car and its readings. Refused while incidents reference it."""
    car = db.query(Car).filter(Car.id == id).first()

    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    if db.query(Incident).filter(Incident.car_id == id).count() > 0:
        raise HTTPException(status_code=400, detail="Cannot delete car with associated incidents")

    db.query(CarReading).filter(CarReading.car_id == id).delete()
    db.delete(car)
    db.commit()

    logger.info(f"Deleted car {id}")
    return {"message": "Car deleted successfully"}


@router.post("/{id}/readings", status_code=201)
async def add_reading(id: int, data: ReadingCreate, db: Session = Depends(get_db)):
    """Record an odometer / fuel reading"""
    car = db.query(Car).filter(Car.id == id).first()

    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    reading = CarReading(car_id=id, mileage=data.mileage, fuel_level=data.fuel_level, notes=data.notes)
    db.add(reading)
    db.commit()
    db.refresh(reading)

    return reading_to_dict(reading)
