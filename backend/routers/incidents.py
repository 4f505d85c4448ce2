"""
Incidents router - accidents, breakdowns and maintenance issues per car

Location fields are the tuple committed by the location picker:
location label plus latitude/longitude strings, empty when unknown.
"""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional
from pydantic import BaseModel

from database import get_db
from models import (
    Car, User, Incident, IncidentUpdate as IncidentUpdateEntry,
    INCIDENT_SEVERITIES, INCIDENT_STATUSES, INCIDENT_TYPES, UPDATE_TYPES,
    OPEN_STATUSES, RESOLVED_STATUSES,
)
from services.location.results import parse_coordinate

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# SCHEMAS
# =============================================================================

class IncidentCreate(BaseModel):
    car_id: int
    reported_by_id: int
    assigned_to_id: Optional[int] = None
    title: str
    description: str
    severity: str = 'LOW'
    status: str = 'PENDING'
    incident_type: str = 'OTHER'
    location: str = ''
    latitude: str = ''
    longitude: str = ''
    incident_date: Optional[datetime] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None


class IncidentUpdate(BaseModel):
    car_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    incident_type: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    incident_date: Optional[datetime] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None


class UpdateCreate(BaseModel):
    user_id: int
    message: str
    update_type: str = 'COMMENT'


# =============================================================================
# HELPERS
# =============================================================================

def _iso_or_none(obj, attr):
    """Helper to get ISO format datetime or None"""
    val = getattr(obj, attr, None)
    return val.isoformat() if val else None


def _check_choice(value: str, choices: list, field: str) -> str:
    if value.upper() not in choices:
        raise HTTPException(status_code=400, detail=f"Invalid {field}. Must be one of: {choices}")
    return value.upper()


def _check_coordinate(value: Optional[str], field: str, limit: float) -> str:
    """Empty is allowed (unknown); anything else must be a number within range."""
    if not value:
        return ''
    parsed = parse_coordinate(value)
    if parsed is None or abs(parsed) > limit:
        raise HTTPException(status_code=400, detail=f"Invalid {field}")
    return value.strip()


def _require(db: Session, model, id: Optional[int], label: str):
    if id is None:
        return None
    obj = db.query(model).filter(model.id == id).first()
    if not obj:
        raise HTTPException(status_code=400, detail=f"{label} not found")
    return obj


def update_to_dict(u: IncidentUpdateEntry) -> dict:
    return {
        "id": u.id,
        "incident_id": u.incident_id,
        "user_id": u.user_id,
        "user_name": u.user.name if u.user else None,
        "message": u.message,
        "update_type": u.update_type,
        "created_at": _iso_or_none(u, 'created_at'),
    }


def incident_to_dict(i: Incident, detail: bool = False) -> dict:
    result = {
        "id": i.id,
        "car_id": i.car_id,
        "car": i.car.display_name if i.car else None,
        "reported_by_id": i.reported_by_id,
        "reported_by": i.reported_by.name if i.reported_by else None,
        "assigned_to_id": i.assigned_to_id,
        "assigned_to": i.assigned_to.name if i.assigned_to else None,
        "title": i.title,
        "description": i.description,
        "severity": i.severity,
        "status": i.status,
        "incident_type": i.incident_type,
        "location": i.location or '',
        "latitude": i.latitude or '',
        "longitude": i.longitude or '',
        "incident_date": _iso_or_none(i, 'incident_date'),
        "estimated_cost": i.estimated_cost,
        "actual_cost": i.actual_cost,
        "resolved_at": _iso_or_none(i, 'resolved_at'),
        "created_at": _iso_or_none(i, 'created_at'),
        "updated_at": _iso_or_none(i, 'updated_at'),
    }
    if detail:
        result["updates"] = [update_to_dict(u) for u in i.updates]
    return result


def _stamp_resolution(incident: Incident, new_status: str) -> None:
    if new_status in RESOLVED_STATUSES and not incident.resolved_at:
        incident.resolved_at = datetime.now(timezone.utc)
    elif new_status not in RESOLVED_STATUSES:
        incident.resolved_at = None


# =============================================================================
# LIST / STATS
# =============================================================================

@router.get("")
async def list_incidents(
    status: Optional[str] = None,
    severity: Optional[str] = None,
    incident_type: Optional[str] = None,
    car_id: Optional[int] = None,
    limit: int = Query(100, le=500),
    offset: int = 0,
    db: Session = Depends(get_db)
):
    """List incidents with filters, newest first"""
    query = db.query(Incident)

    if status:
        query = query.filter(Incident.status == _check_choice(status, INCIDENT_STATUSES, 'status'))
    if severity:
        query = query.filter(Incident.severity == _check_choice(severity, INCIDENT_SEVERITIES, 'severity'))
    if incident_type:
        query = query.filter(Incident.incident_type == _check_choice(incident_type, INCIDENT_TYPES, 'incident_type'))
    if car_id is not None:
        query = query.filter(Incident.car_id == car_id)

    total = query.count()
    incidents = query.order_by(Incident.created_at.desc(), Incident.id.desc()).offset(offset).limit(limit).all()

    return {
        "total": total,
        "incidents": [incident_to_dict(i) for i in incidents],
    }


@router.get("/stats")
async def incident_stats(db: Session = Depends(get_db)):
    """Dashboard counters"""
    def grouped(column):
        rows = db.query(column, func.count(Incident.id)).group_by(column).all()
        return {key: count for key, count in rows}

    by_status = grouped(Incident.status)
    total = sum(by_status.values())
    resolved = sum(by_status.get(s, 0) for s in RESOLVED_STATUSES)

    costs = db.query(
        func.coalesce(func.sum(Incident.estimated_cost), 0),
        func.coalesce(func.sum(Incident.actual_cost), 0),
    ).one()

    return {
        "total": total,
        "open_incidents": sum(by_status.get(s, 0) for s in OPEN_STATUSES),
        "resolution_rate": round(resolved / total * 100) if total else 0,
        "by_status": by_status,
        "by_severity": grouped(Incident.severity),
        "by_type": grouped(Incident.incident_type),
        "total_estimated_cost": float(costs[0]),
        "total_actual_cost": float(costs[1]),
    }


# =============================================================================
# SINGLE INCIDENT
# =============================================================================

@router.get("/{incident_id}")
async def get_incident(incident_id: int, db: Session = Depends(get_db)):
    incident = db.query(Incident).filter(Incident.id == incident_id).first()

    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    return incident_to_dict(incident, detail=True)


@router.post("", status_code=201)
async def create_incident(
    data: IncidentCreate,
    db: Session = Depends(get_db)
):
    """Create new incident"""
    if not data.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if not data.description.strip():
        raise HTTPException(status_code=400, detail="Description is required")

    _require(db, Car, data.car_id, "Car")
    _require(db, User, data.reported_by_id, "Reporting user")
    _require(db, User, data.assigned_to_id, "Assigned user")

    status = _check_choice(data.status, INCIDENT_STATUSES, 'status')

    incident = Incident(
        car_id=data.car_id,
        reported_by_id=data.reported_by_id,
        assigned_to_id=data.assigned_to_id,
        title=data.title.strip(),
        description=data.description.strip(),
        severity=_check_choice(data.severity, INCIDENT_SEVERITIES, 'severity'),
        status=status,
        incident_type=_check_choice(data.incident_type, INCIDENT_TYPES, 'incident_type'),
        location=data.location.strip(),
        latitude=_check_coordinate(data.latitude, 'latitude', 90),
        longitude=_check_coordinate(data.longitude, 'longitude', 180),
        incident_date=data.incident_date or datetime.now(timezone.utc),
        estimated_cost=data.estimated_cost,
        actual_cost=data.actual_cost,
    )
    _stamp_resolution(incident, status)

    db.add(incident)
    db.commit()
    db.refresh(incident)

    if incident.severity == 'CRITICAL':
        logger.warning(f"CRITICAL incident {incident.id} reported for car {incident.car_id}: {incident.title}")
    else:
        logger.info(f"Incident {incident.id} reported for car {incident.car_id}")

    return incident_to_dict(incident, detail=True)


@router.put("/{incident_id}")
async def update_incident(
    incident_id: int,
    data: IncidentUpdate,
    edited_by: Optional[int] = Query(None, description="User ID making the edit"),
    db: Session = Depends(get_db)
):
    """Update incident fields. Status changes are logged when edited_by is given."""
    incident = db.query(Incident).filter(Incident.id == incident_id).first()

    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    editor = _require(db, User, edited_by, "Editing user")
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get('car_id') is not None:
        _require(db, Car, update_data['car_id'], "Car")
    if update_data.get('assigned_to_id') is not None:
        _require(db, User, update_data['assigned_to_id'], "Assigned user")
    if update_data.get('severity'):
        update_data['severity'] = _check_choice(update_data['severity'], INCIDENT_SEVERITIES, 'severity')
    if update_data.get('incident_type'):
        update_data['incident_type'] = _check_choice(update_data['incident_type'], INCIDENT_TYPES, 'incident_type')
    if 'latitude' in update_data:
        update_data['latitude'] = _check_coordinate(update_data['latitude'], 'latitude', 90)
    if 'longitude' in update_data:
        update_data['longitude'] = _check_coordinate(update_data['longitude'], 'longitude', 180)

    old_status = incident.status
    if update_data.get('status'):
        update_data['status'] = _check_choice(update_data['status'], INCIDENT_STATUSES, 'status')
        _stamp_resolution(incident, update_data['status'])

    for field, value in update_data.items():
        if value is None and field in ('car_id', 'title', 'description', 'severity', 'status', 'incident_type'):
            continue  # required columns cannot be cleared
        if field == 'location' and value is None:
            value = ''
        setattr(incident, field, value)

    if editor and incident.status != old_status:
        db.add(IncidentUpdateEntry(
            incident_id=incident.id,
            user_id=editor.id,
            message=f"Status changed from {old_status} to {incident.status}",
            update_type='STATUS_CHANGE',
        ))

    db.commit()
    db.refresh(incident)

    return incident_to_dict(incident, detail=True)


@router.delete("/{incident_id}")
async def delete_incident(incident_id: int, db: Session = Depends(get_db)):
    """Delete an incident and its update log"""
    incident = db.query(Incident).filter(Incident.id == incident_id).first()

    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    db.delete(incident)
    db.commit()

    logger.info(f"Deleted incident {incident_id}")
    return {"message": "Incident deleted successfully"}


# =============================================================================
# UPDATES (comments / status log)
# =============================================================================

@router.get("/{incident_id}/updates")
async def list_updates(incident_id: int, db: Session = Depends(get_db)):
    incident = db.query(Incident).filter(Incident.id == incident_id).first()

    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    return [update_to_dict(u) for u in incident.updates]


@router.post("/{incident_id}/updates", status_code=201)
async def add_update(incident_id: int, data: UpdateCreate, db: Session = Depends(get_db)):
    incident = db.query(Incident).filter(Incident.id == incident_id).first()

    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    if not data.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    _require(db, User, data.user_id, "User")

    entry = IncidentUpdateEntry(
        incident_id=incident_id,
        user_id=data.user_id,
        message=data.message.strip(),
        update_type=_check_choice(data.update_type, UPDATE_TYPES, 'update_type'),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    return update_to_dict(entry)
