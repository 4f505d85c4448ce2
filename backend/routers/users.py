"""
Users router - manage fleet personnel (drivers, fleet managers, admins)
"""

import re
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional
from pydantic import BaseModel

from database import get_db
from models import User, Incident, IncidentUpdate, USER_ROLES
from routers.settings import require_settings_session

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class UserCreate(BaseModel):
    email: str
    name: str
    role: Optional[str] = None  # None = DRIVER


class UserUpdate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


def user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "role": u.role,
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "updated_at": u.updated_at.isoformat() if u.updated_at else None,
    }


def _incident_summary(i: Incident) -> dict:
    return {
        "id": i.id,
        "title": i.title,
        "status": i.status,
        "severity": i.severity,
        "car": i.car.display_name if i.car else None,
        "created_at": i.created_at.isoformat() if i.created_at else None,
    }


def _validate_role(role: str) -> str:
    if role.upper() not in USER_ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role. Must be one of: {USER_ROLES}")
    return role.upper()


def _validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return email


@router.get("")
async def list_users(
    role: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List personnel by name. Optional role filter."""
    query = db.query(User)

    if role and role.upper() != 'ALL':
        query = query.filter(User.role == _validate_role(role))

    return [user_to_dict(u) for u in query.order_by(User.name).all()]


@router.get("/{id}")
async def get_user(id: int, db: Session = Depends(get_db)):
    """Single user with recent reported/assigned incidents and activity counts"""
    user = db.query(User).filter(User.id == id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    reported = db.query(Incident).filter(Incident.reported_by_id == id)
    assigned = db.query(Incident).filter(Incident.assigned_to_id == id)

    result = user_to_dict(user)
    result["incidents_reported"] = [
        _incident_summary(i)
        for i in reported.order_by(Incident.created_at.desc(), Incident.id.desc()).limit(5).all()
    ]
    result["incidents_assigned"] = [
        _incident_summary(i)
        for i in assigned.order_by(Incident.created_at.desc(), Incident.id.desc()).limit(5).all()
    ]
    result["counts"] = {
        "incidents_reported": reported.count(),
        "incidents_assigned": assigned.count(),
        "incident_updates": db.query(IncidentUpdate).filter(IncidentUpdate.user_id == id).count(),
    }
    return result


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Create a user"""
    if not data.name.strip() or not data.email.strip():
        raise HTTPException(status_code=400, detail="Missing required fields: email, name")

    email = _validate_email(data.email)
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        name=data.name.strip(),
        role=_validate_role(data.role) if data.role else 'DRIVER',
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Created user {user.id} ({user.role})")
    return user_to_dict(user)


@router.put("/{id}")
async def update_user(
    id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Update a user"""
    user = db.query(User).filter(User.id == id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = data.model_dump(exclude_unset=True)

    if update_data.get('name') is not None:
        update_data['name'] = update_data['name'].strip()
        if not update_data['name']:
            raise HTTPException(status_code=400, detail="Name cannot be blank")

    if update_data.get('email') is not None:
        update_data['email'] = _validate_email(update_data['email'])
        if update_data['email'] != user.email:
            duplicate = db.query(User).filter(User.email == update_data['email']).first()
            if duplicate:
                raise HTTPException(status_code=409, detail="User with this email already exists")

    if update_data.get('role'):
        update_data['role'] = _validate_role(update_data['role'])

    for field, value in update_data.items():
        if value is None:
            continue  # every user column is required
        setattr(user, field, value)

    db.commit()
    db.refresh(user)

    return user_to_dict(user)


@router.delete("/{id}")
async def delete_user(
    id: int,
    db: Session = Depends(get_db),
    _session=Depends(require_settings_session),
):
    """Delete a user and their incident updates. Refused while incidents reference them."""
    user = db.query(User).filter(User.id == id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    linked = db.query(Incident).filter(
        or_(Incident.reported_by_id == id, Incident.assigned_to_id == id)
    ).count()
    if linked > 0:
        raise HTTPException(status_code=400, detail="Cannot delete user with associated incidents")

    db.query(IncidentUpdate).filter(IncidentUpdate.user_id == id).delete()
    db.delete(user)
    db.commit()

    logger.info(f"Deleted user {id}")
    return {"message": "User deleted successfully"}
