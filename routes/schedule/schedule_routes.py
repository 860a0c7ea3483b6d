from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from db import get_db
from models.auth.user_models import User, UserRole
from models.schedule.schedule_models import ScheduleEvent
from services.auth_service import get_current_user

router = APIRouter(prefix="/api/schedule", tags=["Schedule"])


# Pydantic Schemas
class ScheduleEventCreate(BaseModel):
	group_name: Optional[str] = None
	title: Optional[str] = None
	starts_at: Optional[datetime] = None
	ends_at: Optional[datetime] = None
	location: Optional[str] = None
	notes: Optional[str] = None


class ScheduleEventOut(BaseModel):
	id: int
	group_name: Optional[str] = None
	course: Optional[str] = None
	title: str
	starts_at: datetime
	ends_at: datetime
	location: Optional[str] = None
	notes: Optional[str] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


# Add event (teachers only)
@router.post("")
def create_event(payload: ScheduleEventCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
	if current_user.role is not UserRole.teacher:
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only teachers can add events")
	if not payload.title or not payload.starts_at:
		raise HTTPException(status_code=400, detail="Missing fields")
	event = ScheduleEvent(
		group_name=payload.group_name or None,
		title=payload.title,
		starts_at=payload.starts_at,
		ends_at=payload.ends_at or payload.starts_at,
		location=payload.location or None,
		notes=payload.notes or None,
	)
	db.add(event)
	db.commit()
	db.refresh(event)
	return {"id": event.id}


# List events, optionally for one group
@router.get("")
def list_events(
	group: Optional[str] = Query(None),
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
):
	query = db.query(ScheduleEvent)
	if group:
		query = query.filter(ScheduleEvent.group_name == group)
	events = query.order_by(ScheduleEvent.starts_at.asc(), ScheduleEvent.id.asc()).all()
	return {"events": [ScheduleEventOut.model_validate(e) for e in events]}
