from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime
import logging

from db import get_db
from models.auth.user_models import User, UserRole
from models.assignment.assignment_models import Assignment, AssignmentStatus, Submission
from services.auth_service import get_current_user
from services.membership import is_manager, require_manager, require_member
from services.upload_service import delete_upload, save_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Assignments"])

# newest assignments kept per chat
ASSIGNMENTS_KEPT = 3


# Pydantic Schemas
class AssignmentCreate(BaseModel):
	title: Optional[str] = None
	description: Optional[str] = None
	due_at: Optional[datetime] = None


class AssignmentOut(BaseModel):
	id: int
	chat_id: int
	title: str
	description: Optional[str] = None
	due_at: Optional[datetime] = None
	creator_id: int
	status: str
	created_at: datetime


class SubmissionOut(BaseModel):
	id: int
	assignment_id: int
	user_id: int
	file_path: str
	file_name: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


def assignment_to_out(a: Assignment) -> AssignmentOut:
	return AssignmentOut(
		id=a.id,
		chat_id=a.chat_id,
		title=a.title,
		description=a.description,
		due_at=a.due_at,
		creator_id=a.creator_id,
		status=a.status.value,
		created_at=a.created_at,
	)


def get_assignment_or_404(db: Session, assignment_id: int) -> Assignment:
	assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
	if not assignment:
		raise HTTPException(status_code=404, detail="Not found")
	return assignment


def enforce_retention(db: Session, chat_id: int, keep: int = ASSIGNMENTS_KEPT) -> List[str]:
	"""Delete all but the `keep` newest assignments of a chat. Does not commit.

	Returns the stored paths of the submissions that went with them, for the
	caller to remove once the delete is committed.
	"""
	stale = (
		db.query(Assignment)
		.filter(Assignment.chat_id == chat_id)
		.order_by(Assignment.created_at.desc(), Assignment.id.desc())
		.offset(keep)
		.all()
	)
	files = [s.file_path for a in stale for s in a.submissions]
	for a in stale:
		db.delete(a)
	if stale:
		logger.info("Chat %s dropped %d old assignment(s)", chat_id, len(stale))
	return files


# Create assignment: owners/moderators, or any member with a teacher account
@router.post("/chats/{chat_id}/assignments", response_model=AssignmentOut)
def create_assignment(
	chat_id: int,
	payload: AssignmentCreate,
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
):
	role = require_member(db, chat_id, current_user.id)
	if not (is_manager(role) or current_user.role is UserRole.teacher):
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
	if not payload.title:
		raise HTTPException(status_code=400, detail="Title required")

	assignment = Assignment(
		chat_id=chat_id,
		title=payload.title,
		description=payload.description or "",
		due_at=payload.due_at,
		creator_id=current_user.id,
		status=AssignmentStatus.open,
	)
	db.add(assignment)
	db.flush()
	stale_files = enforce_retention(db, chat_id)
	db.commit()
	db.refresh(assignment)
	for path in stale_files:
		delete_upload(path)
	return assignment_to_out(assignment)


@router.get("/chats/{chat_id}/assignments")
def list_assignments(chat_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
	require_member(db, chat_id, current_user.id)
	rows = (
		db.query(Assignment)
		.filter(Assignment.chat_id == chat_id)
		.order_by(Assignment.created_at.desc(), Assignment.id.desc())
		.limit(ASSIGNMENTS_KEPT)
		.all()
	)
	return {"assignments": [assignment_to_out(a) for a in rows]}


# Close assignment (owner/moderator of its chat)
@router.post("/assignments/{assignment_id}/close")
def close_assignment(assignment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
	assignment = get_assignment_or_404(db, assignment_id)
	require_manager(db, assignment.chat_id, current_user.id)
	assignment.status = AssignmentStatus.closed
	db.commit()
	return {"ok": True}


@router.post("/assignments/{assignment_id}/submissions", response_model=SubmissionOut)
def create_submission(
	assignment_id: int,
	file: Optional[UploadFile] = File(None),
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
):
	assignment = get_assignment_or_404(db, assignment_id)
	require_member(db, assignment.chat_id, current_user.id)
	if assignment.status is AssignmentStatus.closed:
		raise HTTPException(status_code=400, detail="Assignment is closed")
	if file is None or not file.filename:
		raise HTTPException(status_code=400, detail="File required")
	file_path, file_name = save_upload(file)
	submission = Submission(
		assignment_id=assignment_id,
		user_id=current_user.id,
		file_path=file_path,
		file_name=file_name,
	)
	db.add(submission)
	db.commit()
	db.refresh(submission)
	return submission


@router.get("/assignments/{assignment_id}/submissions")
def list_submissions(assignment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
	assignment = get_assignment_or_404(db, assignment_id)
	require_member(db, assignment.chat_id, current_user.id)
	rows = (
		db.query(Submission)
		.filter(Submission.assignment_id == assignment_id)
		.order_by(Submission.created_at.desc(), Submission.id.desc())
		.all()
	)
	return {"submissions": [SubmissionOut.model_validate(s) for s in rows]}
