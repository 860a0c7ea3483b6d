from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List

from db import get_db
from models.auth.user_models import User
from services.auth_service import get_current_user

router = APIRouter(prefix="/api/users", tags=["Users"])

SEARCH_LIMIT = 10


def escape_like(value: str) -> str:
	"""Make LIKE wildcards in user input match literally (used with escape="\\")."""
	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserSummary(BaseModel):
	id: int
	name: str
	email: str

	model_config = ConfigDict(from_attributes=True)


class UserSearchResponse(BaseModel):
	users: List[UserSummary]


# Search users by email or name (invite helper)
@router.get("", response_model=UserSearchResponse)
def search_users(
	q: str = Query(""),
	db: Session = Depends(get_db),
	current_user: User = Depends(get_current_user),
):
	q = q.strip()
	if not q:
		return {"users": []}
	like = f"%{escape_like(q)}%"
	users = (
		db.query(User)
		.filter(or_(User.email.ilike(like, escape="\\"), User.name.ilike(like, escape="\\")))
		.order_by(User.id.asc())
		.limit(SEARCH_LIMIT)
		.all()
	)
	return {"users": users}
