from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr
from typing import Optional
import logging

from db import get_db
from models.auth.user_models import User, UserRole
from services.auth_service import (
	create_access_token,
	get_current_user,
	hash_password,
	user_to_dict,
	verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


# Pydantic Schemas
class UserOut(BaseModel):
	id: int
	email: str
	name: str
	role: str


class RegisterRequest(BaseModel):
	email: Optional[EmailStr] = None
	password: Optional[str] = None
	name: Optional[str] = None
	role: Optional[str] = None


class LoginRequest(BaseModel):
	email: str
	password: str


class ChangePasswordRequest(BaseModel):
	current_password: Optional[str] = None
	new_password: Optional[str] = None


class AuthResponse(BaseModel):
	user: UserOut
	token: str


class MeResponse(BaseModel):
	user: UserOut


# Register
@router.post("/auth/register", response_model=AuthResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
	if not payload.email or not payload.password or not payload.name:
		raise HTTPException(status_code=400, detail="Missing fields")
	if db.query(User).filter(User.email == payload.email).first():
		raise HTTPException(status_code=409, detail="Email in use")
	user = User(
		email=payload.email,
		password_hash=hash_password(payload.password),
		name=payload.name,
		role=UserRole.teacher if payload.role == "teacher" else UserRole.student,
	)
	db.add(user)
	db.commit()
	db.refresh(user)
	logger.info("Registered user %s as %s", user.id, user.role.value)
	return {"user": user_to_dict(user), "token": create_access_token(user)}


# Login
@router.post("/auth/login", response_model=AuthResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
	user = db.query(User).filter(User.email == credentials.email).first()
	if not user or not verify_password(credentials.password, user.password_hash):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
	logger.info("User %s logged in", user.id)
	return {"user": user_to_dict(user), "token": create_access_token(user)}


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
	return {"user": user_to_dict(current_user)}


# Change password
@router.post("/auth/change-password")
def change_password(
	payload: ChangePasswordRequest,
	current_user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	if not payload.current_password or not payload.new_password:
		raise HTTPException(status_code=400, detail="Missing fields")
	if not verify_password(payload.current_password, current_user.password_hash):
		raise HTTPException(status_code=400, detail="Current password is incorrect")
	current_user.password_hash = hash_password(payload.new_password)
	db.commit()
	logger.info("User %s changed password", current_user.id)
	return {"ok": True}
