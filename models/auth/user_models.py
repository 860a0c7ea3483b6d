from sqlalchemy import Column, Integer, String, DateTime, Enum
from datetime import datetime
from db import Base
import enum


class UserRole(enum.Enum):
	student = "student"
	teacher = "teacher"


class User(Base):
	__tablename__ = "users"

	id = Column(Integer, primary_key=True, index=True, autoincrement=True)
	email = Column(String, nullable=False, unique=True, index=True)
	password_hash = Column(String, nullable=False)
	name = Column(String, nullable=False)
	role = Column(Enum(UserRole), nullable=False, default=UserRole.student)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	def __repr__(self):
		return f"<User(id={self.id}, email={self.email}, role={self.role})>"
