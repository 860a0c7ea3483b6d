from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from db import Base
import enum


class AssignmentStatus(enum.Enum):
	open = "open"
	closed = "closed"


class Assignment(Base):
	__tablename__ = "assignments"

	id = Column(Integer, primary_key=True, index=True, autoincrement=True)
	chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
	title = Column(String, nullable=False)
	description = Column(Text, nullable=True)
	due_at = Column(DateTime, nullable=True)
	creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
	status = Column(Enum(AssignmentStatus), nullable=False, default=AssignmentStatus.open)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	chat = relationship("Chat", back_populates="assignments")
	submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")


class Submission(Base):
	__tablename__ = "submissions"

	id = Column(Integer, primary_key=True, index=True, autoincrement=True)
	assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
	user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
	file_path = Column(String, nullable=False)
	file_name = Column(String, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	assignment = relationship("Assignment", back_populates="submissions")
