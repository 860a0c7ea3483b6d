"""Wipe the database and uploads, then seed a demo classroom.

Run with ``python reset_db.py``. Uses ``DATABASE_URL`` and ``UPLOAD_DIR``
like the app does.
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
import logging
import os
import shutil

from sqlalchemy.orm import sessionmaker

from db import Base, SessionLocal, engine as default_engine
from models.assignment.assignment_models import Assignment, AssignmentStatus
from models.auth.user_models import User, UserRole
from models.chat.chat_models import Chat, ChatMember, MemberRole, Message, MessageType
from models.schedule.schedule_models import ScheduleEvent
from services import upload_service
from services.auth_service import hash_password
from services.room_generator import generate_room_name

logger = logging.getLogger(__name__)

SEED_PASSWORD = os.getenv("SEED_PASSWORD", "password")
TEACHER_EMAIL = "teacher@madi.ru"
STUDENT_EMAIL = "student@madi.ru"
DEMO_ASSIGNMENTS = 3


def clear_uploads(upload_dir: Optional[Path] = None) -> int:
    """Remove everything inside the uploads directory; returns how many entries went."""
    upload_dir = Path(upload_dir or upload_service.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    removed = 0
    for entry in upload_dir.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed


def seed(db) -> dict:
    now = datetime.utcnow()
    teacher = User(email=TEACHER_EMAIL, password_hash=hash_password(SEED_PASSWORD), name="Teacher", role=UserRole.teacher)
    student = User(email=STUDENT_EMAIL, password_hash=hash_password(SEED_PASSWORD), name="Student", role=UserRole.student)
    db.add_all([teacher, student])
    db.flush()

    chat = Chat(title="Test group", is_group=True, owner_id=teacher.id, jitsi_room=generate_room_name())
    db.add(chat)
    db.flush()
    db.add_all([
        ChatMember(chat_id=chat.id, user_id=teacher.id, role=MemberRole.owner),
        ChatMember(chat_id=chat.id, user_id=student.id, role=MemberRole.member),
        Message(chat_id=chat.id, user_id=teacher.id, content="Welcome!", type=MessageType.text, created_at=now),
        Message(chat_id=chat.id, user_id=student.id, content="Thanks!", type=MessageType.text, created_at=now + timedelta(seconds=1)),
    ])
    for i in range(1, DEMO_ASSIGNMENTS + 1):
        db.add(Assignment(
            chat_id=chat.id,
            title=f"Assignment {i}",
            description="",
            due_at=now + timedelta(days=i),
            creator_id=teacher.id,
            status=AssignmentStatus.open,
            created_at=now + timedelta(seconds=i),
        ))

    lecture_start = now.replace(hour=10, minute=0, second=0, microsecond=0)
    db.add(ScheduleEvent(
        group_name="IVCH-21",
        title="Lecture",
        starts_at=lecture_start,
        ends_at=lecture_start + timedelta(hours=1, minutes=30),
        location="A-101",
        notes="Lesson plan",
    ))
    db.commit()
    return {"teacher": teacher.email, "student": student.email, "password": SEED_PASSWORD, "chat_id": chat.id}


def reset_database(bind=None, upload_dir: Optional[Path] = None) -> dict:
    """Drop and recreate every table, empty the uploads directory and seed demo data."""
    bind = bind or default_engine
    Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
    removed = clear_uploads(upload_dir)
    logger.info("Recreated tables and removed %d upload(s)", removed)

    session_factory = SessionLocal if bind is default_engine else sessionmaker(autocommit=False, autoflush=False, bind=bind)
    with session_factory() as db:
        return seed(db)


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    creds = reset_database()
    logger.info("Teacher: %s / %s", creds["teacher"], creds["password"])
    logger.info("Student: %s / %s", creds["student"], creds["password"])
