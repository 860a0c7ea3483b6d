from sqlalchemy import Column, Integer, String, Text, DateTime
from datetime import datetime
from db import Base

class ScheduleEvent(Base):
	__tablename__ = "schedule_events"

	id = Column(Integer, primary_key=True, index=True, autoincrement=True)
	group_name = Column(String, nullable=True, index=True)
	course = Column(String, nullable=True)
	title = Column(String, nullable=False)
	starts_at = Column(DateTime, nullable=False)
	ends_at = Column(DateTime, nullable=False)
	location = Column(String, nullable=True)
	notes = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
