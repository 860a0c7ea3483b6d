from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv
from pathlib import Path
import os

# Load environment variables
load_dotenv()

# Get database settings from environment
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/classroom.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")


def build_engine(url: str, echo: bool = False, **kwargs):
    """Create an engine for `url`.

    SQLite connections are shared across the threadpool FastAPI runs sync
    routes in, and need foreign keys switched on per connection.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        db_path = url.split("///", 1)[1] if "///" in url else ""
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(url, echo=echo, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Create SQLAlchemy engine
engine = build_engine(DATABASE_URL, echo=DB_ECHO)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()


# Dependency for handlers that open their own short-lived sessions
def get_session_factory():
    return SessionLocal


# Dependency to get database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Import all models here to ensure they are registered with SQLAlchemy's Base
from models.auth import user_models
from models.chat import chat_models
from models.assignment import assignment_models
from models.schedule import schedule_models

# Function to create all tables
def create_tables(bind=None):
    Base.metadata.create_all(bind=bind or engine)
