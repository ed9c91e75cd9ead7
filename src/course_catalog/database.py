"""SQLAlchemy tables for the relational store backend."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class UserRecord(Base):
    """SQLAlchemy model for catalog users."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False)
    password = Column(String, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)


class CourseRecord(Base):
    """SQLAlchemy model for catalog courses."""

    __tablename__ = "courses"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False)
    level = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    published = Column(Boolean, default=False, nullable=False)
    # owner reference only, no foreign key
    user_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


def make_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(database_url, future=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create database tables if they do not exist."""
    Base.metadata.create_all(bind=engine)
