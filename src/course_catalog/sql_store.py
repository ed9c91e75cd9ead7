"""Store backed by a SQLAlchemy database."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import CourseRecord, UserRecord, init_db, make_engine, make_session_factory
from .errors import Conflict
from .schemas import Course, User
from .store import SEED_COURSES, SEED_USERS, Store, utcnow

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back out
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _columns(record) -> Dict[str, Any]:
    return {column.name: getattr(record, column.name) for column in record.__table__.columns}


def _to_course(record: CourseRecord) -> Course:
    data = _columns(record)
    data["created_at"] = _as_utc(data["created_at"])
    data["updated_at"] = _as_utc(data["updated_at"])
    return Course(**data)


def _to_user(record: UserRecord) -> User:
    data = _columns(record)
    data["last_login"] = _as_utc(data["last_login"])
    return User(**data)


class SQLAlchemyStore(Store):
    """Relational implementation of :class:`Store`.

    Each operation opens its own session and commits before returning.
    """

    def __init__(self, database_url: str) -> None:
        super().__init__()
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)

    def _session(self) -> Session:
        return self.SessionLocal()

    def init(self) -> None:
        init_db(self.engine)
        session = self._session()
        try:
            if session.scalar(select(func.count()).select_from(UserRecord)):
                logger.info("database already seeded, skipping")
                return
            session.add_all(UserRecord(**record) for record in SEED_USERS)
            session.add_all(
                CourseRecord(**dict(record, updated_at=record["created_at"]))
                for record in SEED_COURSES
            )
            session.commit()
            logger.info(
                "seeded database users=%d courses=%d", len(SEED_USERS), len(SEED_COURSES)
            )
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_courses(self) -> List[Course]:
        with self._session() as session:
            records = session.scalars(select(CourseRecord).order_by(CourseRecord.created_at))
            return [_to_course(record) for record in records]

    def get_course(self, course_id: str) -> Optional[Course]:
        with self._session() as session:
            record = session.get(CourseRecord, course_id)
            return _to_course(record) if record else None

    def add_course(self, fields: Dict[str, Any]) -> Course:
        now = utcnow()
        session = self._session()
        try:
            record = CourseRecord(**fields, id=self.next_id(), created_at=now, updated_at=now)
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_course(record)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def update_course(self, course_id: str, changes: Dict[str, Any]) -> Optional[Course]:
        session = self._session()
        try:
            record = session.get(CourseRecord, course_id)
            if record is None:
                return None
            for key, value in changes.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            session.commit()
            session.refresh(record)
            return _to_course(record)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete_course(self, course_id: str) -> bool:
        session = self._session()
        try:
            record = session.get(CourseRecord, course_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def count_courses_by_user(self, user_id: str) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count())
                .select_from(CourseRecord)
                .where(CourseRecord.user_id == user_id)
            ) or 0

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        with self._session() as session:
            record = session.get(UserRecord, user_id)
            return _to_user(record) if record else None

    def find_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            record = session.scalars(
                select(UserRecord).where(UserRecord.username == username)
            ).first()
            return _to_user(record) if record else None

    def record_login(self, user_id: str, when: datetime) -> Optional[User]:
        return self._update_user_fields(user_id, last_login=when)

    def update_user(self, user_id: str, username: str, email: str) -> Optional[User]:
        session = self._session()
        try:
            record = session.get(UserRecord, user_id)
            if record is None:
                return None
            holder = session.scalars(
                select(UserRecord.id).where(
                    UserRecord.username == username, UserRecord.id != user_id
                )
            ).first()
            if holder is not None:
                raise Conflict("Username already taken")
            record.username = username
            record.email = email
            session.commit()
            session.refresh(record)
            return _to_user(record)
        except IntegrityError as exc:
            # unique index caught a concurrent rename
            session.rollback()
            raise Conflict("Username already taken") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _update_user_fields(self, user_id: str, **fields: Any) -> Optional[User]:
        session = self._session()
        try:
            record = session.get(UserRecord, user_id)
            if record is None:
                return None
            for key, value in fields.items():
                setattr(record, key, value)
            session.commit()
            session.refresh(record)
            return _to_user(record)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
