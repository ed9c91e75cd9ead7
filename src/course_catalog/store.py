"""Storage for users and courses.

Handlers never touch module-level collections; they receive a :class:`Store`
created by :func:`create_store` and seeded by :meth:`Store.init`. Every read
returns a copy so callers cannot mutate stored records behind the store's
back.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import Conflict
from .schemas import Course, User

logger = logging.getLogger(__name__)


def _seed_date(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


SEED_USERS: List[Dict[str, Any]] = [
    # Plaintext passwords; hashing is not implemented.
    {"id": "1", "username": "admin", "email": "admin@example.com", "password": "password123"},
    {"id": "2", "username": "user", "email": "user@example.com", "password": "user123"},
]

SEED_COURSES: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Pearson BTEC Level 4 Diploma in Business Administration",
        "description": "Comprehensive business administration course covering management principles, finance, marketing, and operational strategies.",
        "category": "Business & Management",
        "level": "intermediate",
        "duration": 40,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-01-15"),
    },
    {
        "id": "2",
        "title": "Level 3 Diploma in Health and Social Care",
        "description": "Essential training for healthcare professionals covering patient care, medical ethics, and social care practices.",
        "category": "Health & Social Care",
        "level": "intermediate",
        "duration": 60,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-01-20"),
    },
    {
        "id": "3",
        "title": "BTEC Level 3 IT Diploma",
        "description": "Complete information technology course covering programming, networking, cybersecurity, and system administration.",
        "category": "Information Technology",
        "level": "intermediate",
        "duration": 80,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-01-25"),
    },
    {
        "id": "4",
        "title": "CACHE Level 3 Award in Childcare",
        "description": "Specialized training for childcare professionals focusing on child development, safety, and educational practices.",
        "category": "Teaching & Education",
        "level": "intermediate",
        "duration": 30,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-02-01"),
    },
    {
        "id": "5",
        "title": "AAT Level 3 Diploma in Accounting",
        "description": "Professional accounting qualification covering financial reporting, taxation, and business finance principles.",
        "category": "Accounting & Finance",
        "level": "intermediate",
        "duration": 50,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-02-05"),
    },
    {
        "id": "6",
        "title": "Level 4 Teaching Assistant Diploma",
        "description": "Advanced training for teaching assistants covering classroom management, special needs education, and student support.",
        "category": "Teaching & Education",
        "level": "intermediate",
        "duration": 70,
        "published": True,
        "user_id": "1",
        "created_at": _seed_date("2024-02-10"),
    },
]


def seed_courses() -> List[Course]:
    return [
        Course(**dict(record, updated_at=record["created_at"])) for record in SEED_COURSES
    ]


def seed_users() -> List[User]:
    return [User(**record) for record in SEED_USERS]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdGenerator:
    """Millisecond-clock ids, forced strictly increasing within a process."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            self._last = max(int(time.time() * 1000), self._last + 1)
            return str(self._last)


class Store(ABC):
    """Owner of the user and course collections."""

    def __init__(self) -> None:
        self.next_id = IdGenerator()

    @abstractmethod
    def init(self) -> None:
        """Load the seed users and courses."""

    @abstractmethod
    def list_courses(self) -> List[Course]:
        ...

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[Course]:
        ...

    @abstractmethod
    def add_course(self, fields: Dict[str, Any]) -> Course:
        """Insert a course built from validated ``fields`` plus ``user_id``."""

    @abstractmethod
    def update_course(self, course_id: str, changes: Dict[str, Any]) -> Optional[Course]:
        """Merge ``changes`` into a course and bump ``updated_at``."""

    @abstractmethod
    def delete_course(self, course_id: str) -> bool:
        ...

    @abstractmethod
    def count_courses_by_user(self, user_id: str) -> int:
        ...

    @abstractmethod
    def find_user_by_id(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def find_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def record_login(self, user_id: str, when: datetime) -> Optional[User]:
        ...

    @abstractmethod
    def update_user(self, user_id: str, username: str, email: str) -> Optional[User]:
        """Rename a user, raising :class:`Conflict` when another user holds ``username``.

        The uniqueness check and the write are atomic.
        """


class InMemoryStore(Store):
    """Process-local store backed by two lists."""

    def __init__(self) -> None:
        super().__init__()
        self._courses: List[Course] = []
        self._users: List[User] = []
        self._lock = threading.RLock()

    def init(self) -> None:
        with self._lock:
            self._users = seed_users()
            self._courses = seed_courses()
        logger.info(
            "seeded in-memory store users=%d courses=%d",
            len(self._users),
            len(self._courses),
        )

    def _course_index(self, course_id: str) -> int:
        for index, course in enumerate(self._courses):
            if course.id == course_id:
                return index
        return -1

    def _user_index(self, user_id: str) -> int:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index
        return -1

    def list_courses(self) -> List[Course]:
        with self._lock:
            return [course.model_copy() for course in self._courses]

    def get_course(self, course_id: str) -> Optional[Course]:
        with self._lock:
            index = self._course_index(course_id)
            return self._courses[index].model_copy() if index != -1 else None

    def add_course(self, fields: Dict[str, Any]) -> Course:
        now = utcnow()
        course = Course(**fields, id=self.next_id(), created_at=now, updated_at=now)
        with self._lock:
            self._courses.append(course)
        return course.model_copy()

    def update_course(self, course_id: str, changes: Dict[str, Any]) -> Optional[Course]:
        with self._lock:
            index = self._course_index(course_id)
            if index == -1:
                return None
            merged = self._courses[index].model_dump()
            merged.update(changes)
            merged["updated_at"] = utcnow()
            self._courses[index] = Course(**merged)
            return self._courses[index].model_copy()

    def delete_course(self, course_id: str) -> bool:
        with self._lock:
            index = self._course_index(course_id)
            if index == -1:
                return False
            del self._courses[index]
            return True

    def count_courses_by_user(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for course in self._courses if course.user_id == user_id)

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            index = self._user_index(user_id)
            return self._users[index].model_copy() if index != -1 else None

    def find_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._users:
                if user.username == username:
                    return user.model_copy()
            return None

    def record_login(self, user_id: str, when: datetime) -> Optional[User]:
        with self._lock:
            index = self._user_index(user_id)
            if index == -1:
                return None
            self._users[index] = self._users[index].model_copy(update={"last_login": when})
            return self._users[index].model_copy()

    def update_user(self, user_id: str, username: str, email: str) -> Optional[User]:
        with self._lock:
            index = self._user_index(user_id)
            if index == -1:
                return None
            if any(user.username == username and user.id != user_id for user in self._users):
                raise Conflict("Username already taken")
            self._users[index] = self._users[index].model_copy(
                update={"username": username, "email": email}
            )
            return self._users[index].model_copy()


def create_store(settings: Settings) -> Store:
    """Build and seed the store selected by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        store: Store = InMemoryStore()
    elif backend == "sqlalchemy":
        from .sql_store import SQLAlchemyStore

        store = SQLAlchemyStore(settings.database_url)
    else:
        raise ValueError(f"Unsupported store backend: {settings.store_backend}")
    store.init()
    return store
