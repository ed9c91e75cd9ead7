"""Service layer for authentication, courses and profiles."""

import hmac
import logging
from typing import Any, List

from prometheus_client import Counter

from .errors import NotFound, Unauthenticated, ValidationError
from .schemas import AuthResult, Course, Profile, PublicUser
from .store import Store, utcnow
from .tokens import TokenService
from .validation import clean_course_payload, owner_from_payload, profile_errors

logger = logging.getLogger(__name__)

# Prometheus counters for key service events
LOGIN_COUNTER = Counter(
    "login_attempts_total", "Total login attempts", ["outcome"]
)
COURSE_CREATED_COUNTER = Counter(
    "courses_created_total", "Total courses created"
)
COURSE_UPDATED_COUNTER = Counter(
    "courses_updated_total", "Total courses updated"
)
COURSE_DELETED_COUNTER = Counter(
    "courses_deleted_total", "Total courses deleted"
)


def authenticate(
    store: Store, tokens: TokenService, username: Any, password: Any
) -> AuthResult:
    """Check credentials, stamp ``last_login`` and issue a token."""
    if not username or not password:
        LOGIN_COUNTER.labels(outcome="rejected").inc()
        raise ValidationError(["Username and password are required"])

    user = store.find_user_by_username(str(username))
    # plaintext comparison; password hashing is not implemented
    if user is None or not hmac.compare_digest(
        user.password.encode(), str(password).encode()
    ):
        LOGIN_COUNTER.labels(outcome="failed").inc()
        logger.info("login failed username=%s", username)
        raise Unauthenticated("Invalid credentials")

    user = store.record_login(user.id, utcnow()) or user
    LOGIN_COUNTER.labels(outcome="success").inc()
    logger.info("login succeeded user=%s", user.id)
    return AuthResult(token=tokens.issue(user.id, user.username), user=user.public())


def list_courses(store: Store) -> List[Course]:
    """Return every course; filtering happens on the client."""
    return store.list_courses()


def get_course(store: Store, course_id: str) -> Course:
    course = store.get_course(course_id)
    if course is None:
        raise NotFound("Course not found")
    return course


def create_course(store: Store, payload: Any, owner_id: str) -> Course:
    """Validate ``payload`` and insert a new course.

    The owner defaults to the authenticated user when the payload carries
    no usable ``userId``. Owner ids are not checked against the users.
    """
    fields = clean_course_payload(payload)
    fields["user_id"] = owner_from_payload(payload) or owner_id
    course = store.add_course(fields)
    COURSE_CREATED_COUNTER.inc()
    logger.info("created course id=%s owner=%s", course.id, course.user_id)
    return course


def update_course(store: Store, course_id: str, payload: Any) -> Course:
    """Validate the fields present in ``payload`` and merge them.

    ``id`` and ``createdAt`` are never taken from the payload.
    """
    changes = clean_course_payload(payload, partial=True)
    owner = owner_from_payload(payload)
    if owner is not None:
        changes["user_id"] = owner

    course = store.update_course(course_id, changes)
    if course is None:
        raise NotFound("Course not found")
    COURSE_UPDATED_COUNTER.inc()
    logger.info("updated course id=%s fields=%s", course_id, sorted(changes))
    return course


def delete_course(store: Store, course_id: str) -> None:
    if not store.delete_course(course_id):
        raise NotFound("Course not found")
    COURSE_DELETED_COUNTER.inc()
    logger.info("deleted course id=%s", course_id)


def get_profile(store: Store, user_id: str) -> Profile:
    """Return public user data with the number of courses they own."""
    user = store.find_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return Profile(
        **user.public().model_dump(),
        courses_created=store.count_courses_by_user(user_id),
    )


def update_profile(store: Store, user_id: str, payload: Any) -> PublicUser:
    """Overwrite a user's username and email.

    The store raises :class:`Conflict` when another user already holds the
    username; the requester's record is left untouched in that case.
    """
    errors = profile_errors(payload)
    if errors:
        raise ValidationError(errors)
    username, email = payload["username"], payload["email"]

    user = store.update_user(user_id, username, email)
    if user is None:
        raise NotFound("User not found")
    logger.info("updated profile user=%s", user_id)
    return user.public()
