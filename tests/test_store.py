import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session

from course_catalog import services
from course_catalog.config import Settings
from course_catalog.errors import Conflict
from course_catalog.sql_store import SQLAlchemyStore
from course_catalog.store import IdGenerator, InMemoryStore, create_store

NEW_COURSE = {
    "title": "Data Analysis",
    "description": "Spreadsheets and SQL",
    "category": "Information Technology",
    "level": "beginner",
    "duration": 12,
    "published": False,
    "user_id": "2",
}


@pytest.fixture(params=["memory", "sqlalchemy"])
def backend(request):
    """Run each test against both store implementations."""
    if request.param == "memory":
        store = InMemoryStore()
    else:
        store = SQLAlchemyStore("sqlite://")
    store.init()
    return store


def test_seed_data(backend):
    courses = backend.list_courses()
    assert [course.id for course in courses] == ["1", "2", "3", "4", "5", "6"]
    assert backend.find_user_by_username("admin").id == "1"
    assert backend.find_user_by_username("user").password == "user123"
    assert backend.find_user_by_username("nobody") is None


def test_add_and_get(backend):
    course = backend.add_course(dict(NEW_COURSE))
    assert course.created_at == course.updated_at
    assert course.created_at.tzinfo is not None
    fetched = backend.get_course(course.id)
    assert fetched == course
    assert len(backend.list_courses()) == 7


def test_update_merges_and_bumps_updated_at(backend):
    before = backend.get_course("1")
    after = backend.update_course("1", {"published": False, "duration": 41})
    assert after.published is False
    assert after.duration == 41
    assert after.title == before.title
    assert after.created_at == before.created_at
    assert after.updated_at > before.updated_at


def test_update_missing_returns_none(backend):
    assert backend.update_course("999", {"title": "x"}) is None


def test_delete(backend):
    assert backend.delete_course("1") is True
    assert backend.get_course("1") is None
    assert backend.delete_course("1") is False
    assert len(backend.list_courses()) == 5


def test_delete_missing_keeps_length(backend):
    before = len(backend.list_courses())
    assert backend.delete_course("does-not-exist") is False
    assert len(backend.list_courses()) == before


def test_reads_return_copies(backend):
    course = backend.get_course("1")
    course.title = "mutated"
    assert backend.get_course("1").title != "mutated"


def test_count_courses_by_user(backend):
    assert backend.count_courses_by_user("1") == 6
    assert backend.count_courses_by_user("2") == 0
    backend.add_course(dict(NEW_COURSE))
    assert backend.count_courses_by_user("2") == 1


def test_user_updates(backend):
    when = datetime(2025, 5, 1, tzinfo=timezone.utc)
    assert backend.record_login("2", when).last_login == when
    updated = backend.update_user("2", "renamed", "renamed@example.com")
    assert updated.username == "renamed"
    assert backend.find_user_by_id("2").email == "renamed@example.com"
    assert backend.update_user("99", "x", "x@example.com") is None


def test_sqlalchemy_init_is_idempotent():
    store = SQLAlchemyStore("sqlite://")
    store.init()
    store.init()
    assert len(store.list_courses()) == 6


def test_id_generator_strictly_increasing():
    next_id = IdGenerator()
    values = [int(next_id()) for _ in range(100)]
    assert values == sorted(set(values))


def test_create_store_selects_backend():
    assert isinstance(create_store(Settings(store_backend="memory")), InMemoryStore)
    assert isinstance(create_store(Settings(store_backend="sqlalchemy")), SQLAlchemyStore)
    with pytest.raises(ValueError):
        create_store(Settings(store_backend="redis"))


def test_update_user_rejects_taken_username(backend):
    with pytest.raises(Conflict) as excinfo:
        backend.update_user("2", "admin", "other@example.com")
    assert excinfo.value.message == "Username already taken"
    user = backend.find_user_by_id("2")
    assert (user.username, user.email) == ("user", "user@example.com")

    # keeping your own username is not a conflict
    assert backend.update_user("2", "user", "new@example.com").email == "new@example.com"


def test_update_missing_user_wins_over_conflict(backend):
    assert backend.update_user("99", "admin", "x@example.com") is None


def test_concurrent_renames_keep_usernames_unique():
    store = InMemoryStore()
    store.init()
    barrier = threading.Barrier(2)

    def rename(user_id):
        barrier.wait(timeout=5)
        try:
            return services.update_profile(
                store, user_id, {"username": "taken", "email": f"{user_id}@example.com"}
            )
        except Conflict as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(rename, ["1", "2"]))

    assert sum(isinstance(result, Conflict) for result in results) == 1
    usernames = [store.find_user_by_id(user_id).username for user_id in ("1", "2")]
    assert usernames.count("taken") == 1


class _NoMatch:
    def first(self):
        return None


def test_sqlalchemy_unique_index_maps_to_conflict(monkeypatch):
    store = SQLAlchemyStore("sqlite://")
    store.init()
    # the lookup misses a rename that commits before ours
    monkeypatch.setattr(Session, "scalars", lambda self, *args, **kwargs: _NoMatch())
    with pytest.raises(Conflict):
        store.update_user("2", "admin", "other@example.com")
    monkeypatch.undo()
    assert store.find_user_by_id("2").username == "user"
