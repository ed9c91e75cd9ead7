import pytest

from course_catalog.browser import CourseBrowser
from course_catalog.client import ApiClient, ApiError
from course_catalog.errors import ValidationError


@pytest.fixture
def api(client):
    return ApiClient(base_url="/api", session=client)


@pytest.fixture
def notes():
    return []


@pytest.fixture
def browser(api, notes):
    api.login("user", "user123")
    return CourseBrowser(api, notify=lambda level, message: notes.append((level, message)))


def test_login_stores_token(api):
    result = api.login("user", "user123")
    assert api.token == result.token
    assert result.user.username == "user"
    assert api.get_profile().courses_created == 0


def test_login_failure_raises(api):
    with pytest.raises(ApiError) as excinfo:
        api.login("user", "wrong")
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid credentials"
    assert api.token is None


def test_logout_clears_token(api):
    api.login("admin", "password123")
    assert api.logout() == "Logged out successfully"
    assert api.token is None
    with pytest.raises(ApiError) as excinfo:
        api.get_profile()
    assert excinfo.value.status_code == 401


def test_course_crud(api, course_payload):
    api.login("user", "user123")
    created = api.add_course(course_payload)
    assert created.duration == 5
    assert api.get_course(created.id) == created

    updated = api.update_course(created.id, {"published": True})
    assert updated.published is True
    assert updated.updated_at >= created.updated_at

    assert api.delete_course(created.id) == "Course deleted successfully"
    with pytest.raises(ApiError) as excinfo:
        api.get_course(created.id)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Course not found"


def test_update_profile(api):
    api.login("user", "user123")
    user = api.update_profile("student", "student@example.com")
    assert user.username == "student"
    with pytest.raises(ApiError) as excinfo:
        api.update_profile("admin", "x@example.com")
    assert excinfo.value.status_code == 409


def test_health(api):
    assert api.health() == {"status": "OK", "message": "Server is running"}


def test_browser_view(browser, notes):
    assert browser.refresh() is True
    assert notes == [("success", "Courses loaded successfully")]
    assert len(browser.courses) == 6
    assert browser.categories[0] == "Business & Management"

    browser.set_filters(categories={"Teaching & Education"})
    browser.set_sort("duration", "desc")
    assert [course.id for course in browser.view()] == ["6", "4"]

    browser.toggle_sort("duration")
    assert browser.sort.direction == "asc"
    assert [course.id for course in browser.view()] == ["4", "6"]

    browser.clear_filters()
    assert len(browser.view()) == 6
    assert browser.sort.field == "title"


def test_browser_save_refetches(browser, notes, course_payload):
    browser.refresh()
    course = browser.save_course(course_payload)
    assert course.id in {c.id for c in browser.courses}
    assert ("success", "Course created successfully") in notes

    browser.save_course(dict(course_payload, title="Renamed"), course_id=course.id)
    titles = {c.id: c.title for c in browser.courses}
    assert titles[course.id] == "Renamed"


def test_browser_validates_before_sending(browser, course_payload):
    browser.refresh()
    with pytest.raises(ValidationError) as excinfo:
        browser.save_course(dict(course_payload, duration=1.5))
    assert excinfo.value.errors == ["Duration must be a positive whole number"]
    assert len(browser.courses) == 6


def test_browser_delete_refetches(browser, notes):
    browser.refresh()
    browser.delete_course("1")
    assert "1" not in {c.id for c in browser.courses}
    assert ("success", "Course deleted successfully") in notes

    with pytest.raises(ApiError):
        browser.delete_course("1")
    assert ("error", "Course not found") in notes


class FlakyClient:
    """Fails the first fetch, then succeeds."""

    def __init__(self):
        self.calls = 0

    def fetch_courses(self):
        self.calls += 1
        if self.calls == 1:
            raise ApiError("Failed to fetch courses", 500)
        return []


def test_browser_failed_fetch_offers_retry(notes):
    client = FlakyClient()
    browser = CourseBrowser(client, notify=lambda level, message: notes.append((level, message)))
    assert browser.refresh() is False
    assert browser.error == "Failed to fetch courses"
    assert notes == [("error", "Failed to fetch courses")]
    assert client.calls == 1

    assert browser.retry() is True
    assert browser.error is None
    assert notes[-1] == ("success", "Courses loaded successfully")
    assert client.calls == 2
