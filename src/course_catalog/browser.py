"""Client-side course list state: fetched courses plus the current view."""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .client import ApiClient, ApiError
from .errors import ValidationError
from .query import FilterCriteria, SortSpec, available_categories, derive_view
from .schemas import Course
from .validation import course_errors

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def log_notification(level: str, message: str) -> None:
    """Default notifier: route user-facing messages to the log."""
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class CourseBrowser:
    """Holds the fetched collection and derives the displayed view.

    Every mutation goes through the API and is followed by a full re-fetch,
    after which :meth:`view` reflects the server state under the current
    filters and sort. Failures are reported through ``notify`` and, for the
    list fetch, kept in :attr:`error` until :meth:`retry` succeeds.
    """

    def __init__(self, client: ApiClient, notify: Optional[Notifier] = None) -> None:
        self.client = client
        self.notify = notify or log_notification
        self.courses: List[Course] = []
        self.criteria = FilterCriteria()
        self.sort = SortSpec()
        self.error: Optional[str] = None

    def refresh(self) -> bool:
        """Fetch the full collection; returns False and records the error on failure."""
        try:
            self.courses = self.client.fetch_courses()
        except ApiError as exc:
            self.error = exc.message or "Failed to fetch courses"
            self.notify("error", self.error)
            return False
        self.error = None
        self.notify("success", "Courses loaded successfully")
        return True

    def retry(self) -> bool:
        return self.refresh()

    def view(self) -> List[Course]:
        return derive_view(self.courses, self.criteria, self.sort)

    @property
    def categories(self) -> List[str]:
        return available_categories(self.courses)

    def set_filters(self, **changes: Any) -> None:
        self.criteria = replace(self.criteria, **changes)

    def set_sort(self, field: str, direction: str = "asc") -> None:
        self.sort = SortSpec(field, direction)

    def toggle_sort(self, field: str) -> None:
        """Flip direction when re-selecting the current field, else sort ascending."""
        if self.sort.field == field:
            self.set_sort(field, "desc" if self.sort.direction == "asc" else "asc")
        else:
            self.set_sort(field)

    def clear_filters(self) -> None:
        self.criteria = FilterCriteria()
        self.sort = SortSpec()

    def save_course(self, form: Dict[str, Any], course_id: Optional[str] = None) -> Course:
        """Create or update a course after checking the form locally.

        Raises :class:`ValidationError` before any request when the form is
        invalid, or :class:`ApiError` when the server rejects it.
        """
        errors = course_errors(form)
        if errors:
            raise ValidationError(errors)
        try:
            if course_id is None:
                course = self.client.add_course(form)
                self.notify("success", "Course created successfully")
            else:
                course = self.client.update_course(course_id, form)
                self.notify("success", "Course updated successfully")
        except ApiError as exc:
            self.notify("error", exc.message)
            raise
        self.refresh()
        return course

    def delete_course(self, course_id: str) -> None:
        try:
            self.client.delete_course(course_id)
        except ApiError as exc:
            self.notify("error", exc.message)
            raise
        self.notify("success", "Course deleted successfully")
        self.refresh()
