"""Client-side filtering and sorting of a fetched course list.

Everything here is a pure function of its inputs: the server always returns
the whole collection and the view is re-derived locally after every fetch.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from .schemas import Course
from .validation import LEVELS

SORT_DIRECTIONS = ("asc", "desc")

# Level sorts by its raw string, so advanced < beginner < intermediate.
_SORT_KEYS: Dict[str, Callable[[Course], Any]] = {
    "title": lambda course: course.title.lower(),
    "category": lambda course: course.category.lower(),
    "level": lambda course: course.level,
    "duration": lambda course: course.duration,
    "createdAt": lambda course: course.created_at,
    "updatedAt": lambda course: course.updated_at,
}

SORT_FIELDS = tuple(_SORT_KEYS)


@dataclass(frozen=True)
class FilterCriteria:
    """Optional predicates, combined with AND. Defaults filter nothing."""

    query: str = ""
    categories: FrozenSet[str] = field(default_factory=frozenset)
    level: Optional[str] = None
    published: Optional[bool] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", frozenset(self.categories))

    def matches(self, course: Course) -> bool:
        if self.query:
            needle = self.query.lower()
            if needle not in course.title.lower() and needle not in course.description.lower():
                return False
        if self.categories and course.category not in self.categories:
            return False
        if self.level and course.level != self.level:
            return False
        if self.published is not None and course.published != self.published:
            return False
        return True


@dataclass(frozen=True)
class SortSpec:
    """Field and direction for ordering a course view."""

    field: str = "title"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.field not in _SORT_KEYS:
            raise ValueError(f"Unsupported sort field: {self.field}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {self.direction}")


def filter_courses(courses: Iterable[Course], criteria: FilterCriteria) -> List[Course]:
    return [course for course in courses if criteria.matches(course)]


def sort_courses(courses: Iterable[Course], spec: SortSpec) -> List[Course]:
    """Return ``courses`` ordered by ``spec``.

    The sort is stable in both directions, so ties keep their input order
    and sorting an already sorted list leaves it unchanged.
    """
    return sorted(courses, key=_SORT_KEYS[spec.field], reverse=spec.direction == "desc")


def derive_view(
    courses: Iterable[Course],
    criteria: Optional[FilterCriteria] = None,
    spec: Optional[SortSpec] = None,
) -> List[Course]:
    """Filter then sort, the view a course table displays."""
    filtered = filter_courses(courses, criteria or FilterCriteria())
    return sort_courses(filtered, spec or SortSpec())


def available_categories(courses: Iterable[Course]) -> List[str]:
    """Distinct categories in the order they first appear."""
    return list(dict.fromkeys(course.category for course in courses))


__all__ = [
    "LEVELS",
    "SORT_FIELDS",
    "SORT_DIRECTIONS",
    "FilterCriteria",
    "SortSpec",
    "filter_courses",
    "sort_courses",
    "derive_view",
    "available_categories",
]
