"""HTTP client for the course catalog API.

Every call unwraps the response envelope and raises :class:`ApiError` when
``success`` is false, so callers only ever see data or an error message.
The client never retries on its own.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError as SchemaError

from .schemas import ApiResponse, AuthResult, Course, Profile, PublicUser

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001/api"


class ApiError(Exception):
    """A request failed; ``message`` is suitable for showing to a user."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiClient:
    """Thin wrapper over an HTTP session that tracks the bearer token.

    ``session`` may be anything with a ``requests``-style ``request``
    method; tests pass a FastAPI ``TestClient``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[Any] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None

    def set_token(self, token: str) -> None:
        self.token = token

    def clear_token(self) -> None:
        self.token = None

    def _request(self, method: str, endpoint: str, json: Any = None) -> Any:
        """Send a request and return the envelope's ``data``."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{endpoint}",
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("request failed %s %s", method, endpoint, exc_info=exc)
            raise ApiError("Unable to reach the server") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ApiError(
                f"Unexpected response from server (status {response.status_code})",
                response.status_code,
            ) from exc

        try:
            envelope = ApiResponse[Any].model_validate(body)
        except SchemaError as exc:
            raise ApiError("Malformed response envelope", response.status_code) from exc

        if not envelope.success:
            message = envelope.error
            logger.warning(
                "api error %s %s status=%s error=%s",
                method,
                endpoint,
                response.status_code,
                message,
            )
            raise ApiError(message or "Request failed", response.status_code)
        return envelope.data

    # Authentication

    def login(self, username: str, password: str) -> AuthResult:
        """Log in and remember the returned token."""
        data = self._request("POST", "/auth/login", {"username": username, "password": password})
        result = AuthResult.model_validate(data)
        self.set_token(result.token)
        return result

    def logout(self) -> str:
        data = self._request("POST", "/auth/logout")
        self.clear_token()
        return data["message"]

    # Courses

    def fetch_courses(self) -> List[Course]:
        return [Course.model_validate(item) for item in self._request("GET", "/courses") or []]

    def get_course(self, course_id: str) -> Course:
        return Course.model_validate(self._request("GET", f"/courses/{course_id}"))

    def add_course(self, course: Dict[str, Any]) -> Course:
        return Course.model_validate(self._request("POST", "/courses", course))

    def update_course(self, course_id: str, updates: Dict[str, Any]) -> Course:
        return Course.model_validate(self._request("PUT", f"/courses/{course_id}", updates))

    def delete_course(self, course_id: str) -> str:
        return self._request("DELETE", f"/courses/{course_id}")["message"]

    # Profile

    def get_profile(self) -> Profile:
        return Profile.model_validate(self._request("GET", "/profile"))

    def update_profile(self, username: str, email: str) -> PublicUser:
        data = self._request("PUT", "/profile", {"username": username, "email": email})
        return PublicUser.model_validate(data)

    def health(self) -> Dict[str, Any]:
        """Call ``/health``, which lives outside the ``/api`` prefix."""
        root = self.base_url[: -len("/api")] if self.base_url.endswith("/api") else self.base_url
        response = self.session.request("GET", f"{root}/health", timeout=self.timeout)
        return response.json()
