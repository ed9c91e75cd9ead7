"""Course catalog API, client and query helpers."""

from .api import app, create_app

__all__ = ["app", "create_app"]
