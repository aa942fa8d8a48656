"""Reference REST backend: in-memory storage behind a FastAPI app."""

from campusdesk.server.app import create_app
from campusdesk.server.storage import MemStorage, Table

__all__ = ["MemStorage", "Table", "create_app"]
