"""REST API for Registrar."""

from registrar.api.app import create_app
from registrar.api.models import (
    APIResponse,
    ErrorResponse,
    PaginatedResponse,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)

__all__ = [
    "APIResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "StudentCreate",
    "StudentResponse",
    "StudentUpdate",
    "create_app",
]
