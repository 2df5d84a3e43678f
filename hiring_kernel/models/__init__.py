"""ORM models for the hiring kernel."""

from hiring_kernel.models.hiring_request import (
    REQUEST_MODELS,
    HiringRequestBase,
    NewHireRequest,
    ReplacementRequest,
    model_for,
)
from hiring_kernel.models.user import User

__all__ = [
    "HiringRequestBase",
    "NewHireRequest",
    "ReplacementRequest",
    "REQUEST_MODELS",
    "model_for",
    "User",
]
