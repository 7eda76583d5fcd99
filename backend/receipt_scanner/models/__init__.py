"""Pydantic models exposed at the package level."""

from .schemas import *  # noqa: F401,F403
