"""Clients domain: the people appointments are booked for."""

from .router import router

__all__ = ["router"]
