"""Service catalog domain: bookable offerings with a default duration."""

from .router import router

__all__ = ["router"]
