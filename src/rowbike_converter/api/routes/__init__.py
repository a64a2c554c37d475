"""API route modules."""

from . import calibrations

__all__ = ["calibrations"]
