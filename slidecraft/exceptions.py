"""Error types raised by the slide generation pipeline."""

from __future__ import annotations

from typing import Optional


class SlideCraftError(Exception):
    """Base class for pipeline errors."""


class MalformedOutputError(SlideCraftError):
    """Model output could not be parsed or is missing required fields."""

    def __init__(self, message: str, *, raw_text: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class NoImageReturnedError(SlideCraftError):
    """The image backend answered without any inline image part."""


class PlanningError(SlideCraftError):
    """Every planning tier failed; the outline could not be produced."""


class SessionStateError(SlideCraftError):
    """Operation is not allowed in the current session state."""
