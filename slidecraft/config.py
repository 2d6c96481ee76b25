"""Runtime settings for the generation pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv

from LLM_API.decorators import RetryPolicy

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "SLIDECRAFT_"


@dataclass
class GenerationSettings:
    """Model identifiers, retry budget and pacing used by every component.

    ``chain_delay`` is the pause between two auto-chained slides and
    ``settle_delay`` the pause before the first slide of a session starts.
    ``request_timeout`` bounds each remote attempt; ``None`` disables it.
    """

    design_model: str = "gemini-2.5-flash"
    planning_primary_model: str = "gemini-3-pro-preview"
    planning_fallback_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-3-pro-image-preview"
    refine_model: str = "gemini-2.5-flash"
    image_aspect_ratio: str = "16:9"
    image_size: str = "2K"
    max_attempts: int = 4
    retry_delay: float = 3.0
    retry_backoff: float = 2.0
    request_timeout: Optional[float] = 300.0
    chain_delay: float = 0.5
    settle_delay: float = 0.1
    max_input_chars: int = 15000
    max_slide_count: int = 30
    content_language: str = "Simplified Chinese (简体中文)"
    visual_language: str = "English"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            timeout=self.request_timeout,
        )

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "GenerationSettings":
        """Build settings from ``SLIDECRAFT_*`` environment variables.

        ``SLIDECRAFT_IMAGE_MODEL=...`` overrides ``image_model`` and so on.
        ``SLIDECRAFT_REQUEST_TIMEOUT=none`` disables the timeout.
        """

        if dotenv:
            load_dotenv()
        overrides = {}
        for item in fields(cls):
            raw = os.getenv(ENV_PREFIX + item.name.upper())
            if raw is None or raw.strip() == "":
                continue
            overrides[item.name] = _coerce(item.name, raw.strip(), getattr(cls, item.name))
        if overrides:
            LOGGER.debug("Settings overridden from environment: %s", sorted(overrides))
        return cls(**overrides)


def _coerce(name: str, raw: str, default):
    if name == "request_timeout":
        return None if raw.lower() in {"none", "off", "0"} else float(raw)
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from exc
    return raw
