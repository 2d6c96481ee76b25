"""Helper stubs for simulating remote generation calls in tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from LLM_API.data_classes import (
    BaseResponse,
    ImageGenerationResponse,
    InlineDataPart,
    StructuredOutputResponse,
)
from LLM_API.decorators import RetryPolicy
from LLM_API.exceptions import LLMAPIError

from slidecraft.slide_models import GeneratedImage, SlidePlan


def fast_retry(max_attempts: int = 4, sleeps: Optional[List[float]] = None) -> RetryPolicy:
    """Retry policy that records its delays instead of sleeping."""

    recorded = sleeps if sleeps is not None else []

    async def _sleep(seconds: float) -> None:
        recorded.append(seconds)

    return RetryPolicy(max_attempts=max_attempts, delay=3.0, backoff=2.0, sleep=_sleep)


def outline_json(count: int = 3) -> str:
    slides = [
        {
            "id": idx,
            "title": "Cover" if idx == 1 else f"Slide {idx}",
            "content": f"Content {idx}",
            "visualDescription": f"Infographic {idx}",
        }
        for idx in range(1, count + 1)
    ]
    return json.dumps(slides)


def remote_error(message: str = "backend unavailable") -> LLMAPIError:
    return LLMAPIError(message=message, provider="Stub", error_type="api_error")


class ScriptedLLM:
    """LLM stub that replays scripted results per call type.

    Each script item is either a value to return or an exception to raise.
    Once a script runs out its last item is repeated.
    """

    model_name = "stub-scripted"

    def __init__(
        self,
        *,
        texts: Iterable[Any] = ("",),
        structured: Iterable[Any] = ("[]",),
        images: Iterable[Any] = (b"\x89PNG-stub",),
    ) -> None:
        self.texts = list(texts)
        self.structured = list(structured)
        self.images = list(images)
        self.text_requests: List[Any] = []
        self.structured_requests: List[Any] = []
        self.image_requests: List[Any] = []
        self.structured_gate: Optional[asyncio.Event] = None

    async def generate_content(self, request: Any) -> BaseResponse:
        self.text_requests.append(request)
        return BaseResponse(text=self._next(self.texts), model_used=request.model_name)

    async def generate_structured_output(self, request: Any) -> StructuredOutputResponse:
        self.structured_requests.append(request)
        if self.structured_gate is not None:
            await self.structured_gate.wait()
        return StructuredOutputResponse(text=self._next(self.structured), model_used=request.model_name)

    async def generate_image(self, request: Any) -> ImageGenerationResponse:
        self.image_requests.append(request)
        item = self._next(self.images)
        parts = [] if item is None else [InlineDataPart(data=item, mime_type="image/png")]
        return ImageGenerationResponse(parts=parts, model_used=request.model_name)

    @staticmethod
    def _next(script: List[Any]) -> Any:
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class StubSynthesizer:
    """Synthesizer stand-in that tracks overlap and order of calls."""

    def __init__(
        self,
        *,
        fail_ids: Iterable[int] = (),
        on_call: Optional[Callable[[SlidePlan], None]] = None,
    ) -> None:
        self.fail_ids: Set[int] = set(fail_ids)
        self.on_call = on_call
        self.calls: List[int] = []
        self.design_systems: List[str] = []
        self.in_flight: Set[int] = set()
        self.overlaps: List[int] = []
        self.max_parallel = 0
        self.release: Optional[asyncio.Event] = None

    async def synthesize(self, slide: SlidePlan, design_system: str) -> GeneratedImage:
        if slide.id in self.in_flight:
            self.overlaps.append(slide.id)
        self.in_flight.add(slide.id)
        self.max_parallel = max(self.max_parallel, len(self.in_flight))
        self.calls.append(slide.id)
        self.design_systems.append(design_system)
        if self.on_call is not None:
            self.on_call(slide)
        try:
            if self.release is not None:
                await self.release.wait()
            await asyncio.sleep(0)
            if slide.id in self.fail_ids:
                raise remote_error(f"slide {slide.id} failed")
            return GeneratedImage(data=f"image-{slide.id}".encode("ascii"))
        finally:
            self.in_flight.discard(slide.id)


def status_map(slides: Iterable[SlidePlan]) -> Dict[int, str]:
    return {slide.id: slide.status.value for slide in slides}


__all__ = [
    "ScriptedLLM",
    "StubSynthesizer",
    "fast_retry",
    "outline_json",
    "remote_error",
    "status_map",
]
