"""Design system, outline and slide image generation on top of ``LLM_API``."""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from LLM_API.data_classes import (
    BaseRequest,
    StructuredOutputResponse,
    create_image_request,
    create_structured_output_request,
)
from LLM_API.decorators import RetryPolicy

from .exceptions import MalformedOutputError, NoImageReturnedError, PlanningError
from .slide_models import GeneratedImage, SlidePlan, SlideStyle

LOGGER = logging.getLogger(__name__)

DEFAULT_DESIGN_SYSTEM = "Modern clean business style with blue accents."
DEFAULT_AESTHETIC = (
    "Premium Swiss International Style. Clean, Professional, Trustworthy. "
    "High contrast, refined typography."
)
LAYOUT_GUIDANCE = {
    SlideStyle.CONCISE: (
        "LAYOUT: Minimalist, generous whitespace, large typography, focus on visual impact."
    ),
    SlideStyle.DETAILED: (
        "LAYOUT: Editorial grid, multi-column text areas, structured density, information-rich."
    ),
}
DENSITY_GUIDANCE = {
    SlideStyle.CONCISE: (
        "STYLE: CONCISE. Very few words. Big impact. Bullet points. No long paragraphs."
    ),
    SlideStyle.DETAILED: (
        "STYLE: DETAILED. Comprehensive explanation. Structured paragraphs. "
        "High information density."
    ),
}
REQUIRED_SLIDE_FIELDS: Tuple[str, ...] = ("title", "content", "visualDescription")
OUTLINE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "INTEGER"},
            "title": {"type": "STRING"},
            "content": {"type": "STRING"},
            "visualDescription": {"type": "STRING"},
        },
        "required": ["id", "title", "content", "visualDescription"],
        "propertyOrdering": ["id", "title", "content", "visualDescription"],
    },
}

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


class DesignSystemDeriver:
    """Create and revise the deck-wide design system text."""

    def __init__(
        self,
        llm_client,
        *,
        model_name: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.llm_client = llm_client
        self.model_name = model_name
        self.retry_policy = retry_policy or RetryPolicy()

    async def derive(self, custom_style: str, style_mode: SlideStyle) -> str:
        """Return ``custom_style`` verbatim, or ask the model for a design system."""

        if custom_style and custom_style.strip():
            LOGGER.info("Using custom style as design system; skipping derivation")
            return custom_style

        prompt = _join_sections(
            [
                "Role: Senior Art Director for a Fortune 500 Strategy Firm.",
                'Task: Create a rigid "Visual Design System" (Master Template) for a presentation deck.',
                "",
                f'AESTHETIC DIRECTION (User Input): "{DEFAULT_AESTHETIC}"',
                f"CONTENT STRUCTURE (Layout Mode): {LAYOUT_GUIDANCE[SlideStyle(style_mode)]}",
                "",
                'OBJECTIVE: The design must be "High-End" and "Logic-Oriented".',
                "Avoid generic stock photo aesthetics. Prefer information design, data "
                "visualization and abstract logic graphics.",
                "",
                "Define the following strictly in English:",
                "1. Color Palette: hex codes for Background, Primary Text, Accent 1 "
                "(Logic/Charts), Accent 2 (Highlights).",
                "2. Typography: font pairings for headers and body.",
                "3. Composition Rules: margins, grid system, image treatment.",
                "4. Graphic Elements: line weights, corner radius, textures.",
                "",
                "Output format: A concise but detailed paragraph describing this Design System.",
            ]
        )
        text = await self._generate(prompt, label="derive_design_system")
        return text or DEFAULT_DESIGN_SYSTEM

    async def update(self, current: str, adjustment: str) -> str:
        """Rewrite ``current`` to include ``adjustment``; empty output keeps ``current``."""

        prompt = _join_sections(
            [
                "Role: Senior Art Director.",
                "Task: Update an existing Design System based on client feedback.",
                "",
                "CURRENT DESIGN SYSTEM:",
                f'"{current}"',
                "",
                "CLIENT FEEDBACK / ADJUSTMENT REQUEST:",
                f'"{adjustment}"',
                "",
                "INSTRUCTIONS:",
                "Rewrite the Design System description to incorporate the client's feedback "
                "while maintaining coherence and professional quality.",
                "Keep the output as a descriptive paragraph.",
            ]
        )
        text = await self._generate(prompt, label="update_design_system")
        if not text:
            LOGGER.warning("Design system update returned no text; keeping current system")
            return current
        return text

    async def _generate(self, prompt: str, *, label: str) -> str:
        request = BaseRequest(prompt=prompt, model_name=self.model_name)

        async def _call():
            return await self.llm_client.generate_content(request)

        response = await self.retry_policy.call(_call, label=label)
        return (getattr(response, "text", "") or "").strip()


class PlanningTier(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class SlideOutlinePlanner:
    """Split source text into an ordered list of :class:`SlidePlan`."""

    def __init__(
        self,
        llm_client,
        *,
        primary_model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_input_chars: int = 15000,
        content_language: str = "Simplified Chinese (简体中文)",
        visual_language: str = "English",
    ) -> None:
        self.llm_client = llm_client
        self.tiers: List[Tuple[PlanningTier, Optional[str]]] = [
            (PlanningTier.PRIMARY, primary_model),
            (PlanningTier.FALLBACK, fallback_model),
        ]
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_input_chars = max_input_chars
        self.content_language = content_language
        self.visual_language = visual_language

    async def plan(
        self,
        input_text: str,
        slide_count: int,
        style_mode: SlideStyle,
        design_system: str,
    ) -> List[SlidePlan]:
        prompt = self._build_prompt(input_text, slide_count, SlideStyle(style_mode), design_system)

        last_error: Optional[Exception] = None
        for tier, model in self.tiers:
            try:
                slides = await self._plan_with_tier(tier, model, prompt)
            except Exception as exc:
                LOGGER.warning("Outline planning failed on %s tier (%s): %s", tier.value, model, exc)
                last_error = exc
                continue
            LOGGER.info("Outline planned with %s tier: %d slides", tier.value, len(slides))
            return slides

        raise PlanningError(f"Outline planning failed on every tier: {last_error}") from last_error

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    async def _plan_with_tier(
        self, tier: PlanningTier, model: Optional[str], prompt: str
    ) -> List[SlidePlan]:
        request = create_structured_output_request(
            prompt,
            OUTLINE_SCHEMA,
            schema_name="slide_outline",
            model_name=model,
        )

        async def _call() -> List[SlidePlan]:
            response = await self.llm_client.generate_structured_output(request)
            return parse_slide_plans(_response_text(response))

        return await self.retry_policy.call(_call, label=f"plan_outline[{tier.value}]")

    def _build_prompt(
        self,
        input_text: str,
        slide_count: int,
        style_mode: SlideStyle,
        design_system: str,
    ) -> str:
        source = (input_text or "")[: self.max_input_chars]
        sections = [
            "Role: Chief Content Strategist & Presentation Logic Expert.",
            f"Task: Split the provided text into a cohesive {slide_count}-page presentation structure.",
            "",
            "INPUT TEXT:",
            f'"{source}"',
            "",
            "DESIGN SYSTEM CONTEXT:",
            design_system,
            "",
            DENSITY_GUIDANCE[style_mode],
            "",
            "REQUIREMENTS:",
            "1. Cover Page: Slide 1 MUST be a Cover Page with a compelling title.",
            "2. Logical Flow: Ensure a narrative arc. Don't just chop text; structure it for a listener.",
            "3. No Hallucinations: Only use facts from the input text.",
            "4. Visuals: The 'visualDescription' must describe an illustration or infographic "
            "that explains the concept, not a literal photograph. Use the Design System aesthetic.",
            '   - Bad: "A picture of a computer."',
            "   - Good: \"A split-screen infographic showing 'Old Process' vs 'New Process' "
            'connected by a glowing arrow, using the defined palette."',
            "5. Language:",
            f"   - Title and Content: {self.content_language}.",
            f"   - Visual Description: {self.visual_language} (for image generator compatibility).",
            "",
            "OUTPUT FORMAT:",
            "Return a raw JSON array. No markdown code blocks.",
            '[{"id": 1, "title": "...", "content": "...", "visualDescription": "..."}, ...]',
        ]
        return _join_sections(sections)


class SlideImageSynthesizer:
    """Render one slide plan into an image with an image-capable model."""

    def __init__(
        self,
        llm_client,
        *,
        model_name: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        aspect_ratio: str = "16:9",
        image_size: Optional[str] = "2K",
        content_language: str = "Simplified Chinese (简体中文)",
    ) -> None:
        self.llm_client = llm_client
        self.model_name = model_name
        self.retry_policy = retry_policy or RetryPolicy()
        self.aspect_ratio = aspect_ratio
        self.image_size = image_size
        self.content_language = content_language

    async def synthesize(self, slide: SlidePlan, design_system: str) -> GeneratedImage:
        request = create_image_request(
            self.build_prompt(slide, design_system),
            model_name=self.model_name,
            aspect_ratio=self.aspect_ratio,
            image_size=self.image_size,
        )

        async def _call() -> GeneratedImage:
            response = await self.llm_client.generate_image(request)
            part = response.first_image()
            if part is None:
                raise NoImageReturnedError(f"No image data returned for slide {slide.id}")
            return GeneratedImage(data=part.data, mime_type=part.mime_type or "image/png")

        return await self.retry_policy.call(_call, label=f"synthesize_slide[{slide.id}]")

    def build_prompt(self, slide: SlidePlan, design_system: str) -> str:
        language = self.content_language
        return _join_sections(
            [
                "[DESIGN SYSTEM / AESTHETIC GUIDE]",
                design_system,
                "",
                "[SLIDE SPECIFIC VISUAL INSTRUCTION]",
                slide.visual_description,
                "",
                "[USER ADJUSTMENTS]",
                slide.user_prompt_override or "None",
                "",
                "[TEXT CONTENT TO RENDER - REQUIRED]",
                f"PLEASE RENDER THE FOLLOWING {language} TEXT ON THE SLIDE.",
                "ENSURE THE TEXT IS CLEAR, LEGIBLE, AND CORRECTLY SPACED.",
                "",
                f'TITLE: "{slide.title}"',
                f'CONTENT: "{slide.content}"',
                "",
                "[RENDER INSTRUCTIONS]",
                "1. Create a complete, professional presentation slide.",
                "2. MANDATORY: Render the exact Title and Content provided above. "
                "Do not invent any other text.",
                "3. Ensure high contrast between text and background.",
                "4. Typography should match the Design System.",
                "5. Integrate the text naturally with the infographic or visual elements described.",
            ]
        )


class PromptRefiner:
    """Polish a visual description in a single, un-retried call."""

    def __init__(self, llm_client, *, model_name: Optional[str] = None, language: str = "English") -> None:
        self.llm_client = llm_client
        self.model_name = model_name
        self.language = language

    async def refine(self, visual_description: str) -> str:
        prompt = (
            "Optimize this image generation prompt for a presentation slide. "
            "Make it more descriptive, artistic, and precise. "
            f"Keep it in {self.language}.\n\n"
            f'Input: "{visual_description}"'
        )
        response = await self.llm_client.generate_content(
            BaseRequest(prompt=prompt, model_name=self.model_name)
        )
        text = (getattr(response, "text", "") or "").strip()
        if not text:
            raise MalformedOutputError("Prompt refinement returned no text")
        return text


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def parse_slide_plans(raw_text: str) -> List[SlidePlan]:
    """Parse the planner's JSON array into fresh :class:`SlidePlan` records."""

    cleaned = strip_code_fences(raw_text)
    if not cleaned:
        raise MalformedOutputError("Outline response was empty", raw_text=raw_text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedOutputError(f"Outline is not valid JSON: {exc}", raw_text=raw_text) from exc
    if not isinstance(payload, list):
        raise MalformedOutputError("Outline is not a JSON array", raw_text=raw_text)
    if not payload:
        raise MalformedOutputError("Outline contains no slides", raw_text=raw_text)

    slides: List[SlidePlan] = []
    seen_ids = set()
    for position, record in enumerate(payload, start=1):
        if not isinstance(record, dict):
            raise MalformedOutputError(f"Slide #{position} is not an object", raw_text=raw_text)
        slide_id = _coerce_slide_id(record.get("id"), position, raw_text)
        if slide_id in seen_ids:
            raise MalformedOutputError(f"Duplicate slide id {slide_id}", raw_text=raw_text)
        seen_ids.add(slide_id)
        values = {}
        for name in REQUIRED_SLIDE_FIELDS:
            value = record.get(name)
            if not isinstance(value, str) or not value.strip():
                raise MalformedOutputError(
                    f"Slide #{position} is missing '{name}'", raw_text=raw_text
                )
            values[name] = value.strip()
        slides.append(
            SlidePlan(
                id=slide_id,
                title=values["title"],
                content=values["content"],
                visual_description=values["visualDescription"],
            )
        )
    return slides


def strip_code_fences(text: Optional[str]) -> str:
    if not text:
        return ""
    return _FENCE_RE.sub("", text).strip()


def _coerce_slide_id(value: Any, position: int, raw_text: str) -> int:
    if isinstance(value, bool):
        value = None
    try:
        slide_id = int(value)
    except (TypeError, ValueError):
        raise MalformedOutputError(
            f"Slide #{position} has an invalid id: {value!r}", raw_text=raw_text
        ) from None
    if slide_id < 1:
        raise MalformedOutputError(f"Slide #{position} has a non-positive id", raw_text=raw_text)
    return slide_id


def _response_text(response: Optional[StructuredOutputResponse]) -> str:
    if response is None:
        return ""
    return getattr(response, "text", "") or ""


def _join_sections(sections: Sequence[str]) -> str:
    return "\n".join(sections).strip()
