"""Session controller: owns the deck and drives slide image generation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set

from .config import GenerationSettings
from .exceptions import SessionStateError
from .slide_generation import (
    DesignSystemDeriver,
    PromptRefiner,
    SlideImageSynthesizer,
    SlideOutlinePlanner,
)
from .slide_models import (
    ProjectState,
    ProjectStep,
    SlidePlan,
    SlideStatus,
    SlideStyle,
)

LOGGER = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"title", "content", "visual_description", "user_prompt_override"}
)
NEW_SLIDE_TITLE = "New slide"
NEW_SLIDE_CONTENT = "Enter the slide content here..."
NEW_SLIDE_VISUAL = "Describe the visual structure for this slide..."


@dataclass
class FailureNotice:
    """A failure the user should be told about."""

    operation: str
    message: str
    slide_id: Optional[int] = None
    error: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=datetime.now)


class GenerationOrchestrator:
    """Single-session state machine around the generation components.

    Every mutation of the deck happens here, synchronously, between awaits.
    After each remote call the affected slide is looked up again by id, so
    decisions are always taken on the current deck rather than on data
    captured before the call.
    """

    def __init__(
        self,
        *,
        deriver: DesignSystemDeriver,
        planner: SlideOutlinePlanner,
        synthesizer: SlideImageSynthesizer,
        refiner: PromptRefiner,
        chain_delay: float = 0.5,
        settle_delay: float = 0.1,
        max_slide_count: int = 30,
        notify: Optional[Callable[[FailureNotice], None]] = None,
        state: Optional[ProjectState] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.deriver = deriver
        self.planner = planner
        self.synthesizer = synthesizer
        self.refiner = refiner
        self.chain_delay = chain_delay
        self.settle_delay = settle_delay
        self.max_slide_count = max_slide_count
        self.notify = notify
        self.sleep = sleep
        self.state = state or ProjectState()
        self.notices: List[FailureNotice] = []
        self._pending: Set[asyncio.Task] = set()
        self._chain_errors: List[BaseException] = []
        self._deck_version = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def slides(self) -> List[SlidePlan]:
        return self.state.slides

    @property
    def design_system(self) -> str:
        return self.state.design_system

    def slide_status(self, slide_id: int) -> SlideStatus:
        return self._require_slide(slide_id).status

    # ------------------------------------------------------------------
    # Input stage
    # ------------------------------------------------------------------
    def set_input_text(self, text: str) -> None:
        self.state.input_text = text or ""

    def load_input_file(self, path: Path) -> str:
        """Read an uploaded text/markdown file verbatim into the input text."""

        text = Path(path).read_text(encoding="utf-8")
        self.set_input_text(text)
        return text

    def configure(
        self,
        *,
        slide_count: Optional[int] = None,
        style: Optional[SlideStyle] = None,
        custom_style: Optional[str] = None,
    ) -> None:
        if slide_count is not None:
            self.state.target_slide_count = self._clamp_slide_count(slide_count)
        if style is not None:
            self.state.selected_style = SlideStyle(style)
        if custom_style is not None:
            self.state.custom_style_prompt = custom_style

    async def generate_plan(self) -> List[SlidePlan]:
        """Derive the design system and plan the outline (INPUT -> PLANNING).

        On failure nothing but ``is_processing`` is touched and the error
        propagates to the caller.
        """

        self._require_step(ProjectStep.INPUT)
        state = self.state
        if not state.input_text.strip():
            raise ValueError("Input text is empty; enter content or upload a document")
        if state.is_processing:
            raise SessionStateError("Another bulk operation is already running")

        state.is_processing = True
        try:
            design_system = await self.deriver.derive(
                state.custom_style_prompt, state.selected_style
            )
            slides = await self.planner.plan(
                state.input_text,
                state.target_slide_count,
                state.selected_style,
                design_system,
            )
        except Exception as exc:
            self._report("generate_plan", f"Outline generation failed: {exc}", error=exc)
            raise
        finally:
            state.is_processing = False

        state.design_system = design_system
        state.slides = slides
        self._deck_version += 1
        state.step = ProjectStep.PLANNING
        LOGGER.info("Outline ready with %d slides", len(slides))
        return slides

    # ------------------------------------------------------------------
    # Planning stage
    # ------------------------------------------------------------------
    def update_slide(self, slide_id: int, field_name: str, value: Optional[str]) -> SlidePlan:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{field_name}' is not editable")
        slide = self._require_slide(slide_id)
        setattr(slide, field_name, value)
        return slide

    def add_slide(self) -> SlidePlan:
        slide = SlidePlan(
            id=self.state.next_slide_id(),
            title=NEW_SLIDE_TITLE,
            content=NEW_SLIDE_CONTENT,
            visual_description=NEW_SLIDE_VISUAL,
        )
        self.state.slides.append(slide)
        return slide

    def back_to_input(self) -> None:
        self._require_step(ProjectStep.PLANNING)
        self.state.step = ProjectStep.INPUT

    def back_to_outline(self) -> None:
        self._require_step(ProjectStep.WORKBENCH, ProjectStep.EXPORT)
        self.state.step = ProjectStep.PLANNING

    # ------------------------------------------------------------------
    # Workbench stage
    # ------------------------------------------------------------------
    async def start_session(self) -> None:
        """Enter the workbench and kick off the auto-chain from the first slide."""

        self._require_step(ProjectStep.PLANNING)
        self.state.step = ProjectStep.WORKBENCH
        if not self.state.slides:
            return
        await self.sleep(self.settle_delay)
        first = self.state.slides[0]
        await self.generate_one(first.id, auto_chain=True)

    async def generate_one(self, slide_id: int, auto_chain: bool = False) -> bool:
        """Render one slide; returns True when an image was stored."""

        target = self._find(slide_id)
        if target is None:
            LOGGER.warning("Slide %s no longer exists; skipping generation", slide_id)
            return False

        if auto_chain and not target.is_idle:
            target = self._next_idle_from(self.state.index_of(slide_id))
            if target is None:
                LOGGER.info("Auto-chain finished: no slide left to generate")
                return False
        elif target.is_generating:
            LOGGER.warning("Slide %s is already generating; request ignored", slide_id)
            return False

        slide_id = target.id
        target.is_generating = True
        design_system = self.state.design_system
        request_slide = replace(target)
        deck_version = self._deck_version
        LOGGER.info("Generating image for slide %s", slide_id)

        try:
            image = await self.synthesizer.synthesize(request_slide, design_system)
        except Exception as exc:
            current = self._current_slide(slide_id, deck_version)
            if current is not None:
                current.is_generating = False
            self._report(
                "generate_slide",
                f"Slide {slide_id} failed to generate; auto generation paused.",
                slide_id=slide_id,
                error=exc,
            )
            return False

        current = self._current_slide(slide_id, deck_version)
        if current is None:
            LOGGER.warning("Deck was replaced while slide %s was generating; result dropped", slide_id)
            return False
        current.generated_image = image
        current.is_generating = False

        if auto_chain:
            index = self.state.index_of(slide_id)
            if 0 <= index < len(self.state.slides) - 1:
                following = self.state.slides[index + 1]
                if following.is_idle:
                    self._schedule(following.id)
        return True

    async def wait_for_chain(self) -> None:
        """Wait until no chained generation is scheduled or running.

        Synthesis failures are handled inside :meth:`generate_one`; anything
        else a chained task raised (a failing ``notify`` hook, for example)
        is re-raised here once the chain has settled.
        """

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self._chain_errors:
            errors, self._chain_errors = self._chain_errors, []
            raise errors[0]

    async def refine_description(self, slide_id: int) -> bool:
        """Rewrite a slide's visual description once; no retry."""

        slide = self._require_slide(slide_id)
        if self.state.is_processing:
            raise SessionStateError("Another bulk operation is already running")
        original = slide.visual_description
        self.state.is_processing = True
        try:
            refined = await self.refiner.refine(original)
        except Exception as exc:
            self._report(
                "refine_description",
                f"Could not refine the description of slide {slide_id}.",
                slide_id=slide_id,
                error=exc,
            )
            return False
        finally:
            self.state.is_processing = False

        current = self._find(slide_id)
        if current is None:
            return False
        current.visual_description = refined
        return True

    async def update_global_style(self, adjustment: str) -> bool:
        """Rewrite the design system; existing images are left as they are."""

        if not adjustment or not adjustment.strip():
            return False
        try:
            updated = await self.deriver.update(self.state.design_system, adjustment)
        except Exception as exc:
            self._report("update_global_style", "Design system update failed.", error=exc)
            return False
        self.state.design_system = updated
        LOGGER.info("Design system updated; regenerate slides to apply it")
        return True

    def export_deck(self) -> List[SlidePlan]:
        """Mark the session as exported and return the slides in page order."""

        self._require_step(ProjectStep.WORKBENCH, ProjectStep.EXPORT)
        self.state.step = ProjectStep.EXPORT
        return list(self.state.slides)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _find(self, slide_id: int) -> Optional[SlidePlan]:
        return self.state.get_slide(slide_id)

    def _current_slide(self, slide_id: int, deck_version: int) -> Optional[SlidePlan]:
        if deck_version != self._deck_version:
            return None
        return self._find(slide_id)

    def _require_slide(self, slide_id: int) -> SlidePlan:
        slide = self._find(slide_id)
        if slide is None:
            raise SessionStateError(f"Slide {slide_id} not found")
        return slide

    def _require_step(self, *allowed: ProjectStep) -> None:
        if self.state.step not in allowed:
            names = ", ".join(step.value for step in allowed)
            raise SessionStateError(
                f"Operation requires step {names}; current step is {self.state.step.value}"
            )

    def _next_idle_from(self, index: int) -> Optional[SlidePlan]:
        for slide in self.state.slides[index + 1:]:
            if slide.is_idle:
                return slide
        return None

    def _schedule(self, slide_id: int) -> None:
        task = asyncio.get_running_loop().create_task(self._chain_to(slide_id))
        self._pending.add(task)
        task.add_done_callback(self._on_chain_done)

    def _on_chain_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Chained generation raised: %s", error)
            self._chain_errors.append(error)

    async def _chain_to(self, slide_id: int) -> None:
        await self.sleep(self.chain_delay)
        await self.generate_one(slide_id, auto_chain=True)

    def _clamp_slide_count(self, slide_count: int) -> int:
        count = int(slide_count)
        if count < 1:
            raise ValueError("Slide count must be a positive integer")
        if count > self.max_slide_count:
            LOGGER.warning(
                "Slide count %d exceeds the cap of %d; clamping", count, self.max_slide_count
            )
            return self.max_slide_count
        return count

    def _report(
        self,
        operation: str,
        message: str,
        *,
        slide_id: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        LOGGER.error("%s: %s (%s)", operation, message, error)
        notice = FailureNotice(operation=operation, message=message, slide_id=slide_id, error=error)
        self.notices.append(notice)
        if self.notify is not None:
            self.notify(notice)


def build_orchestrator(
    llm_client,
    settings: Optional[GenerationSettings] = None,
    *,
    notify: Optional[Callable[[FailureNotice], None]] = None,
    state: Optional[ProjectState] = None,
) -> GenerationOrchestrator:
    """Wire every component against one LLM client and one settings object."""

    settings = settings or GenerationSettings()
    retry_policy = settings.retry_policy()
    return GenerationOrchestrator(
        deriver=DesignSystemDeriver(
            llm_client, model_name=settings.design_model, retry_policy=retry_policy
        ),
        planner=SlideOutlinePlanner(
            llm_client,
            primary_model=settings.planning_primary_model,
            fallback_model=settings.planning_fallback_model,
            retry_policy=retry_policy,
            max_input_chars=settings.max_input_chars,
            content_language=settings.content_language,
            visual_language=settings.visual_language,
        ),
        synthesizer=SlideImageSynthesizer(
            llm_client,
            model_name=settings.image_model,
            retry_policy=retry_policy,
            aspect_ratio=settings.image_aspect_ratio,
            image_size=settings.image_size,
            content_language=settings.content_language,
        ),
        refiner=PromptRefiner(
            llm_client, model_name=settings.refine_model, language=settings.visual_language
        ),
        chain_delay=settings.chain_delay,
        settle_delay=settings.settle_delay,
        max_slide_count=settings.max_slide_count,
        notify=notify,
        state=state,
    )
