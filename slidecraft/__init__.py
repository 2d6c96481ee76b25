"""High-level interfaces for text-to-slide-image generation workflows."""

from .config import GenerationSettings
from .exceptions import (
    MalformedOutputError,
    NoImageReturnedError,
    PlanningError,
    SessionStateError,
    SlideCraftError,
)
from .pptx_renderer import SlideDeckRenderer
from .orchestrator import FailureNotice, GenerationOrchestrator, build_orchestrator
from .slide_generation import (
    DesignSystemDeriver,
    PlanningTier,
    PromptRefiner,
    SlideImageSynthesizer,
    SlideOutlinePlanner,
)
from .slide_models import (
    GeneratedImage,
    ProjectState,
    ProjectStep,
    SlidePlan,
    SlideStatus,
    SlideStyle,
)

__all__ = [
    "GenerationSettings",
    "SlideCraftError",
    "MalformedOutputError",
    "NoImageReturnedError",
    "PlanningError",
    "SessionStateError",
    "FailureNotice",
    "GenerationOrchestrator",
    "build_orchestrator",
    "DesignSystemDeriver",
    "PlanningTier",
    "PromptRefiner",
    "SlideImageSynthesizer",
    "SlideOutlinePlanner",
    "SlideDeckRenderer",
    "GeneratedImage",
    "ProjectState",
    "ProjectStep",
    "SlidePlan",
    "SlideStatus",
    "SlideStyle",
]
