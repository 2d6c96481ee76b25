"""Data models representing slide plans and the authoring session."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SlideStyle(str, Enum):
    """Text density of the deck."""

    CONCISE = "CONCISE"
    DETAILED = "DETAILED"


class SlideStatus(str, Enum):
    IDLE = "IDLE"
    GENERATING = "GENERATING"
    DONE = "DONE"


class ProjectStep(str, Enum):
    INPUT = "INPUT"
    PLANNING = "PLANNING"
    WORKBENCH = "WORKBENCH"
    EXPORT = "EXPORT"


@dataclass(slots=True)
class GeneratedImage:
    """Binary image returned by the image model."""

    data: bytes
    mime_type: str = "image/png"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mime_type": self.mime_type,
            "data": base64.b64encode(self.data).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedImage":
        return cls(
            data=base64.b64decode(data.get("data", "")),
            mime_type=data.get("mime_type", "image/png"),
        )


@dataclass(slots=True)
class SlidePlan:
    """Editable record backing one slide, with or without a rendered image."""

    id: int
    title: str
    content: str
    visual_description: str
    user_prompt_override: Optional[str] = None
    reference_image: Optional[bytes] = None
    generated_image: Optional[GeneratedImage] = None
    is_generating: bool = False

    @property
    def status(self) -> SlideStatus:
        if self.is_generating:
            return SlideStatus.GENERATING
        if self.generated_image is not None:
            return SlideStatus.DONE
        return SlideStatus.IDLE

    @property
    def is_idle(self) -> bool:
        return self.status is SlideStatus.IDLE

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "visualDescription": self.visual_description,
            "isGenerating": self.is_generating,
        }
        if self.user_prompt_override:
            payload["userPromptOverride"] = self.user_prompt_override
        if self.generated_image is not None:
            payload["generatedImage"] = self.generated_image.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlidePlan":
        image = data.get("generatedImage")
        return cls(
            id=int(data["id"]),
            title=data.get("title", ""),
            content=data.get("content", ""),
            visual_description=data.get("visualDescription", ""),
            user_prompt_override=data.get("userPromptOverride"),
            generated_image=GeneratedImage.from_dict(image) if image else None,
            is_generating=bool(data.get("isGenerating", False)),
        )


@dataclass
class ProjectState:
    """Everything the single authoring session owns."""

    step: ProjectStep = ProjectStep.INPUT
    input_text: str = ""
    target_slide_count: int = 10
    selected_style: SlideStyle = SlideStyle.CONCISE
    custom_style_prompt: str = ""
    design_system: str = ""
    slides: List[SlidePlan] = field(default_factory=list)
    is_processing: bool = False

    def get_slide(self, slide_id: int) -> Optional[SlidePlan]:
        return next((slide for slide in self.slides if slide.id == slide_id), None)

    def index_of(self, slide_id: int) -> int:
        return next(
            (idx for idx, slide in enumerate(self.slides) if slide.id == slide_id), -1
        )

    def next_slide_id(self) -> int:
        return max((slide.id for slide in self.slides), default=0) + 1
