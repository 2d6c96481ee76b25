from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


# ========== Base Classes ==========

@dataclass
class BaseRequest:
    """Base class for every text request"""
    prompt: str = ""
    model_name: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict (API payload)"""
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class BaseResponse:
    """Base class for every text response"""
    text: str = ""
    model_used: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    raw_response: Optional[Any] = None


# ========== Structured Output ==========

@dataclass
class StructuredOutputRequest(BaseRequest):
    """Request for JSON output, optionally constrained by a response schema"""
    schema: Dict[str, Any] = field(default_factory=dict)
    schema_name: str = "response"
    instructions: Optional[str] = None


@dataclass
class StructuredOutputResponse(BaseResponse):
    """Structured output response; ``text`` holds the raw JSON payload"""
    parsed_output: Optional[Any] = None


# ========== Image Generation ==========

@dataclass
class ImageGenerationRequest(BaseRequest):
    """Request for an image-capable model"""
    aspect_ratio: str = "16:9"
    image_size: Optional[str] = "2K"


@dataclass
class InlineDataPart:
    """One inline binary part of a multimodal response"""
    data: bytes = b""
    mime_type: Optional[str] = None

    @property
    def is_image(self) -> bool:
        """Parts without a mime type are treated as images"""
        return self.mime_type is None or self.mime_type.startswith("image/")


@dataclass
class ImageGenerationResponse(BaseResponse):
    """Image response: zero or more inline parts plus any text the model added"""
    parts: List[InlineDataPart] = field(default_factory=list)

    def first_image(self) -> Optional[InlineDataPart]:
        """Return the first inline image part, if any"""
        return next((part for part in self.parts if part.is_image and part.data), None)


# ========== Provider-Specific Metadata ==========

@dataclass
class ProviderConfig:
    """Provider specific settings"""
    provider_name: str = ""
    model_name: str = ""
    supports_structured_output: bool = True
    supports_image_generation: bool = True

    max_tokens_limit: Optional[int] = None


# ========== Utility Functions ==========

def create_structured_output_request(
    prompt: str,
    schema: Dict[str, Any],
    schema_name: str = "response",
    **kwargs
) -> StructuredOutputRequest:
    """Convenience constructor for structured output requests"""
    return StructuredOutputRequest(
        prompt=prompt,
        schema=schema,
        schema_name=schema_name,
        **kwargs
    )


def create_image_request(
    prompt: str,
    model_name: Optional[str] = None,
    aspect_ratio: str = "16:9",
    image_size: Optional[str] = "2K",
    **kwargs
) -> ImageGenerationRequest:
    """Convenience constructor for image generation requests"""
    return ImageGenerationRequest(
        prompt=prompt,
        model_name=model_name,
        aspect_ratio=aspect_ratio,
        image_size=image_size,
        **kwargs
    )
