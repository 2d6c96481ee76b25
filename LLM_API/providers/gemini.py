from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..data_classes import (
    BaseRequest, BaseResponse,
    StructuredOutputRequest, StructuredOutputResponse,
    ImageGenerationRequest, ImageGenerationResponse, InlineDataPart,
    ProviderConfig
)
from ..decorators import log_request
from ._base_provider import BaseProvider


class GeminiModel(BaseProvider):
    """Gemini API implementation of CallModel using the async google-genai client"""

    def __init__(self, api_key: Optional[str] = None, model_name: str = "gemini-2.5-flash"):
        super().__init__(api_key=api_key, model_name=model_name)

    def _get_provider_config(self) -> ProviderConfig:
        """Get Gemini provider configuration"""
        return ProviderConfig(
            provider_name="Gemini",
            model_name=self.model_name or "gemini-2.5-flash",
            supports_structured_output=True,
            supports_image_generation=True,
            max_tokens_limit=65536,
        )

    def setup_client(self):
        """Setup Gemini client"""
        self.client = genai.Client(api_key=self._get_api_key('GEMINI_API_KEY'))

    @log_request
    async def generate_content(self, request: BaseRequest) -> BaseResponse:
        """Generate plain text"""
        self._validate_request(request)
        model = request.model_name or self.model_name
        response = await self._call(
            model=model,
            contents=request.prompt,
            config=self._text_config(request),
        )
        return BaseResponse(
            text=getattr(response, 'text', '') or "",
            model_used=model,
            usage=_usage(response),
            raw_response=response
        )

    @log_request
    async def generate_structured_output(self, request: StructuredOutputRequest) -> StructuredOutputResponse:
        """Generate JSON text; parsing is left to the caller"""
        self._validate_request(request)
        model = request.model_name or self.model_name
        options = dict(self._text_options(request), response_mime_type="application/json")
        if request.schema:
            options["response_schema"] = request.schema
        if request.instructions:
            options["system_instruction"] = request.instructions
        response = await self._call(
            model=model,
            contents=request.prompt,
            config=types.GenerateContentConfig(**options),
        )
        return StructuredOutputResponse(
            text=getattr(response, 'text', '') or "",
            parsed_output=getattr(response, 'parsed', None),
            model_used=model,
            usage=_usage(response),
            raw_response=response
        )

    @log_request
    async def generate_image(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        """Render an image with a Gemini image model"""
        self._validate_request(request)
        model = request.model_name or self.model_name
        image_options = {"aspect_ratio": request.aspect_ratio}
        if request.image_size:
            image_options["image_size"] = request.image_size
        image_config = types.ImageConfig(**image_options)
        response = await self._call(
            model=model,
            contents=[types.Part.from_text(text=request.prompt)],
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                image_config=image_config,
            ),
        )
        parts: List[InlineDataPart] = []
        texts: List[str] = []
        for part in _response_parts(response):
            inline = getattr(part, 'inline_data', None)
            if inline is not None and getattr(inline, 'data', None):
                parts.append(InlineDataPart(data=inline.data, mime_type=getattr(inline, 'mime_type', None)))
            elif getattr(part, 'text', None):
                texts.append(part.text)
        return ImageGenerationResponse(
            text="\n".join(texts),
            parts=parts,
            model_used=model,
            usage=_usage(response),
            raw_response=response
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _call(self, **kwargs) -> Any:
        try:
            return await self.client.aio.models.generate_content(**kwargs)
        except genai_errors.APIError as e:
            raise self._wrap_error(e, status=getattr(e, 'code', None)) from e
        except Exception as e:
            raise self._wrap_error(e) from e

    @staticmethod
    def _text_options(request: BaseRequest) -> dict:
        options = {}
        if request.max_tokens is not None:
            options["max_output_tokens"] = request.max_tokens
        if request.temperature is not None:
            options["temperature"] = request.temperature
        return options

    def _text_config(self, request: BaseRequest) -> Optional[types.GenerateContentConfig]:
        options = self._text_options(request)
        return types.GenerateContentConfig(**options) if options else None


def _response_parts(response: Any) -> List[Any]:
    candidates = getattr(response, 'candidates', None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], 'content', None)
    return list(getattr(content, 'parts', None) or [])


def _usage(response: Any) -> Optional[dict]:
    metadata = getattr(response, 'usage_metadata', None)
    if metadata is None:
        return None
    return {
        "input_tokens": getattr(metadata, 'prompt_token_count', None) or 0,
        "output_tokens": getattr(metadata, 'candidates_token_count', None) or 0,
    }
