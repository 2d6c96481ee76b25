"""
LLM API Package - Uniform async interface to generative backends
"""

from .base import CallModel
from .data_classes import (
    BaseRequest, BaseResponse,
    StructuredOutputRequest, StructuredOutputResponse,
    ImageGenerationRequest, ImageGenerationResponse, InlineDataPart,
    ProviderConfig
)
from .decorators import RetryPolicy, with_retry, log_request
from .exceptions import (
    LLMError, LLMAPIError,
    LLMRateLimitError, LLMAuthenticationError, LLMTimeoutError
)
# Provider imports are optional because some dependencies may not be installed
try:  # pragma: no cover - optional dependency
    from .providers.gemini import GeminiModel
except ModuleNotFoundError:  # pragma: no cover - dependency not available
    GeminiModel = None  # type: ignore

__version__ = "1.1.0"
__all__ = [
    # Base
    'CallModel',
    # Data Classes
    'BaseRequest', 'BaseResponse',
    'StructuredOutputRequest', 'StructuredOutputResponse',
    'ImageGenerationRequest', 'ImageGenerationResponse', 'InlineDataPart',
    'ProviderConfig',
    # Retry
    'RetryPolicy', 'with_retry', 'log_request',
    # Exceptions
    'LLMError', 'LLMAPIError',
    'LLMRateLimitError', 'LLMAuthenticationError', 'LLMTimeoutError',
    # Providers (optional)
    'GeminiModel'
]
