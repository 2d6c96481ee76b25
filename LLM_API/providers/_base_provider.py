import os
from typing import Optional

from dotenv import load_dotenv

from ..base import CallModel
from ..exceptions import (
    LLMAPIError,
    LLMAuthenticationError,
    LLMRateLimitError,
)


class BaseProvider(CallModel):
    """Base class with common provider functionality"""

    def _get_api_key(self, env_var_name: str) -> str:
        """Get API key from instance variable or environment (.env included)"""
        load_dotenv()
        api_key = self.api_key or os.getenv(env_var_name)

        if not api_key:
            raise LLMAuthenticationError(
                message=f"API key required. Set {env_var_name} or pass api_key parameter",
                provider=self.__class__.__name__,
                error_type="missing_api_key"
            )

        return api_key

    def _validate_request(self, request):
        """Common request validation"""
        if not request.prompt:
            raise ValueError("Request must have a prompt")

        limit = self.provider_config.max_tokens_limit
        if request.max_tokens and limit and request.max_tokens > limit:
            raise ValueError(f"max_tokens exceeds limit: {limit}")

    def _wrap_error(self, error: Exception, status: Optional[int] = None) -> LLMAPIError:
        """Map a provider exception onto the LLMAPIError family"""
        provider = self.get_provider_name()
        if status in (401, 403):
            error_cls, error_type = LLMAuthenticationError, "authentication"
        elif status == 429:
            error_cls, error_type = LLMRateLimitError, "rate_limit"
        else:
            error_cls, error_type = LLMAPIError, "api_error"
        return error_cls(
            message=str(error),
            provider=provider,
            error_type=error_type,
            original_error=error
        )
