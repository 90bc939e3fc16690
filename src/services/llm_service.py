"""LLM service for SmartBuild.

Provides the single text-generation call used by the estimation and risk
services, backed by LangChain's ChatOpenAI.
"""

from typing import Dict, Any, Optional
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from config.settings import settings
from config.errors import LLMError, ErrorCode
from services.text_extraction import parse_json_content

logger = structlog.get_logger()


class LLMService:
    """Service for LLM operations using LangChain.

    Wraps ChatOpenAI with token tracking and error mapping. Each service
    gets its own instance so the estimation and analysis models can be
    configured independently.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            max_tokens: Response token cap (default from settings).
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key
        self.max_tokens = max_tokens or settings.llm_max_tokens

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
                max_tokens=self.max_tokens
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used

    async def send(self, prompt: str, system_prompt: Optional[str] = None) -> Dict[str, Any]:
        """Send a prompt and return the raw text response.

        Args:
            prompt: User prompt.
            system_prompt: Optional system instructions.

        Returns:
            Dict with ``content`` (str) and ``tokens_used`` (int).

        Raises:
            LLMError: If the call fails for any reason.
        """
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        try:
            response = await self.client.ainvoke(messages)
        except Exception as e:
            error_msg = str(e)
            lowered = error_msg.lower()
            logger.error("llm_call_failed", model=self.model, error=error_msg)

            if "rate_limit" in lowered or "rate limit" in lowered:
                raise LLMError(
                    code=ErrorCode.LLM_RATE_LIMIT,
                    message="OpenAI rate limit exceeded",
                    model=self.model,
                    details={"original_error": error_msg}
                )
            if "context_length" in lowered or "maximum context" in lowered:
                raise LLMError(
                    code=ErrorCode.LLM_CONTEXT_TOO_LONG,
                    message="Input too long for model context",
                    model=self.model,
                    details={"original_error": error_msg}
                )
            raise LLMError(
                code=ErrorCode.LLM_ERROR,
                message=f"LLM generation failed: {error_msg}",
                model=self.model,
                details={"original_error": error_msg}
            )

        # Track token usage if available
        metadata = getattr(response, "response_metadata", None) or {}
        usage = metadata.get("token_usage") or {}
        tokens_used = usage.get("total_tokens", 0) or 0
        self._total_tokens_used += tokens_used

        content = response.content if isinstance(response.content, str) else str(response.content)

        logger.info(
            "llm_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(content)
        )

        return {
            "content": content,
            "tokens_used": tokens_used
        }

    async def generate_json(self, prompt: str, system_prompt: Optional[str] = None) -> Dict[str, Any]:
        """Send a prompt that expects a JSON answer.

        Returns:
            Dict with parsed ``content`` and ``tokens_used``.

        Raises:
            LLMError: If the call fails.
            LLMResponseError: If the response is not valid JSON.
        """
        json_prompt = f"""{system_prompt or "You are a construction industry expert."}

IMPORTANT: You MUST respond with valid JSON only. No markdown, no explanation, just JSON."""

        result = await self.send(prompt, system_prompt=json_prompt)
        return {
            "content": parse_json_content(result["content"]),
            "tokens_used": result["tokens_used"]
        }
