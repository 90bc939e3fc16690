"""Unit tests for LLM service."""

import pytest
from unittest.mock import MagicMock, patch

from config.errors import LLMError, LLMResponseError, ErrorCode


class TestLLMService:
    """Tests for LLMService."""

    def test_initialization(self):
        """Test LLMService initialization."""
        with patch('services.llm_service.ChatOpenAI'):
            from services.llm_service import LLMService

            service = LLMService(
                model="gpt-4-turbo",
                temperature=0.2,
                api_key="test-key",
                max_tokens=512
            )

            assert service.model == "gpt-4-turbo"
            assert service.temperature == 0.2
            assert service.api_key == "test-key"
            assert service.max_tokens == 512

    def test_default_initialization(self, mock_settings):
        """Test LLMService uses settings defaults."""
        from services.llm_service import LLMService

        service = LLMService()

        assert service.model == "gpt-4o"
        assert service.temperature == 0.1
        assert service.api_key == "test-api-key"
        assert service.max_tokens == 2048

    def test_zero_temperature_is_kept(self):
        from services.llm_service import LLMService

        service = LLMService(temperature=0.0, api_key="k")

        assert service.temperature == 0.0

    def test_client_is_lazy(self):
        with patch('services.llm_service.ChatOpenAI') as mock_chat:
            from services.llm_service import LLMService

            service = LLMService(model="gpt-4o-mini", api_key="k", temperature=0.3, max_tokens=100)
            mock_chat.assert_not_called()

            _ = service.client
            _ = service.client

            mock_chat.assert_called_once_with(
                model="gpt-4o-mini",
                temperature=0.3,
                api_key="k",
                max_tokens=100
            )

    @pytest.mark.asyncio
    async def test_send(self, mock_llm_service):
        """Test send returns content and token usage."""
        result = await mock_llm_service.send("Estimate a garage")

        assert result == {"content": "Mock response content", "tokens_used": 100}
        assert mock_llm_service.total_tokens_used == 100

    @pytest.mark.asyncio
    async def test_send_accumulates_tokens(self, mock_llm_service):
        await mock_llm_service.send("one")
        await mock_llm_service.send("two")

        assert mock_llm_service.total_tokens_used == 200

    @pytest.mark.asyncio
    async def test_send_with_system_prompt(self, mock_llm_service):
        from langchain_core.messages import HumanMessage, SystemMessage

        await mock_llm_service.send("What is 2+2?", system_prompt="You are a calculator.")

        messages = mock_llm_service._client.ainvoke.call_args[0][0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert messages[1].content == "What is 2+2?"

    @pytest.mark.asyncio
    async def test_send_without_usage_metadata(self, mock_llm_service):
        mock_llm_service._client.ainvoke.return_value = MagicMock(content="hi", response_metadata={})

        result = await mock_llm_service.send("hello")

        assert result["tokens_used"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message,code", [
        ("Error code: 429 - rate_limit_exceeded", ErrorCode.LLM_RATE_LIMIT),
        ("This model's maximum context length is 8192 tokens", ErrorCode.LLM_CONTEXT_TOO_LONG),
        ("Connection reset by peer", ErrorCode.LLM_ERROR),
    ])
    async def test_send_maps_errors(self, mock_llm_service, message, code):
        mock_llm_service._client.ainvoke.side_effect = Exception(message)

        with pytest.raises(LLMError) as exc_info:
            await mock_llm_service.send("hello")

        assert exc_info.value.code == code
        assert exc_info.value.model == "gpt-4o"
        assert exc_info.value.details["original_error"] == message

    @pytest.mark.asyncio
    async def test_generate_json(self, mock_llm_service):
        """Test generate_json method."""
        mock_llm_service._client.ainvoke.return_value = MagicMock(
            content='{"materialCostMultiplier": 1.1}',
            response_metadata={"token_usage": {"total_tokens": 50}}
        )

        result = await mock_llm_service.generate_json("Analyze the market.")

        assert result["content"] == {"materialCostMultiplier": 1.1}
        assert result["tokens_used"] == 50

    @pytest.mark.asyncio
    async def test_generate_json_handles_markdown(self, mock_llm_service):
        """Test generate_json handles markdown code blocks."""
        mock_llm_service._client.ainvoke.return_value = MagicMock(
            content='```json\n[{"name": "Rebar"}]\n```',
            response_metadata={"token_usage": {"total_tokens": 50}}
        )

        result = await mock_llm_service.generate_json("List materials.")

        assert result["content"][0]["name"] == "Rebar"

    @pytest.mark.asyncio
    async def test_generate_json_invalid_response(self, mock_llm_service):
        """Test generate_json handles invalid JSON."""
        mock_llm_service._client.ainvoke.return_value = MagicMock(
            content='This is not valid JSON',
            response_metadata={"token_usage": {"total_tokens": 50}}
        )

        with pytest.raises(LLMResponseError) as exc_info:
            await mock_llm_service.generate_json("Give me JSON.")

        assert exc_info.value.code == ErrorCode.LLM_INVALID_RESPONSE
