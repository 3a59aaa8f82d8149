"""OpenAI chat-completion provider."""

from typing import Any, Dict, List

from openai import AsyncOpenAI, OpenAIError

from commitclock.llm.base import BaseLLMProvider, ChatResult, Message


class OpenAIProviderError(Exception):
    """Raised when an OpenAI API call fails."""


class OpenAIProvider(BaseLLMProvider):
    """Chat completions through the OpenAI API."""

    # USD per 1M tokens
    PRICING = {
        "gpt-4o": {"input": 2.50, "output": 10.00},
        "gpt-4o-mini": {"input": 0.15, "output": 0.60},
        "gpt-4.1": {"input": 2.00, "output": 8.00},
        "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    }
    _FALLBACK_PRICING = "gpt-4o"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", **kwargs: Any) -> None:
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Chat model used for every request
        """
        super().__init__(api_key, model, **kwargs)
        self.client = AsyncOpenAI(api_key=api_key)

    async def _chat(
        self,
        messages: List[Message],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> ChatResult:
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            raise OpenAIProviderError(f"OpenAI API error: {e}") from e

        usage = response.usage
        return ChatResult(
            content=response.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )

    def estimate_cost(self, input_tokens: int, output_tokens: int = 0) -> float:
        """Estimate API call cost for the configured model.

        Unknown models are priced like gpt-4o.
        """
        pricing = self.PRICING.get(self.model, self.PRICING[self._FALLBACK_PRICING])
        return (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
