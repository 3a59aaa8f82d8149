"""Base class for chat-completion providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

Message = Dict[str, str]


@dataclass
class ChatResult:
    """Text and token usage of one chat completion."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0


class BaseLLMProvider(ABC):
    """Chat provider that assembles messages and tracks spend.

    Subclasses implement the single API call in ``_chat`` and the pricing
    in ``estimate_cost``.
    """

    def __init__(self, api_key: str, model: str, **kwargs: Any) -> None:
        self.api_key = api_key
        self.model = model
        self.config = kwargs
        self.total_cost = 0.0
        self.total_tokens = {"input": 0, "output": 0}

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 500,
        temperature: float = 0.3,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """Send one user prompt, optionally preceded by a system instruction.

        Args:
            prompt: User message
            max_tokens: Maximum tokens in the reply
            temperature: Sampling temperature
            system: Optional system instruction
            json_mode: Ask the model for a single JSON object

        Returns:
            Reply text ("" when the model returned no content)
        """
        messages: List[Message] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        result = await self._chat(messages, max_tokens, temperature, json_mode)

        self.total_tokens["input"] += result.input_tokens
        self.total_tokens["output"] += result.output_tokens
        self.total_cost += self.estimate_cost(result.input_tokens, result.output_tokens)
        return result.content

    @abstractmethod
    async def _chat(
        self,
        messages: List[Message],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> ChatResult:
        """Run one chat completion against the provider API."""

    @abstractmethod
    def estimate_cost(self, input_tokens: int, output_tokens: int = 0) -> float:
        """Estimate the USD cost of a call with the given token counts."""

    def get_usage_stats(self) -> dict:
        return {
            "total_tokens": dict(self.total_tokens),
            "total_cost": self.total_cost,
            "model": self.model,
        }

    def reset_usage_stats(self) -> None:
        self.total_cost = 0.0
        self.total_tokens = {"input": 0, "output": 0}
