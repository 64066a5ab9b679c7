"""Token counting used for context budgets."""

import math
from abc import ABC, abstractmethod


class TokenEstimatorInterface(ABC):
    """Estimates how many model tokens a text will cost."""

    @abstractmethod
    def estimate(self, text: str) -> int:
        pass

    @abstractmethod
    def truncate(self, text: str, max_tokens: int) -> str:
        """Return the longest prefix of text whose estimate is within max_tokens."""
        pass


class CharTokenEstimator(TokenEstimatorInterface):
    """Approximates tokens as ``ceil(len(text) / chars_per_token)``.

    This is a heuristic, not a tokenizer: Arabic text usually costs more
    tokens per character than English. Swap in a real tokenizer behind
    TokenEstimatorInterface where exact counts matter.
    """

    def __init__(self, chars_per_token: int = 4):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive.")
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token)

    def truncate(self, text: str, max_tokens: int) -> str:
        return text[:max(max_tokens, 0) * self.chars_per_token]
