import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI

from . import openai_qg, openai_validator
from .config import Settings
from .schemas import AnswerKind, Challenge, Difficulty, Feedback

logger = logging.getLogger("querymaster")


class ChallengeClient:
    """Generation and grading against one OpenAI-compatible endpoint.

    The credential is handed in explicitly; nothing here reads the
    environment. The SDK client is built on first use, so a missing key
    surfaces as a failed request rather than at startup. Tests substitute
    any object with the same two coroutines.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", base_url: Optional[str] = None) -> None:
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChallengeClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
        )

    def configure_openai(self) -> AsyncOpenAI:
        """Create or reuse the AsyncOpenAI client (no SDK-level retries)."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, max_retries=0)
            logger.info(f"OpenAI async client configured (model={self.model}).")
        return self._client

    async def generate_challenge(self, difficulty: Difficulty, excluded_topics: Sequence[str]) -> Challenge:
        return await openai_qg.generate_challenge(
            self.configure_openai(), difficulty, excluded_topics, model_name=self.model
        )

    async def validate_answer(self, challenge: Challenge, answer: str, kind: AnswerKind) -> Feedback:
        return await openai_validator.validate_answer(
            self.configure_openai(), challenge, answer, kind, model_name=self.model
        )
