"""Per-session interaction state for the practice page.

The controller owns everything the page renders: the current challenge, one
answer slot per kind, the score and the topic history. Every operation runs
on the event loop; the only suspension points are the two remote calls.

Each outbound call carries a request token. Resetting or editing a slot, or
starting a new challenge fetch, moves the token on, and a response that
arrives for an older token is dropped without touching state.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

from .schemas import (
    AnswerKind,
    AnswerSlotView,
    Challenge,
    Difficulty,
    Feedback,
    InteractionState,
)

logger = logging.getLogger("querymaster.controller")

GENERATION_ERROR = "Failed to load challenge. Please check your API key or connection."


def validation_error(kind: AnswerKind) -> str:
    return f"Validation for {kind.label} failed."


class ChallengeService(Protocol):
    async def generate_challenge(self, difficulty: Difficulty, excluded_topics: Sequence[str]) -> Challenge:
        ...

    async def validate_answer(self, challenge: Challenge, answer: str, kind: AnswerKind) -> Feedback:
        ...


@dataclass
class AnswerSlot:
    answer: str = ""
    feedback: Optional[Feedback] = None
    validating: bool = False
    revealed: bool = False
    awarded_for: int = 0  # challenge number the points were granted for
    token: int = 0

    def reset(self) -> None:
        self.answer = ""
        self.feedback = None
        self.validating = False
        self.revealed = False
        self.token += 1

    def view(self) -> AnswerSlotView:
        return AnswerSlotView(
            answer=self.answer,
            feedback=self.feedback,
            validating=self.validating,
            revealed=self.revealed,
        )


class InteractionController:
    def __init__(self, client: ChallengeService, difficulty: Difficulty = Difficulty.BEGINNER) -> None:
        self.client = client
        self.difficulty = difficulty
        self.challenge: Optional[Challenge] = None
        self.slots: Dict[AnswerKind, AnswerSlot] = {kind: AnswerSlot() for kind in AnswerKind}
        self.loading = False
        self.error: Optional[str] = None
        self.score = 0
        self.topic_history: List[str] = []
        self._fetch_token = 0
        self._challenge_number = 0
        self._recorded_number = 0

    # --------------------------------------------------------
    # Challenge lifecycle
    # --------------------------------------------------------
    async def select_difficulty(self, level: Difficulty) -> bool:
        if level == self.difficulty:
            return False
        logger.info(f"Difficulty {self.difficulty.value} -> {level.value}")
        self.difficulty = level
        await self.fetch_challenge()
        return True

    async def fetch_challenge(
        self,
        level: Optional[Difficulty] = None,
        excluded_topics: Optional[Sequence[str]] = None,
    ) -> None:
        level = level or self.difficulty
        excluded = list(self.topic_history if excluded_topics is None else excluded_topics)

        self._fetch_token += 1
        token = self._fetch_token
        self.loading = True
        self.error = None
        for slot in self.slots.values():
            slot.reset()

        try:
            challenge = await self.client.generate_challenge(level, excluded)
        except Exception:
            if token != self._fetch_token:
                logger.debug(f"Dropping failure of superseded challenge fetch #{token}")
                return
            logger.error("Challenge generation failed", exc_info=True)
            self.loading = False
            self.error = GENERATION_ERROR
            return

        if token != self._fetch_token:
            logger.debug(f"Dropping superseded challenge fetch #{token} (topic={challenge.topic!r})")
            return
        self.challenge = challenge
        self._challenge_number += 1
        self.loading = False

    @property
    def can_advance(self) -> bool:
        return all(slot.feedback is not None for slot in self.slots.values())

    async def advance(self) -> bool:
        if not self.can_advance:
            return False
        # a failed fetch keeps the old challenge; record its topic once
        if self.challenge is not None and self._recorded_number != self._challenge_number:
            self._recorded_number = self._challenge_number
            self.topic_history.append(self.challenge.topic)
        await self.fetch_challenge()
        return True

    # --------------------------------------------------------
    # Answers
    # --------------------------------------------------------
    def edit_answer(self, kind: AnswerKind, text: str) -> None:
        slot = self.slots[kind]
        slot.answer = text
        slot.feedback = None
        slot.revealed = False
        # an outstanding grading request now refers to stale text
        slot.validating = False
        slot.token += 1

    async def validate_answer(self, kind: AnswerKind) -> bool:
        """Grade the buffered answer for `kind`.

        Returns True when a verdict was stored. Nothing is sent when there is
        no challenge, the buffer is empty, a fetch is loading, the kind is
        already in flight, or its stored verdict is already correct.
        """
        slot = self.slots[kind]
        challenge = self.challenge
        if challenge is None or not slot.answer or self.loading:
            return False
        if slot.validating or (slot.feedback is not None and slot.feedback.is_correct):
            return False

        slot.token += 1
        token = slot.token
        points = self.difficulty.points
        number = self._challenge_number
        slot.validating = True

        try:
            feedback = await self.client.validate_answer(challenge, slot.answer, kind)
        except Exception:
            if token != slot.token:
                logger.debug(f"Dropping failure of superseded {kind.label} validation #{token}")
                return False
            logger.error(f"{kind.label} validation failed", exc_info=True)
            slot.validating = False
            self.error = validation_error(kind)
            return False

        if token != slot.token:
            logger.debug(f"Dropping superseded {kind.label} validation #{token}")
            return False

        slot.feedback = feedback
        slot.validating = False
        if feedback.is_correct and slot.awarded_for != number:
            slot.awarded_for = number
            self.score += points
            logger.info(f"{kind.label} correct, +{points} (score={self.score})")
        return True

    def toggle_reveal(self, kind: AnswerKind) -> bool:
        slot = self.slots[kind]
        slot.revealed = not slot.revealed
        return slot.revealed

    # --------------------------------------------------------
    # Rendering
    # --------------------------------------------------------
    def snapshot(self) -> InteractionState:
        return InteractionState(
            difficulty=self.difficulty,
            challenge=self.challenge,
            slots={kind: slot.view() for kind, slot in self.slots.items()},
            loading=self.loading,
            error=self.error,
            score=self.score,
            topic_history=list(self.topic_history),
            can_advance=self.can_advance,
        )
