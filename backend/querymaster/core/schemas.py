from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------
class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @property
    def points(self) -> int:
        return POINTS_BY_DIFFICULTY[self]


class AnswerKind(str, Enum):
    SQL = "sql"
    ORM = "orm"

    @property
    def label(self) -> str:
        return self.value.upper()


POINTS_BY_DIFFICULTY: Dict[Difficulty, int] = {
    Difficulty.BEGINNER: 5,
    Difficulty.INTERMEDIATE: 10,
    Difficulty.ADVANCED: 20,
}


# ------------------------------------------------------------
# Model-produced values
# ------------------------------------------------------------
class Challenge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    models: str                     # Django model definitions, multi-line
    table_name: str = Field(alias="tableName")
    question: str
    difficulty: Difficulty
    topic: str

    @field_validator("difficulty", mode="before")
    @classmethod
    def _match_difficulty(cls, value):
        if isinstance(value, str):
            for level in Difficulty:
                if level.value.lower() == value.strip().lower():
                    return level
        return value


class Feedback(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_correct: bool = Field(alias="isCorrect")
    explanation: str
    correct_version: Optional[str] = Field(default=None, alias="correctVersion")
    improvement: Optional[str] = None


# ------------------------------------------------------------
# Interaction state (rendered by the page)
# ------------------------------------------------------------
class AnswerSlotView(BaseModel):
    answer: str = ""
    feedback: Optional[Feedback] = None
    validating: bool = False
    revealed: bool = False


class InteractionState(BaseModel):
    difficulty: Difficulty
    challenge: Optional[Challenge] = None
    slots: Dict[AnswerKind, AnswerSlotView]
    loading: bool
    error: Optional[str] = None
    score: int
    topic_history: List[str]
    can_advance: bool


# ------------------------------------------------------------
# Request models
# ------------------------------------------------------------
class DifficultyRequest(BaseModel):
    difficulty: Difficulty


class AnswerRequest(BaseModel):
    text: str


# ------------------------------------------------------------
# Response models
# ------------------------------------------------------------
class StateResponse(BaseModel):
    status: str
    session_id: str
    state: InteractionState


class EndSessionResponse(BaseModel):
    status: str
    message: str
    score: int
    topics_completed: int
