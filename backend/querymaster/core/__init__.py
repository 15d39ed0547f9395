# backend/querymaster/core/__init__.py
"""
Core package for the QueryMaster practice app.
Exposes the value types and the per-session controller.
"""

from .controller import InteractionController
from .schemas import (
    AnswerKind,
    Challenge,
    Difficulty,
    Feedback,
    InteractionState,
)

__all__ = [
    "AnswerKind",
    "Challenge",
    "Difficulty",
    "Feedback",
    "InteractionController",
    "InteractionState",
]
