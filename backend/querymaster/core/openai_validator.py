import logging
from typing import Any, Dict

from openai import AsyncOpenAI

from .llm import parse_model_response, request_structured
from .schemas import AnswerKind, Challenge, Feedback

logger = logging.getLogger("querymaster.validator")

# ------------------------------------------------------------
# Response shape
# ------------------------------------------------------------
FEEDBACK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "isCorrect": {"type": "boolean"},
        "explanation": {"type": "string"},
        "correctVersion": {"type": "string"},
        "improvement": {"type": "string"},
    },
    "required": ["isCorrect", "explanation"],
}

DIALECTS = {
    AnswerKind.SQL: "PostgreSQL/Standard SQL",
    AnswerKind.ORM: "Django ORM",
}

# ------------------------------------------------------------
# Validator prompt template
# ------------------------------------------------------------
VALIDATOR_PROMPT_TEMPLATE = (
    "Challenge Question: {question}\n"
    "Models:\n"
    "{models}\n\n"
    "User {label} Answer:\n"
    "{answer}\n\n"
    "Validate this {label} solution.\n"
    "1. Check for syntax correctness for {dialect}.\n"
    "2. Check if it logically solves the question based on the provided models.\n"
    "3. Provide clear explanations.\n"
    "4. If incorrect, provide the corrected version (formatted with newlines).\n"
    "5. If correct, provide a best practice tip or improvement.\n\n"
    "Return as JSON."
)


def build_validation_prompt(challenge: Challenge, answer: str, kind: AnswerKind) -> str:
    return VALIDATOR_PROMPT_TEMPLATE.format(
        question=challenge.question,
        models=challenge.models,
        label=kind.label,
        answer=answer,
        dialect=DIALECTS[kind],
    )


# ------------------------------------------------------------
# Main validator
# ------------------------------------------------------------
async def validate_answer(
    client: AsyncOpenAI,
    challenge: Challenge,
    answer: str,
    kind: AnswerKind,
    model_name: str = "gpt-4o-mini",
) -> Feedback:
    """
    Ask the model to grade one answer against a challenge.
    The verdict is the model's; nothing here checks the query itself.
    """
    prompt = build_validation_prompt(challenge, answer, kind)
    raw = await request_structured(client, model_name, prompt, "feedback", FEEDBACK_SCHEMA)
    feedback = parse_model_response(raw, Feedback)

    logger.info(f"Validated {kind.label} answer for challenge={challenge.id}: correct={feedback.is_correct}")
    return feedback
