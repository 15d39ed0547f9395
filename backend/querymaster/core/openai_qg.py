# backend/querymaster/core/openai_qg.py

import logging
from typing import Any, Dict, Sequence

from openai import AsyncOpenAI

from .llm import parse_model_response, request_structured
from .schemas import Challenge, Difficulty

logger = logging.getLogger("querymaster.qg")

# ------------------------------------------------------------
# Response shape
# ------------------------------------------------------------
CHALLENGE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "models": {"type": "string", "description": "Formatted multi-line Django model code"},
        "tableName": {"type": "string"},
        "question": {"type": "string"},
        "difficulty": {"type": "string", "enum": [d.value for d in Difficulty]},
        "topic": {"type": "string"},
    },
    "required": ["id", "models", "tableName", "question", "difficulty", "topic"],
}

# ------------------------------------------------------------
# Prompt template
# ------------------------------------------------------------
QG_PROMPT_TEMPLATE = (
    "Act as a Django and SQL expert educator.\n"
    "Generate a new database challenge for a user at the {difficulty} level.\n\n"
    "Rules:\n"
    "1. Provide a realistic Django model definition (Python code).\n"
    "   - For BEGINNER: Use 1 simple model.\n"
    "   - For INTERMEDIATE/ADVANCED: MUST use 2 or 3 related models (ForeignKey, ManyToMany) "
    "to test JOINs and relationships.\n"
    "2. The models string MUST include actual newlines (\\n) for proper code formatting.\n"
    "3. Define a practical question that requires writing a query.\n"
    "4. The question should focus on {difficulty} concepts:\n"
    "   - Beginner: Basic filtering (filter, exclude), ordering (order_by), and simple field selection.\n"
    "   - Intermediate: Relationships (select_related, prefetch_related), Aggregations (Count, Sum, Avg), "
    "and Annotations.\n"
    "   - Advanced: Complex subqueries, F expressions, Q objects, Window functions, or raw SQL "
    "equivalent for optimization.\n"
    "5. Ensure the topic is different from: {previous_topics}.\n\n"
    "Output the result in JSON format."
)


def build_challenge_prompt(difficulty: Difficulty, excluded_topics: Sequence[str]) -> str:
    return QG_PROMPT_TEMPLATE.format(
        difficulty=difficulty.value,
        previous_topics=", ".join(excluded_topics),
    )


# ------------------------------------------------------------
# Main generator
# ------------------------------------------------------------
async def generate_challenge(
    client: AsyncOpenAI,
    difficulty: Difficulty,
    excluded_topics: Sequence[str] = (),
    model_name: str = "gpt-4o-mini",
) -> Challenge:
    prompt = build_challenge_prompt(difficulty, excluded_topics)
    logger.debug(f"Requesting {difficulty.value} challenge, excluding {len(excluded_topics)} topics")

    raw = await request_structured(client, model_name, prompt, "challenge", CHALLENGE_SCHEMA)
    challenge = parse_model_response(raw, Challenge)

    logger.info(f"Generated challenge id={challenge.id} topic={challenge.topic!r}")
    return challenge
