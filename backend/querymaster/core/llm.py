import json
import logging
from typing import Any, Dict, Type, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

logger = logging.getLogger("querymaster.llm")

ModelT = TypeVar("ModelT", bound=BaseModel)


class ModelResponseError(ValueError):
    """The model answered, but not with JSON of the requested shape."""


# ------------------------------------------------------------
# Structured-output request
# ------------------------------------------------------------
async def request_structured(
    client: AsyncOpenAI,
    model_name: str,
    prompt: str,
    schema_name: str,
    schema: Dict[str, Any],
) -> str:
    """Send one prompt with a JSON-shape constraint and return the raw text."""
    resp = await client.chat.completions.create(
        model=model_name,
        messages=[{"role": "user", "content": prompt}],
        response_format={
            "type": "json_schema",
            "json_schema": {"name": schema_name, "schema": schema},
        },
    )
    return resp.choices[0].message.content or ""


# ------------------------------------------------------------
# Parsing
# ------------------------------------------------------------
def parse_model_response(text: str, model_cls: Type[ModelT]) -> ModelT:
    if not text or not text.strip():
        raise ModelResponseError("Empty response from model")

    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON from model: {e}")
        raise ModelResponseError(f"Invalid JSON from model. Raw output: {text[:500]}") from e

    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        logger.error(f"Model output does not match {model_cls.__name__}: {e}")
        raise ModelResponseError(f"Unexpected {model_cls.__name__} shape from model") from e
