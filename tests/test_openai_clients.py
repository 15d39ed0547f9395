"""Prompt construction and response parsing for the remote model calls."""

from __future__ import annotations

import json
import os
import unittest
from types import SimpleNamespace
from unittest import mock

from fakes import make_challenge

from querymaster.core import openai_qg, openai_validator
from querymaster.core.client import ChallengeClient
from querymaster.core.controller import GENERATION_ERROR, InteractionController
from querymaster.core.llm import ModelResponseError
from querymaster.core.schemas import AnswerKind, Difficulty

# nothing listens on the discard port, so a request fails at once
UNREACHABLE = "http://127.0.0.1:9/v1"


class FakeCompletions:
    def __init__(self, content: str | None) -> None:
        self.content = content
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content)))


CHALLENGE_JSON = json.dumps(
    {
        "id": "c1",
        "models": "class Author(models.Model):\n    name = models.CharField(max_length=100)\n",
        "tableName": "library_author",
        "question": "How many books has each author written?",
        "difficulty": "intermediate",
        "topic": "Aggregation",
    }
)


class GenerateChallengeTests(unittest.IsolatedAsyncioTestCase):
    async def test_parses_camel_case_response(self) -> None:
        client = fake_openai("  " + CHALLENGE_JSON + "\n")
        challenge = await openai_qg.generate_challenge(client, Difficulty.INTERMEDIATE, [])
        self.assertEqual(challenge.table_name, "library_author")
        self.assertEqual(challenge.difficulty, Difficulty.INTERMEDIATE)
        self.assertIn("\n", challenge.models)

    async def test_prompt_names_level_and_excluded_topics(self) -> None:
        client = fake_openai(CHALLENGE_JSON)
        await openai_qg.generate_challenge(
            client, Difficulty.ADVANCED, ["Filtering", "Joins"], model_name="test-model"
        )
        call = client.chat.completions.calls[0]
        prompt = call["messages"][0]["content"]
        self.assertEqual(call["model"], "test-model")
        self.assertIn("at the Advanced level", prompt)
        self.assertIn("Ensure the topic is different from: Filtering, Joins.", prompt)
        schema = call["response_format"]["json_schema"]["schema"]
        self.assertEqual(schema, openai_qg.CHALLENGE_SCHEMA)
        self.assertIn("tableName", schema["required"])

    async def test_malformed_json_is_not_repaired(self) -> None:
        client = fake_openai('```json\n{"id": "c1"}\n```')
        with self.assertRaises(ModelResponseError):
            await openai_qg.generate_challenge(client, Difficulty.BEGINNER, [])

    async def test_missing_field_is_rejected(self) -> None:
        data = json.loads(CHALLENGE_JSON)
        del data["topic"]
        client = fake_openai(json.dumps(data))
        with self.assertRaises(ModelResponseError):
            await openai_qg.generate_challenge(client, Difficulty.BEGINNER, [])

    async def test_empty_response_is_rejected(self) -> None:
        with self.assertRaises(ModelResponseError):
            await openai_qg.generate_challenge(fake_openai(None), Difficulty.BEGINNER, [])


class ValidateAnswerTests(unittest.IsolatedAsyncioTestCase):
    async def test_sql_prompt_embeds_challenge_and_answer(self) -> None:
        client = fake_openai(json.dumps({"isCorrect": True, "explanation": "Fine.", "improvement": "Alias the count."}))
        challenge = make_challenge("Ordering")
        feedback = await openai_validator.validate_answer(client, challenge, "SELECT * FROM library_book", AnswerKind.SQL)

        prompt = client.chat.completions.calls[0]["messages"][0]["content"]
        self.assertIn(challenge.question, prompt)
        self.assertIn(challenge.models, prompt)
        self.assertIn("User SQL Answer:\nSELECT * FROM library_book", prompt)
        self.assertIn("PostgreSQL/Standard SQL", prompt)
        self.assertTrue(feedback.is_correct)
        self.assertEqual(feedback.improvement, "Alias the count.")
        self.assertIsNone(feedback.correct_version)

    async def test_orm_prompt_targets_django(self) -> None:
        client = fake_openai(
            json.dumps({"isCorrect": False, "explanation": "Wrong field.", "correctVersion": "Book.objects.all()"})
        )
        feedback = await openai_validator.validate_answer(client, make_challenge(), "Book.all()", AnswerKind.ORM)

        prompt = client.chat.completions.calls[0]["messages"][0]["content"]
        self.assertIn("Validate this ORM solution.", prompt)
        self.assertIn("Django ORM", prompt)
        self.assertFalse(feedback.is_correct)
        self.assertEqual(feedback.correct_version, "Book.objects.all()")

    async def test_verdict_is_required(self) -> None:
        client = fake_openai(json.dumps({"explanation": "No verdict"}))
        with self.assertRaises(ModelResponseError):
            await openai_validator.validate_answer(client, make_challenge(), "SELECT 1", AnswerKind.SQL)


class ChallengeClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_sdk_client_is_built_on_first_request(self) -> None:
        fake = fake_openai(CHALLENGE_JSON)
        with mock.patch("querymaster.core.client.AsyncOpenAI", return_value=fake) as factory:
            client = ChallengeClient(api_key="", model="m", base_url="http://localhost:9/v1")
            factory.assert_not_called()
            await client.generate_challenge(Difficulty.BEGINNER, [])
            await client.generate_challenge(Difficulty.BEGINNER, [])
        factory.assert_called_once_with(api_key="", base_url="http://localhost:9/v1", max_retries=0)

    async def test_missing_key_becomes_generation_error(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            client = ChallengeClient(api_key="", model="m", base_url=UNREACHABLE)
            controller = InteractionController(client)
            await controller.fetch_challenge()
        self.assertEqual(controller.error, GENERATION_ERROR)
        self.assertIsNone(controller.challenge)
        self.assertFalse(controller.loading)

    async def test_delegates_with_configured_model(self) -> None:
        fake = fake_openai(CHALLENGE_JSON)
        with mock.patch("querymaster.core.client.AsyncOpenAI", return_value=fake):
            client = ChallengeClient(api_key="sk-test", model="custom-model")
            challenge = await client.generate_challenge(Difficulty.BEGINNER, ["Joins"])
        self.assertEqual(challenge.id, "c1")
        self.assertEqual(fake.chat.completions.calls[0]["model"], "custom-model")


if __name__ == "__main__":
    unittest.main()
