"""Tests for the LLM content extractor, with the endpoint replaced by httpx.MockTransport."""
import json

import httpx
import pytest

from skillsmatrix.models.schemas import DifficultyLevelSchema, ExtractedStep
from skillsmatrix.services.content_extractor import (
    ContentExtractor,
    MalformedExtractionResponse,
    QuestionContext,
)

STEP_PAYLOAD = {
    "skillName": "Hand Washing",
    "steps": [
        {
            "stepNumber": 1,
            "title": "Wet hands",
            "description": "Wet hands with clean running water.",
            "keyPoints": ["Warm water"],
            "isCritical": False,
            "timeEstimate": 10,
        },
        {
            "stepNumber": 2,
            "title": "Apply soap",
            "description": None,
            "keyPoints": None,
            "isCritical": None,
            "timeEstimate": "45 seconds",
        },
    ],
}


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _extractor(handler) -> ContentExtractor:
    return ContentExtractor(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Step extraction
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_extract_steps_parses_completion():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["headers"] = request.headers
        return httpx.Response(200, json=_completion(json.dumps(STEP_PAYLOAD)))

    result = await _extractor(handler).extract_steps("Wash your hands " * 20, "Handwashing.docx")

    assert result.skill_name == "Hand Washing"
    assert [s.title for s in result.steps] == ["Wet hands", "Apply soap"]
    second = result.steps[1]
    assert second.description == ""
    assert second.key_points == []
    assert second.is_critical is False
    assert second.time_estimate == 45

    body = seen["body"]
    assert body["response_format"] == {"type": "json_object"}
    assert body["messages"][0]["role"] == "user"
    assert "Handwashing.docx" in body["messages"][0]["content"]
    assert body["max_tokens"] == 3000
    assert body["temperature"] == pytest.approx(0.1)
    # No key configured in the test environment
    assert "authorization" not in seen["headers"]


@pytest.mark.asyncio
async def test_bearer_token_sent_when_configured():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=_completion(json.dumps(STEP_PAYLOAD)))

    extractor = _extractor(handler)
    extractor.api_key = "secret-key"
    await extractor.extract_steps("text", "doc.docx")
    assert seen["auth"] == "Bearer secret-key"


@pytest.mark.asyncio
async def test_prompt_truncates_document_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["prompt"] = json.loads(request.content)["messages"][0]["content"]
        return httpx.Response(200, json=_completion(json.dumps(STEP_PAYLOAD)))

    await _extractor(handler).extract_steps("A" * 2990 + "B" * 10 + "Z" * 500, "doc.docx")
    assert "A" * 2990 + "B" * 10 in seen["prompt"]
    assert "Z" not in seen["prompt"]


@pytest.mark.asyncio
async def test_fenced_json_with_trailing_comma_is_accepted():
    content = "```json\n" + json.dumps(STEP_PAYLOAD)[:-1] + ",}\n```"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(content))

    result = await _extractor(handler).extract_steps("text", "doc.docx")
    assert len(result.steps) == 2


@pytest.mark.asyncio
async def test_json_wrapped_in_prose_is_accepted():
    content = "Here is the procedure:\n" + json.dumps(STEP_PAYLOAD) + "\nHope this helps."

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(content))

    result = await _extractor(handler).extract_steps("text", "doc.docx")
    assert result.skill_name == "Hand Washing"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 401, 429, 500, 503])
async def test_non_success_status_returns_none(status_code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text="upstream error")

    assert await _extractor(handler).extract_steps("text", "doc.docx") is None


@pytest.mark.asyncio
async def test_connection_error_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await _extractor(handler).extract_steps("text", "doc.docx") is None


@pytest.mark.asyncio
async def test_timeout_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    assert await _extractor(handler).extract_steps("text", "doc.docx") is None


@pytest.mark.asyncio
async def test_content_that_is_not_json_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("Sorry, I cannot help with that."))

    with pytest.raises(MalformedExtractionResponse) as excinfo:
        await _extractor(handler).extract_steps("text", "doc.docx")
    assert "Sorry" in excinfo.value.raw


@pytest.mark.asyncio
async def test_body_without_choices_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "no choices"})

    with pytest.raises(MalformedExtractionResponse):
        await _extractor(handler).extract_steps("text", "doc.docx")


@pytest.mark.asyncio
async def test_empty_content_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("   "))

    with pytest.raises(MalformedExtractionResponse):
        await _extractor(handler).extract_steps("text", "doc.docx")


@pytest.mark.asyncio
async def test_json_array_instead_of_object_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(json.dumps(STEP_PAYLOAD["steps"])))

    with pytest.raises(MalformedExtractionResponse):
        await _extractor(handler).extract_steps("text", "doc.docx")


@pytest.mark.asyncio
async def test_step_without_title_raises():
    payload = {"skillName": "X", "steps": [{"stepNumber": 1, "description": "no title"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(json.dumps(payload)))

    with pytest.raises(MalformedExtractionResponse):
        await _extractor(handler).extract_steps("text", "doc.docx")


def test_malformed_response_is_a_value_error_with_truncated_raw():
    exc = MalformedExtractionResponse("bad", raw="x" * 2000)
    assert isinstance(exc, ValueError)
    assert len(exc.raw) == 500


# ---------------------------------------------------------------------------
# Question generation
# ---------------------------------------------------------------------------

def _context() -> QuestionContext:
    return QuestionContext(
        skill_name="Needle Thoracentesis",
        category="Advanced Life Support (ALS)",
        difficulty="ADVANCED",
        indications=["Tension pneumothorax"],
        steps=[(1, "Identify landmark", "Second intercostal space, midclavicular line")],
        document_text="Decompress the chest with a large-bore cannula.",
    )


@pytest.mark.asyncio
async def test_generate_questions_drops_invalid_answer_index():
    payload = {
        "questions": [
            {
                "question": "Where is the needle inserted?",
                "options": ["2nd ICS MCL", "5th ICS AAL", "Xiphoid", "Sternum"],
                "correctAnswer": 0,
                "explanation": "Second intercostal space in the midclavicular line.",
                "difficulty": "advanced",
            },
            {
                "question": "Broken question",
                "options": ["A", "B"],
                "correctAnswer": 3,
                "explanation": "Index outside the options.",
                "difficulty": "BEGINNER",
            },
            {
                "question": "Which sign suggests tension pneumothorax?",
                "options": ["Tracheal deviation", "Bradycardia", "Hypertension"],
                "correctAnswer": 0,
                "difficulty": "unheard-of",
            },
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion(json.dumps(payload)))

    result = await _extractor(handler).generate_questions(_context())

    assert [q.question for q in result.questions] == [
        "Where is the needle inserted?",
        "Which sign suggests tension pneumothorax?",
    ]
    assert result.questions[0].difficulty == DifficultyLevelSchema.ADVANCED
    assert result.questions[1].difficulty == DifficultyLevelSchema.INTERMEDIATE


@pytest.mark.asyncio
async def test_generate_questions_request_uses_question_settings():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion(json.dumps({"questions": []})))

    result = await _extractor(handler).generate_questions(_context())
    assert result.questions == []
    assert seen["body"]["max_tokens"] == 4000
    assert seen["body"]["temperature"] == pytest.approx(0.7)


def test_question_prompt_includes_skill_context():
    prompt = ContentExtractor().build_question_prompt(_context())
    assert "SKILL: Needle Thoracentesis" in prompt
    assert "CATEGORY: Advanced Life Support (ALS)" in prompt
    assert "- Tension pneumothorax" in prompt
    assert "1. Identify landmark: Second intercostal space" in prompt
    assert "Generate 3 high-quality" in prompt


def test_extracted_step_accepts_field_names():
    step = ExtractedStep(title="Check pulse", step_number=4, key_points="Carotid")
    assert step.key_points == ["Carotid"]
    assert step.time_estimate == 30
