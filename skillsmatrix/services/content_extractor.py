"""
LLM-based extraction of skill steps and quiz questions.

Talks to an OpenAI-compatible chat-completions endpoint (LLM_API_URL) with
JSON response mode.  All prompts are module-level constants so they can be
tuned without touching logic code.

Public API
----------
ContentExtractor.extract_steps(text, filename)   -> StepExtraction | None
ContentExtractor.generate_questions(context)     -> QuestionExtraction | None

``None`` means the endpoint could not be reached or answered with an error
status.  A reply that is not usable JSON raises MalformedExtractionResponse.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from skillsmatrix.config import settings
from skillsmatrix.models.schemas import QuestionExtraction, StepExtraction

logger = logging.getLogger(__name__)


class MalformedExtractionResponse(ValueError):
    """The completion body is not JSON or does not have the expected shape."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw[:500]


# ---------------------------------------------------------------------------
# Question context
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class QuestionContext:
    """Everything the question prompt needs to know about one skill."""

    skill_name: str
    category: str = ""
    difficulty: str = ""
    objectives: List[str] = dataclasses.field(default_factory=list)
    indications: List[str] = dataclasses.field(default_factory=list)
    contraindications: List[str] = dataclasses.field(default_factory=list)
    common_errors: List[str] = dataclasses.field(default_factory=list)
    # (step_number, title, description)
    steps: List[Tuple[int, str, str]] = dataclasses.field(default_factory=list)
    document_text: str = ""


# ---------------------------------------------------------------------------
# Prompt templates: edit these to tune LLM output without touching logic
# ---------------------------------------------------------------------------

_STEP_PROMPT = """\
Extract step-by-step procedure from this paramedic skill document.

Document: "{filename}"
Content: "{content}"

Return JSON:
{{
  "skillName": "Clean skill name",
  "steps": [
    {{
      "stepNumber": 1,
      "title": "Step title",
      "description": "Detailed description",
      "keyPoints": ["Point 1", "Point 2"],
      "isCritical": true,
      "timeEstimate": 30
    }}
  ]
}}

Extract 5-12 logical steps with clear titles and descriptions.\
"""

_QUESTION_PROMPT = """\
You are a medical education expert creating quiz questions for paramedic \
skills training. Generate {count} high-quality, skill-specific multiple-choice \
questions for the following paramedic skill.

SKILL: {skill_name}
CATEGORY: {category}
DIFFICULTY: {difficulty}

OBJECTIVES:
{objectives}

INDICATIONS:
{indications}

CONTRAINDICATIONS:
{contraindications}

COMMON ERRORS:
{common_errors}

DETAILED SKILL STEPS:
{steps}

DOCUMENT CONTENT (Key Procedures and Guidelines):
{document_text}

Requirements:
1. Create questions that test actual knowledge of this specific skill, not generic medical concepts
2. Focus on: indications, contraindications, specific techniques, anatomical landmarks, equipment, complications, critical steps
3. Make options challenging but fair - avoid obviously wrong answers
4. Ensure medical accuracy based on the provided content
5. Vary question types: indications, technique, troubleshooting, complications, equipment

Please respond in JSON format with exactly this structure:
{{
  "questions": [
    {{
      "question": "Specific question about the skill",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,
      "explanation": "Clear medical explanation",
      "difficulty": "BEGINNER"
    }}
  ]
}}

Respond with raw JSON only. Do not include code blocks, markdown, or any other formatting.\
"""


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items if item)


# ---------------------------------------------------------------------------
# Main service class
# ---------------------------------------------------------------------------

class ContentExtractor:
    """
    Structured extraction via a chat-completions endpoint.

    One request per call, no retries: a failed document is skipped by the
    caller and can be picked up by a later run.
    """

    STEP_PROMPT = _STEP_PROMPT
    QUESTION_PROMPT = _QUESTION_PROMPT

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.api_url = settings.LLM_API_URL
        self.api_key = settings.LLM_API_KEY
        self.model = settings.LLM_MODEL
        self.timeout = httpx.Timeout(float(settings.LLM_TIMEOUT), connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Public extraction methods
    # ------------------------------------------------------------------

    async def extract_steps(self, text: str, filename: str) -> Optional[StepExtraction]:
        """
        Extract a skill's ordered procedure steps from its document text.

        Args:
            text:     Plain text of the document.
            filename: Document file name, given to the model as a hint.

        Returns:
            StepExtraction, or None when the endpoint failed.

        Raises:
            MalformedExtractionResponse: reply is not JSON of the expected shape.
        """
        prompt = self.STEP_PROMPT.format(
            filename=filename,
            content=text[: settings.STEP_TEXT_CHAR_BUDGET],
        )
        content = await self._call_llm(
            prompt,
            max_tokens=settings.STEP_MAX_TOKENS,
            temperature=settings.STEP_TEMPERATURE,
        )
        if content is None:
            return None

        payload = self._parse_payload(content)
        try:
            extraction = StepExtraction.model_validate(payload)
        except ValidationError as exc:
            raise MalformedExtractionResponse(
                f"step extraction does not match schema: {exc.error_count()} error(s)",
                raw=content,
            ) from exc

        logger.info(
            "extract_steps: %s -> %d step(s) for %r",
            filename,
            len(extraction.steps),
            extraction.skill_name,
        )
        return extraction

    async def generate_questions(self, context: QuestionContext) -> Optional[QuestionExtraction]:
        """
        Generate multiple-choice questions for one skill.

        Questions whose correct answer index does not point into their
        options are dropped before returning.
        """
        prompt = self.build_question_prompt(context)
        content = await self._call_llm(
            prompt,
            max_tokens=settings.QUESTION_MAX_TOKENS,
            temperature=settings.QUESTION_TEMPERATURE,
        )
        if content is None:
            return None

        payload = self._parse_payload(content)
        try:
            extraction = QuestionExtraction.model_validate(payload)
        except ValidationError as exc:
            raise MalformedExtractionResponse(
                f"question generation does not match schema: {exc.error_count()} error(s)",
                raw=content,
            ) from exc

        valid = []
        for question in extraction.questions:
            if question.has_valid_answer:
                valid.append(question)
            else:
                logger.warning(
                    "generate_questions: dropping question for %r, answer index %d "
                    "outside %d option(s): %s",
                    context.skill_name,
                    question.correct_answer,
                    len(question.options),
                    question.question[:80],
                )
        extraction.questions = valid
        return extraction

    def build_question_prompt(self, context: QuestionContext) -> str:
        steps = "\n".join(
            f"{number}. {title}: {description}" for number, title, description in context.steps
        )
        return self.QUESTION_PROMPT.format(
            count=settings.QUESTIONS_PER_SKILL,
            skill_name=context.skill_name,
            category=context.category or "General",
            difficulty=context.difficulty or "INTERMEDIATE",
            objectives=_bullets(context.objectives),
            indications=_bullets(context.indications),
            contraindications=_bullets(context.contraindications),
            common_errors=_bullets(context.common_errors),
            steps=steps,
            document_text=context.document_text[: settings.QUESTION_TEXT_CHAR_BUDGET],
        )

    # ------------------------------------------------------------------
    # Core LLM caller
    # ------------------------------------------------------------------

    async def _call_llm(self, prompt: str, max_tokens: int, temperature: float) -> Optional[str]:
        """
        POST a single-message chat completion and return the message content.

        Returns None on timeout, connection failure or a non-2xx response.
        A 2xx body without ``choices[0].message.content`` raises
        MalformedExtractionResponse.
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    headers=headers,
                    json={
                        "model": self.model,
                        "messages": [{"role": "user", "content": prompt}],
                        "response_format": {"type": "json_object"},
                        "max_tokens": max_tokens,
                        "temperature": temperature,
                    },
                )
        except httpx.TimeoutException:
            logger.error("_call_llm: request timed out after %.0f s", settings.LLM_TIMEOUT)
            return None
        except httpx.HTTPError as exc:
            logger.error("_call_llm: connection error: %s", exc)
            return None

        if not resp.is_success:
            logger.error(
                "_call_llm: endpoint returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            return None

        try:
            body: Dict[str, Any] = resp.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise MalformedExtractionResponse(
                f"completion body has no message content: {exc!r}", raw=resp.text
            ) from exc

        if not isinstance(content, str) or not content.strip():
            raise MalformedExtractionResponse("completion message content is empty", raw=resp.text)
        return content

    # ------------------------------------------------------------------
    # Robust JSON parsing
    # ------------------------------------------------------------------

    def _parse_payload(self, content: str) -> Dict[str, Any]:
        ok, value = self._parse_json_robust(content)
        if not ok:
            raise MalformedExtractionResponse("completion content is not valid JSON", raw=content)
        if not isinstance(value, dict):
            raise MalformedExtractionResponse(
                f"expected a JSON object, got {type(value).__name__}", raw=content
            )
        return value

    def _parse_json_robust(self, response: str) -> Tuple[bool, Any]:
        """
        Try multiple strategies to parse JSON from potentially messy LLM output.

        Handles:
        - Markdown code fences (```json … ```, ``` … ```)
        - Trailing commas before ] or }
        - Python-style True / False / None
        - Surrounding prose: finds the first balanced {...} block

        Returns ``(success, parsed_value)``.
        """
        if not response:
            return False, None

        text = response.strip()

        # Strategy 1: direct parse
        ok, val = self._try_json(text)
        if ok:
            return True, val

        # Strategy 2: strip markdown code fences
        stripped = self._strip_code_fences(text)
        if stripped != text:
            ok, val = self._try_json(stripped)
            if ok:
                return True, val
            text = stripped

        # Strategy 3: fix common JSON mangling
        fixed = self._fix_json_issues(text)
        ok, val = self._try_json(fixed)
        if ok:
            return True, val

        # Strategy 4: extract the object from surrounding prose
        fragment = self._extract_json_structure(text, "{", "}")
        if fragment:
            ok, val = self._try_json(fragment)
            if ok:
                return True, val
            ok, val = self._try_json(self._fix_json_issues(fragment))
            if ok:
                return True, val

        logger.warning("_parse_json_robust: all strategies failed. Preview: %s", response[:400])
        return False, None

    @staticmethod
    def _try_json(text: str) -> Tuple[bool, Any]:
        try:
            return True, json.loads(text)
        except (json.JSONDecodeError, ValueError):
            return False, None

    @staticmethod
    def _strip_code_fences(text: str) -> str:
        """Remove ```json / ``` delimiters that LLMs often wrap output in."""
        text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
        text = re.sub(r"\n?```\s*$", "", text)
        return text.strip()

    @staticmethod
    def _fix_json_issues(text: str) -> str:
        """Repair the most common JSON mangling patterns from LLMs."""
        text = re.sub(r",(\s*[}\]])", r"\1", text)
        text = re.sub(r"\bTrue\b", "true", text)
        text = re.sub(r"\bFalse\b", "false", text)
        text = re.sub(r"\bNone\b", "null", text)
        return text.strip()

    @staticmethod
    def _extract_json_structure(text: str, open_b: str, close_b: str) -> str:
        """
        Find the first complete balanced open_b … close_b structure in *text*.
        Returns the matched fragment, or empty string if not found.
        """
        start = text.find(open_b)
        if start == -1:
            return ""

        depth = 0
        in_string = False
        escape_next = False

        for i, ch in enumerate(text[start:], start=start):
            if escape_next:
                escape_next = False
                continue
            if ch == "\\" and in_string:
                escape_next = True
                continue
            if ch == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if ch == open_b:
                depth += 1
            elif ch == close_b:
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        return ""
