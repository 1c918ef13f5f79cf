from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from ..config import settings
from ..errors import NaturalLanguageQueryError
from ..schemas import QueryParams

logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None

EXTRACTION_PROMPT = (
    "You extract structured parameters from natural language questions about voter contact data. "
    "Return only a JSON object, no markdown, no code fences, no explanation. "
    "Allowed keys: tactic, person, date, endDate, team, resultType, searchQuery. "
    'If the question mentions "phone" or calls, set tactic to "Phone". '
    'If it mentions "sms" or texts, set tactic to "SMS". '
    'If it mentions "canvas" or doors, set tactic to "Canvas". '
    "Dates are YYYY-MM-DD. resultType is one of attempts, contacts, support, oppose, "
    "undecided, notHome, refusal, badData. Be exact with person names. "
    'Example: for "How many Phone attempts did Jane Doe make on 2025-01-02?" answer '
    '{"tactic":"Phone","person":"Jane Doe","date":"2025-01-02","resultType":"attempts"}'
)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_ISO_DATE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")

_TACTIC_KEYWORDS = [
    (re.compile(r"\b(sms|texts?|message|messaging)\b"), "SMS"),
    (re.compile(r"\b(phone|calls?|calling|called)\b"), "Phone"),
    (re.compile(r"\b(canvas|canvass|canvassing|doors?|knocking)\b"), "Canvas"),
]

# first match wins; "how many contacts did X make" asks for attempts
_RESULT_KEYWORDS = [
    (re.compile(r"\battempts?\b|\bmade\b|\bmake\b"), "attempts"),
    (re.compile(r"\bcontacts?\b|\breached\b"), "contacts"),
    (re.compile(r"\bnot home\b|\babsent\b"), "notHome"),
    (re.compile(r"\brefus(al|als|ed)\b"), "refusal"),
    (re.compile(r"\bbad data\b|\bwrong number\b"), "badData"),
    (re.compile(r"\bsupport(s|ed|ers?)?\b"), "support"),
    (re.compile(r"\boppos(e|ed|ition)\b"), "oppose"),
    (re.compile(r"\bundecided\b"), "undecided"),
]

_TEAM = re.compile(r"\bteam\s+([a-z]+)\b")


def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not set in .env")
        _client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout_s)
    return _client


def parse_params_reply(text: str) -> QueryParams:
    """
    Best-effort parse of the model's reply into QueryParams.

    Strips code fences and surrounding prose, then reads the first {...} block.
    """
    if not text or not text.strip():
        raise NaturalLanguageQueryError("Empty response from language model")

    cleaned = _FENCE.sub("", text.strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise NaturalLanguageQueryError("Language model response contained no JSON object")

    try:
        data: Any = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise NaturalLanguageQueryError(f"Could not parse language model response: {e}") from e

    if not isinstance(data, dict):
        raise NaturalLanguageQueryError("Language model response was not a JSON object")

    # Models sometimes answer with null / numbers; keep only usable scalar values.
    cleaned_data: Dict[str, Any] = {k: str(v) for k, v in data.items() if v is not None and v != ""}
    try:
        return QueryParams.model_validate(cleaned_data)
    except ValidationError as e:
        raise NaturalLanguageQueryError(f"Language model response had invalid fields: {e}") from e


async def extract_query_params(text: str, client: Optional[AsyncOpenAI] = None) -> QueryParams:
    """
    Ask the LLM to turn a question into a QueryParams filter.
    Raises NaturalLanguageQueryError on any API or parsing failure.
    """
    prompt = (text or "").strip()
    if not prompt:
        raise NaturalLanguageQueryError("No question provided")

    try:
        c = client or get_client()
        resp = await c.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": EXTRACTION_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.1,
            max_tokens=500,
        )
    except (OpenAIError, RuntimeError) as e:
        logger.error("OpenAI request failed: %s", e)
        raise NaturalLanguageQueryError(f"Error calling OpenAI API: {e}") from e

    content = resp.choices[0].message.content if resp.choices else None
    params = parse_params_reply(content or "")
    logger.info("extracted query params: %s", params.model_dump(exclude_none=True))
    return params


def keyword_query_params(text: str) -> QueryParams:
    """
    Deterministic keyword extraction used when no LLM is configured.
    Picks up tactic, the first ISO date, "team <name>" and a result type
    (attempts when nothing else matches).
    """
    q = (text or "").lower()
    out: Dict[str, str] = {}

    for pattern, tactic in _TACTIC_KEYWORDS:
        if pattern.search(q):
            out["tactic"] = tactic
            break

    m = _ISO_DATE.search(q)
    if m:
        out["date"] = m.group(0)

    t = _TEAM.search(q)
    if t:
        out["team"] = f"Team {t.group(1).capitalize()}"

    for pattern, result_type in _RESULT_KEYWORDS:
        if pattern.search(q):
            out["result_type"] = result_type
            break
    out.setdefault("result_type", "attempts")

    return QueryParams.model_validate(out)
