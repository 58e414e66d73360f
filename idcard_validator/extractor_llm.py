"""
LLM-based fallback extraction from unstructured scanner text.

The LLM is used as a "smart post-processor" for barcode payloads and noisy
free text where the regex heuristics are ambiguous. We never trust it
blindly: whatever it returns is re-checked by the national-ID and birth-date
validators and reconciled against the regex candidates.

Design:
  - JSON mode enforced (structured output, not free text)
  - Graceful fallback: no API key → returns None → system uses regex only
"""

from __future__ import annotations

import json
import logging
import os

from .exceptions import ExtractionError
from .models import DatePattern, FallbackCandidate
from .national_id import validate_national_id

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5"


# ─── System Prompt ───────────────────────────────────────────────────

SYSTEM_PROMPT = """\
You are a data extractor for identity-card scanner output.
The input is raw text from a barcode reader or an OCR engine.

CRITICAL RULES:
1. Extract EXACTLY what is written — do NOT correct digits.
2. Do not infer or hallucinate values for missing fields.
3. The national ID is an 11-digit number that never starts with 0.
4. Render the birth date as DD.MM.YYYY.

Return a JSON object with these exact keys:
{
    "national_id": "11 digits or null",
    "birth_date": "DD.MM.YYYY or null"
}
"""


def llm_enabled() -> bool:
    """True when an OpenAI API key is configured."""
    return bool(os.environ.get("OPENAI_API_KEY"))


def extract_with_llm(raw_text: str) -> FallbackCandidate | None:
    """Extract a (national ID, birth date) pair using an LLM.

    Returns:
        FallbackCandidate if the LLM succeeds, None if unavailable or fails.
        Failure is NOT an error — the pipeline falls back to regex-only.
    """
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        logger.info("No OPENAI_API_KEY set — skipping LLM extraction (regex-only mode)")
        return None

    try:
        from openai import OpenAI

        client = OpenAI(api_key=api_key)

        response = client.chat.completions.create(
            model=os.environ.get("IDCARD_LLM_MODEL", DEFAULT_MODEL),
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        "Extract the identity fields from this scanner output:\n\n"
                        f"{raw_text}"
                    ),
                },
            ],
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content
        if content is None:
            raise ExtractionError("LLM returned empty content")

        data = json.loads(content)
        national_id = data.get("national_id")
        birth_date = data.get("birth_date")
        if not national_id or not birth_date:
            raise ExtractionError(
                "LLM response is missing fields", details={"response": data}
            )

        logger.info("LLM extraction succeeded")
        return FallbackCandidate(
            national_id=str(national_id),
            birth_date=str(birth_date),
            date_pattern=DatePattern.DOTTED,
            national_id_valid=validate_national_id(str(national_id)),
        )

    except ImportError:
        logger.warning("openai package not installed — pip install openai")
        return None
    except ExtractionError as e:
        logger.warning("LLM extraction unusable: %s", e)
        return None
    except Exception as e:
        logger.error("LLM extraction failed: %s", e)
        return None
