"""Introduction extraction collaborator."""

import json
import re
from typing import Protocol

from pydantic import ValidationError

from ..logging_config import get_logger
from ..models import (
    REQUIRED_FIELDS,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    IntroductionData,
    Message,
)
from .llm_provider import ILLMProvider, to_llm_messages

logger = get_logger(__name__)

EXTRACTION_PROMPT = """\
Extract information from this conversation to fill in the following fields:
- firstName (string)
- lastName (string)
- age (integer)
- interests (list of strings): interests/hobbies of the user

Only fill fields if the user gave context around the information. "I'm 19" is ok, \
"It's 19" is not. Fill fields even if the information comes from older messages.
Reply with a single JSON object containing only the fields you could fill, and \
nothing else. Reply with {} if no field can be filled."""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class IIntroductionExtractor(Protocol):
    """Fills introduction fields from free-form conversation."""

    async def extract(self, log: list[Message]) -> ExtractionResult:
        """Return the complete introduction, or the fields still missing."""
        ...


def parse_introduction(raw: str) -> ExtractionResult:
    """Validate a model reply holding a (possibly partial) JSON introduction."""
    match = _JSON_OBJECT.search(raw or "")
    if not match:
        return ExtractionFailure()

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Extraction reply is not valid JSON: %s", raw[:200])
        return ExtractionFailure()
    if not isinstance(data, dict):
        return ExtractionFailure()

    # Drop nulls so they report as missing rather than invalid
    data = {key: value for key, value in data.items() if value is not None}

    try:
        return ExtractionSuccess(IntroductionData.model_validate(data))
    except ValidationError as e:
        missing = []
        for error in e.errors():
            name = str(error["loc"][0]) if error["loc"] else ""
            if name in REQUIRED_FIELDS and name not in missing:
                missing.append(name)
        missing.sort(key=REQUIRED_FIELDS.index)
        return ExtractionFailure(missing_fields=missing or list(REQUIRED_FIELDS))


class IntroductionExtractor:
    """LLM-backed extractor. Collaborator errors count as nothing extracted."""

    def __init__(self, llm_provider: ILLMProvider):
        self._llm = llm_provider

    async def extract(self, log: list[Message]) -> ExtractionResult:
        messages = to_llm_messages(log)
        if not messages:
            return ExtractionFailure()

        try:
            raw = await self._llm.complete(
                messages=messages, system=EXTRACTION_PROMPT, max_tokens=512
            )
        except Exception as e:
            logger.error(f"Extraction failed: {e}", exc_info=True)
            return ExtractionFailure()

        result = parse_introduction(raw)
        if isinstance(result, ExtractionFailure):
            logger.info("Introduction incomplete, missing: %s", result.missing_fields)
        return result
