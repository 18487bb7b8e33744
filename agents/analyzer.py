import json
import re
from enum import Enum
from typing import Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from agents.models import AnalysisResult
from agents.rubric import ANALYSIS_SCHEMA, SYSTEM_INSTRUCTION, build_user_prompt
from utils.config import DEFAULT_MODEL, TEMPERATURE
from utils.encoder import EncodedFile
from utils.errors import BackendError, ResponseFormatError
from utils.logging_config import get_logger

logger = get_logger("analyzer")

FENCE_RE = re.compile(r"```(?:json)?")


class AnalysisState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers anywhere in the text and trim. Idempotent."""
    return FENCE_RE.sub("", text).strip()


def parse_analysis(text: Optional[str]) -> AnalysisResult:
    """
    Parse raw model output into an AnalysisResult.
    Anything short of a complete, valid result raises ResponseFormatError.
    """
    if not text or not text.strip():
        raise ResponseFormatError("No response text received from Gemini.")

    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed: {e}; content_head={cleaned[:500]}")
        raise ResponseFormatError(f"Response is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ResponseFormatError(
            f"Response JSON must be an object, got {type(payload).__name__}"
        )

    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Response failed schema validation: {e.error_count()} errors")
        raise ResponseFormatError(f"Response does not match the report schema: {e}") from e
    except OverflowError as e:
        raise ResponseFormatError(f"Response contains an out-of-range number: {e}") from e


class AnalysisAgent:
    """
    Sends one assessment (text and/or attachment) to Gemini with the fixed
    rubric and returns the validated report. No retries, no caching: every
    call is a full round-trip.
    """

    def __init__(self, client: genai.Client, model: str = DEFAULT_MODEL):
        self.client = client
        self.model = model
        logger.info(f"Analysis agent initialized (model={model})")

    def build_parts(
        self, free_text: str, attachment: Optional[EncodedFile] = None
    ) -> list:
        """Attachment part first (if any), then exactly one text part."""
        parts = []
        if attachment is not None:
            parts.append(
                types.Part.from_bytes(
                    data=attachment.raw_bytes(), mime_type=attachment.mime_type
                )
            )
        parts.append(types.Part(text=build_user_prompt(free_text, attachment)))
        return parts

    def build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
            temperature=TEMPERATURE,
        )

    async def analyze(
        self, free_text: str, attachment: Optional[EncodedFile] = None
    ) -> AnalysisResult:
        parts = self.build_parts(free_text, attachment)

        logger.info(
            f"Calling Gemini model={self.model}, text_chars={len(free_text or '')}, "
            f"attachment={attachment.mime_type if attachment else None}"
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=self.build_config(),
            )
        except Exception as e:
            logger.exception(f"Gemini request failed: {type(e).__name__}: {e}")
            raise BackendError(f"Gemini request failed: {e}") from e

        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            raise ResponseFormatError(f"Unexpected Gemini response: {e}") from e

        result = parse_analysis(text)
        logger.info(
            f"Analysis parsed: overall_score={result.overall_score}, "
            f"question_fixes={len(result.question_fixes)}"
        )
        return result
