from typing import Optional

from google import genai

from agents.analyzer import AnalysisAgent, AnalysisState
from agents.models import AnalysisResult
from utils.config import Settings
from utils.encoder import encode_upload
from utils.errors import AnalysisError
from utils.logging_config import get_logger

logger = get_logger("orchestrator")


class AnalysisOrchestrator:
    """
    Owns the Gemini client and runs one analysis per call:
    encode attachment -> analyze -> validated report.

    State per call: IDLE -> SENDING -> SUCCEEDED | FAILED. Nothing is kept
    between calls and there is no queue; preventing a second concurrent
    submission is left to the caller.
    """

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        # Fail fast before any client or request exists
        api_key = settings.require_api_key()

        self.settings = settings
        self.client = client or genai.Client(api_key=api_key)
        self.agent = AnalysisAgent(self.client, model=settings.model)

        logger.info("Orchestrator initialized")

    async def process(self, free_text: str, upload=None) -> AnalysisResult:
        """
        Run one analysis. `upload` is any object with an awaitable read()
        plus content_type/filename (FastAPI UploadFile), or None.

        Raises EncodingError, BackendError or ResponseFormatError unchanged.
        """
        free_text = free_text or ""
        state = AnalysisState.IDLE
        logger.info(f"Analysis {state.value}: text_chars={len(free_text)}, has_file={upload is not None}")

        try:
            attachment = await encode_upload(upload) if upload is not None else None
            if attachment is not None:
                logger.info(
                    f"Attachment encoded: {attachment.file_name} "
                    f"({attachment.mime_type}, {attachment.size_bytes} bytes)"
                )

            state = AnalysisState.SENDING
            logger.info(f"Analysis {state.value}")
            result = await self.agent.analyze(free_text, attachment)

        except AnalysisError as e:
            state = AnalysisState.FAILED
            logger.warning(f"Analysis {state.value}: {type(e).__name__}: {e}")
            raise

        state = AnalysisState.SUCCEEDED
        logger.info(f"Analysis {state.value}: overall_score={result.overall_score}")
        return result
