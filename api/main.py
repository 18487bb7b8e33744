from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from agents.orchestrator import AnalysisOrchestrator
from api.models import AnalysisResult, ApiError, ErrorEnvelope
from utils.config import Settings
from utils.encoder import SUPPORTED_MIME_TYPES
from utils.errors import (
    BackendError,
    EncodingError,
    MissingCredentialError,
    ResponseFormatError,
)
from utils.logging_config import get_logger, set_level

# CORS origins, upload cap and log level do not need the credential
base_settings = Settings.from_env(require_credential=False)
set_level(base_settings.log_level)

logger = get_logger("api")

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


@lru_cache(maxsize=1)
def get_orchestrator() -> AnalysisOrchestrator:
    """Built once; raises MissingCredentialError when no API key is configured."""
    return AnalysisOrchestrator(Settings.from_env())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing credential fails the server at startup
    get_orchestrator()
    logger.info("API ready")
    yield


app = FastAPI(
    title="Assessment Reviewer API",
    description="Competency-based assessment review for Social Studies papers, powered by Google Gemini",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=base_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)


@app.exception_handler(MissingCredentialError)
async def _missing_credential_handler(request: Request, exc: MissingCredentialError):
    logger.error(f"Missing credential: {exc}")
    envelope = ErrorEnvelope(error=ApiError(code="MISSING_CREDENTIAL", message=str(exc)))
    return JSONResponse(status_code=500, content={"detail": envelope.model_dump()})


def _error(status_code: int, code: str, message: str, details=None) -> HTTPException:
    envelope = ErrorEnvelope(error=ApiError(code=code, message=message, details=details))
    return HTTPException(status_code=status_code, detail=envelope.model_dump())


@app.get("/")
@limiter.limit("30/minute")
async def root(request: Request):
    """Root endpoint - API health check"""
    return {
        "message": "Assessment Reviewer API",
        "status": "running",
        "version": "1.0.0",
    }


@app.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request):
    return {
        "status": "healthy",
        "model": base_settings.model,
        "max_upload_mb": base_settings.max_upload_mb,
    }


@app.post("/analyze", response_model=AnalysisResult)
@limiter.limit("10/minute")  # 10 requests per minute per IP
async def analyze_assessment(
    request: Request,  # Required for rate limiting
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Review question text and/or one PDF/JPEG/PNG exam paper.
    Returns the report with camelCase keys.
    """
    text = text or ""

    if not text.strip() and file is None:
        raise _error(400, "MISSING_INPUT", "Provide question text or upload a PDF/image file.")

    if file is not None:
        if file.content_type not in SUPPORTED_MIME_TYPES:
            logger.warning(f"Rejected upload type: {file.content_type}")
            raise _error(
                415,
                "UNSUPPORTED_FILE_TYPE",
                "Only PDF, JPEG and PNG files are supported.",
                {"content_type": file.content_type},
            )

        max_bytes = orchestrator.settings.max_upload_bytes
        if file.size is not None and file.size > max_bytes:
            logger.warning(f"Rejected upload size: {file.size} bytes")
            raise _error(
                413,
                "FILE_TOO_LARGE",
                f"File exceeds the {orchestrator.settings.max_upload_mb}MB limit.",
                {"size": file.size},
            )

    try:
        return await orchestrator.process(text, file)

    except EncodingError as e:
        raise _error(400, "ENCODING_FAILED", "Could not read the uploaded file.", {"reason": str(e)})
    except BackendError as e:
        raise _error(502, "BACKEND_ERROR", "Gemini request failed.", {"reason": str(e)})
    except ResponseFormatError as e:
        raise _error(
            502,
            "RESPONSE_FORMAT_ERROR",
            "Gemini returned a report in an unexpected format.",
            {"reason": str(e)},
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
