import base64
import binascii
from typing import Optional

from pydantic import BaseModel

from utils.errors import EncodingError

PDF_MIME_TYPE = "application/pdf"
SUPPORTED_MIME_TYPES = {PDF_MIME_TYPE, "image/jpeg", "image/png"}


class EncodedFile(BaseModel):
    """Transport-safe attachment: base64 of the untouched bytes plus media type."""

    data: str
    mime_type: str
    file_name: Optional[str] = None
    size_bytes: int = 0

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    def raw_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Attachment data is not valid base64: {e}") from e


def encode_bytes(
    data: bytes, mime_type: str, file_name: Optional[str] = None
) -> EncodedFile:
    """Base64-encode raw file bytes. No re-encoding, no compression, no size cap."""
    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError(
            f"Attachment content must be bytes, got {type(data).__name__}"
        )

    return EncodedFile(
        data=base64.b64encode(bytes(data)).decode("ascii"),
        mime_type=mime_type or "",
        file_name=file_name,
        size_bytes=len(data),
    )


async def encode_upload(upload) -> EncodedFile:
    """
    Read an uploaded file (anything with an awaitable read(), e.g. FastAPI's
    UploadFile) and encode it. Read failures surface as EncodingError.
    """
    try:
        content = await upload.read()
    except Exception as e:
        raise EncodingError(f"Error reading attachment: {e}") from e

    return encode_bytes(
        content,
        mime_type=getattr(upload, "content_type", None) or "",
        file_name=getattr(upload, "filename", None),
    )
