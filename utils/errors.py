class AnalysisError(Exception):
    """Base class for every failure surfaced by the analysis flow."""


class MissingCredentialError(AnalysisError):
    """No Gemini API key configured. Raised before any request is attempted."""


class EncodingError(AnalysisError):
    """The attachment could not be read or base64-encoded."""


class BackendError(AnalysisError):
    """Transport, auth or quota failure reported by the Gemini endpoint."""


class ResponseFormatError(AnalysisError):
    """
    The call succeeded but returned no text, or text that is not valid JSON
    or does not match the AnalysisResult shape.
    """
