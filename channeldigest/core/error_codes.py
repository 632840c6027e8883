"""
Standardised error handling for ChannelDigest.
"""

from channeldigest.core.constants import ErrorCode, MAX_ERROR_MESSAGE_LEN
from channeldigest.core.models import ErrorRecord


class PipelineError(Exception):
    """Raised when the pipeline encounters a known error condition."""

    default_code = ErrorCode.UNEXPECTED

    def __init__(self, message: str, code: str | None = None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class FetchError(PipelineError):
    """Source unreachable or returned a malformed listing."""
    default_code = ErrorCode.FETCH_FAILED


class ProbeError(PipelineError):
    """Media duration could not be determined."""
    default_code = ErrorCode.PROBE_FAILED


class SegmentationError(PipelineError):
    """Splitting produced no chunks."""
    default_code = ErrorCode.SEGMENTATION


class TranscriptionCallError(PipelineError):
    default_code = ErrorCode.TRANSCRIPTION_CALL


class AnalysisError(PipelineError):
    default_code = ErrorCode.ANALYSIS_FAILED


class StateIOError(PipelineError):
    default_code = ErrorCode.STATE_IO


def error_record(exc: BaseException) -> ErrorRecord:
    """Convert any exception into the record stored on an item result."""
    if isinstance(exc, PipelineError):
        code, message = exc.code, exc.message
    else:
        code, message = ErrorCode.UNEXPECTED, f"{type(exc).__name__}: {exc}"
    return ErrorRecord(code=code, message=message[:MAX_ERROR_MESSAGE_LEN])
