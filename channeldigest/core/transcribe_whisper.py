"""
OpenAI Whisper speech-to-text integration.
Uploads one audio file per call; the service rejects uploads over 25 MB.
Includes exponential backoff for rate-limit (429) responses.
"""

import logging
import time
import random
import requests
from pathlib import Path

from channeldigest.core.error_codes import TranscriptionCallError
from channeldigest.core.constants import (
    ErrorCode, OPENAI_API_BASE, TRANSCRIPTION_MODEL, MIN_TRANSCRIBE_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)

WHISPER_TRANSCRIPTIONS_URL = f"{OPENAI_API_BASE}/audio/transcriptions"

_MAX_RATE_LIMIT_RETRIES = 4
_RATE_LIMIT_BASE_DELAY = 2.0   # seconds, doubles each retry with jitter


def adaptive_timeout(file_size: int) -> int:
    """~1 min per 10MB plus a minute, never below the floor."""
    return max(MIN_TRANSCRIBE_TIMEOUT_SEC, int(file_size / (10 * 1024 * 1024) * 60) + 60)


def transcribe_audio(audio_path: Path, api_key: str | None,
                     model: str = TRANSCRIPTION_MODEL,
                     timeout_sec: int | None = None) -> str:
    """
    Transcribe an audio file with the Whisper API and return plain text.
    Retries up to 4 times with exponential backoff on 429 responses;
    every other failure raises TranscriptionCallError.
    """
    if not api_key:
        raise TranscriptionCallError("OPENAI_API_KEY is not set")

    headers = {"Authorization": f"Bearer {api_key}"}
    data = {"model": model, "response_format": "text"}

    file_size = audio_path.stat().st_size
    timeout_sec = timeout_sec or adaptive_timeout(file_size)
    logger.info("Transcribing: %s (%.2fMB)", audio_path.name, file_size / (1024 * 1024))

    for attempt in range(_MAX_RATE_LIMIT_RETRIES + 1):
        try:
            with open(audio_path, 'rb') as f:
                resp = requests.post(
                    WHISPER_TRANSCRIPTIONS_URL,
                    headers=headers,
                    data=data,
                    files={"file": (audio_path.name, f, "audio/mpeg")},
                    timeout=timeout_sec,
                )
        except requests.exceptions.Timeout:
            raise TranscriptionCallError("Whisper request timed out",
                                         code=ErrorCode.TRANSCRIPTION_TIMEOUT)
        except requests.exceptions.ConnectionError:
            raise TranscriptionCallError("Network error connecting to Whisper API")
        except requests.exceptions.RequestException as e:
            raise TranscriptionCallError(f"Whisper request failed: {e}")

        if resp.status_code == 429:
            if attempt < _MAX_RATE_LIMIT_RETRIES:
                # Exponential backoff with jitter: 2s, 4s, 8s, 16s (+/- 10%)
                delay = _RATE_LIMIT_BASE_DELAY * (2 ** attempt)
                delay *= 1 + random.uniform(-0.1, 0.1)
                logger.warning(
                    "Whisper rate limited (429), retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, _MAX_RATE_LIMIT_RETRIES,
                )
                time.sleep(delay)
                continue
            raise TranscriptionCallError(
                f"Whisper rate limited (429) after {_MAX_RATE_LIMIT_RETRIES} retries")

        if resp.status_code == 413:
            raise TranscriptionCallError(
                f"{audio_path.name} exceeds the Whisper upload limit ({file_size} bytes)")

        if resp.status_code != 200:
            # Never log the API key; the body is enough
            error_body = resp.text[:300] if resp.text else "No response body"
            raise TranscriptionCallError(f"Whisper returned {resp.status_code}: {error_body}")

        text = resp.text.strip()
        logger.info("Transcription complete: %d characters", len(text))
        return text

    raise TranscriptionCallError("Whisper request exhausted retries")
