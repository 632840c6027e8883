"""
Content analysis via the OpenAI chat completions API.
Every failure degrades to an explicit "unavailable" result; nothing here
raises into the pipeline.
"""

import base64
import logging
from pathlib import Path
from typing import Optional

import requests

from channeldigest.core.error_codes import AnalysisError
from channeldigest.core.constants import (
    OPENAI_API_BASE, ANALYSIS_MODEL, ANALYSIS_TIMEOUT_SEC, MAX_TRANSCRIPT_CHARS,
    THUMBNAIL_UNAVAILABLE, CONTENT_UNAVAILABLE, AGGREGATE_UNAVAILABLE,
)
from channeldigest.core.models import AnalysisResult, ExtendedMetadata, Item, ItemResult

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_URL = f"{OPENAI_API_BASE}/chat/completions"

_THUMBNAIL_PROMPT = """Analyze this YouTube thumbnail for the video titled "{title}". Provide:
1. Visual style (colors, composition, text overlays)
2. Emotional appeal/hook strategy
3. Text visible on thumbnail
4. Overall effectiveness rating (1-10)

Keep the analysis concise."""

_CONTENT_SYSTEM = (
    "You are a content analyst for tech YouTube videos. Extract the main "
    "points, key takeaways and tools mentioned. Be concise."
)

_CONTENT_PROMPT = """Analyze this YouTube video:

**Title:** {title}
**Channel:** {channel}
**Description:** {description}

**Transcription:**
{transcript}

Provide:

## Summary
## Key Takeaways
## Tools/Products Mentioned"""

_AGGREGATE_PROMPT = """Based on these {count} recent videos, describe trending topics,
content patterns, and underserved topics.

Videos analyzed:
{videos}"""


def truncate_transcript(transcript: Optional[str], limit: int = MAX_TRANSCRIPT_CHARS) -> Optional[str]:
    if transcript and len(transcript) > limit:
        return transcript[:limit] + '... [truncated]'
    return transcript


class OpenAIAnalyzer:
    """Analysis collaborator backed by OpenAI chat completions."""

    def __init__(self, api_key: str | None, model: str = ANALYSIS_MODEL,
                 timeout_sec: int = ANALYSIS_TIMEOUT_SEC):
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec

    def _complete(self, messages: list[dict], max_tokens: int) -> str:
        if not self.api_key:
            raise AnalysisError("OPENAI_API_KEY is not set")

        try:
            resp = requests.post(
                CHAT_COMPLETIONS_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": self.model, "messages": messages, "max_tokens": max_tokens},
                timeout=self.timeout_sec,
            )
        except requests.exceptions.RequestException as e:
            raise AnalysisError(f"Chat completion request failed: {e}")

        if resp.status_code != 200:
            raise AnalysisError(f"Chat completion returned {resp.status_code}: {resp.text[:300]}")

        try:
            return resp.json()['choices'][0]['message']['content'] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AnalysisError(f"Malformed chat completion response: {e}")

    def analyze_image(self, image_path: Path, context_text: str) -> AnalysisResult:
        try:
            encoded = base64.b64encode(image_path.read_bytes()).decode('ascii')
            text = self._complete([{
                "role": "user",
                "content": [
                    {"type": "text", "text": _THUMBNAIL_PROMPT.format(title=context_text)},
                    {"type": "image_url",
                     "image_url": {"url": f"data:image/jpeg;base64,{encoded}"}},
                ],
            }], max_tokens=500)
        except (AnalysisError, OSError) as e:
            logger.error("Error analyzing thumbnail: %s", e)
            return AnalysisResult(text=THUMBNAIL_UNAVAILABLE, success=False)
        return AnalysisResult(text=text)

    def analyze_content(self, item: Item, metadata: Optional[ExtendedMetadata],
                        transcript: Optional[str]) -> AnalysisResult:
        description = (metadata.description if metadata else None) or item.description
        channel = (metadata.channel_name if metadata else None) or item.source_ref
        prompt = _CONTENT_PROMPT.format(
            title=item.title,
            channel=channel,
            description=description or 'No description',
            transcript=truncate_transcript(transcript) or 'No transcription available',
        )
        try:
            text = self._complete([
                {"role": "system", "content": _CONTENT_SYSTEM},
                {"role": "user", "content": prompt},
            ], max_tokens=2000)
        except AnalysisError as e:
            logger.error("Error analyzing content: %s", e)
            return AnalysisResult(text=f"{CONTENT_UNAVAILABLE}: {e.message}", success=False)
        return AnalysisResult(text=text)

    def aggregate(self, results: list[ItemResult]) -> str:
        lines = []
        for r in results:
            summary = r.analysis.text[:500] if r.analysis and r.analysis.success else 'No analysis'
            lines.append(f'- "{r.item.title}" by {r.item.source_ref}: {summary}')
        prompt = _AGGREGATE_PROMPT.format(count=len(results), videos="\n".join(lines))
        try:
            return self._complete([{"role": "user", "content": prompt}], max_tokens=1500)
        except AnalysisError as e:
            logger.error("Error generating aggregate insights: %s", e)
            return AGGREGATE_UNAVAILABLE
