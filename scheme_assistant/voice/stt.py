"""
Speech-to-Text Module
Speech recognition capability; the assistant only needs text plus a confidence
"""
import io
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..config import LANGUAGE_CODES
from ..errors import TransientExternalFailure
from ..observability import get_logger

logger = get_logger(__name__)


class STTResult:
    """Result from speech-to-text transcription"""

    def __init__(self,
                 text: str,
                 confidence: float = 1.0,
                 language: Optional[str] = None,
                 duration: float = 0.0):
        self.text = text
        self.confidence = confidence
        self.language = language
        self.duration = duration

    def is_empty(self) -> bool:
        return not self.text or self.text.strip() == ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "language": self.language,
            "duration": self.duration
        }


class BaseSTT(ABC):
    """Base class for STT implementations"""

    @abstractmethod
    async def transcribe(self,
                         audio_data: bytes,
                         language_hint: Optional[str] = None) -> STTResult:
        """Transcribe audio data to text"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the STT service is available"""
        pass


class OpenAIWhisperSTT(BaseSTT):
    """
    Hosted Whisper transcription through the OpenAI API
    Confidence is derived from the mean segment log-probability
    """

    def __init__(self, api_key: Optional[str], model: str = "whisper-1"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def transcribe(self,
                         audio_data: bytes,
                         language_hint: Optional[str] = None) -> STTResult:
        import openai

        client = self._get_client()
        audio_file = io.BytesIO(audio_data)
        audio_file.name = "utterance.wav"
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "file": audio_file,
            "response_format": "verbose_json",
        }
        if language_hint:
            kwargs["language"] = LANGUAGE_CODES.get(language_hint, "en-IN").split("-")[0]

        try:
            response: Any = await client.audio.transcriptions.create(**kwargs)
        except (openai.APIConnectionError, openai.APITimeoutError,
                openai.RateLimitError, openai.InternalServerError) as e:
            raise TransientExternalFailure(f"Transcription unavailable: {type(e).__name__}",
                                           capability="stt") from e

        segments: List[Any] = list(getattr(response, "segments", None) or [])
        if segments:
            mean_logprob = sum(getattr(s, "avg_logprob", 0.0) for s in segments) / len(segments)
            confidence = max(0.0, min(1.0, math.exp(mean_logprob)))
        else:
            confidence = 0.0 if not getattr(response, "text", "") else 1.0

        return STTResult(
            text=getattr(response, "text", "") or "",
            confidence=confidence,
            language=language_hint,
            duration=float(getattr(response, "duration", 0.0) or 0.0)
        )

    def is_available(self) -> bool:
        return bool(self.api_key)


class ScriptedSTT(BaseSTT):
    """
    Replays queued transcriptions, for the console demo and tests
    Exceptions in the queue are raised instead of returned
    """

    def __init__(self, results: Optional[List[Any]] = None):
        self.results = list(results or [])
        self.calls = 0

    async def transcribe(self,
                         audio_data: bytes,
                         language_hint: Optional[str] = None) -> STTResult:
        self.calls += 1
        if not self.results:
            return STTResult(text="", confidence=0.0, language=language_hint)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def is_available(self) -> bool:
        return True


class STTFactory:
    """Factory for creating STT instances"""

    @staticmethod
    def create(backend: str = "openai", **kwargs) -> BaseSTT:
        backends = {
            "openai": OpenAIWhisperSTT,
            "scripted": ScriptedSTT
        }

        if backend not in backends:
            raise ValueError(f"Unknown STT backend: {backend}")

        stt = backends[backend](**kwargs)
        if not stt.is_available():
            logger.warning("stt_backend_unavailable", backend=backend)
        return stt
