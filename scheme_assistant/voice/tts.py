"""
Text-to-Speech Module
Speech synthesis capability for the localized response text
"""
import asyncio
import io
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..errors import TransientExternalFailure
from ..observability import get_logger

logger = get_logger(__name__)

GTTS_LANGUAGES = {
    "english": "en",
    "hindi": "hi",
    "tamil": "ta",
}


class TTSResult:
    """Result from text-to-speech synthesis"""

    def __init__(self,
                 audio_data: bytes,
                 format: str = "wav",
                 sample_rate: int = 16000,
                 duration: float = 0.0):
        self.audio_data = audio_data
        self.format = format
        self.sample_rate = sample_rate
        self.duration = duration

    def save(self, file_path: str):
        """Save audio to file"""
        with open(file_path, "wb") as f:
            f.write(self.audio_data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "sample_rate": self.sample_rate,
            "duration": self.duration,
            "size_bytes": len(self.audio_data)
        }


class BaseTTS(ABC):
    """Base class for TTS implementations"""

    @abstractmethod
    async def synthesize(self,
                         text: str,
                         language: Optional[str] = None,
                         rate: float = 1.0) -> TTSResult:
        """Synthesize text to speech"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the TTS service is available"""
        pass


class GoogleTTS(BaseTTS):
    """
    gTTS (Google Text-to-Speech)
    Free and supports English, Hindi and Tamil; rates below 1.0 use the slow voice
    """

    def __init__(self):
        self._initialized = False

    def _initialize(self):
        if self._initialized:
            return

        try:
            from gtts import gTTS
            self.gTTS = gTTS
            self._initialized = True
        except ImportError:
            raise RuntimeError(
                "gTTS not installed. Install with: pip install gTTS"
            )

    async def synthesize(self,
                         text: str,
                         language: Optional[str] = None,
                         rate: float = 1.0) -> TTSResult:
        """Synthesize text using gTTS"""
        self._initialize()
        from gtts.tts import gTTSError

        lang_code = GTTS_LANGUAGES.get(language or "english", "en")
        loop = asyncio.get_running_loop()

        def _synthesize():
            tts = self.gTTS(text=text, lang=lang_code, slow=rate < 1.0)

            # Save to bytes
            audio_buffer = io.BytesIO()
            tts.write_to_fp(audio_buffer)
            audio_buffer.seek(0)

            return audio_buffer.read()

        try:
            audio_data = await loop.run_in_executor(None, _synthesize)
        except gTTSError as e:
            raise TransientExternalFailure(f"Speech synthesis failed: {e}", capability="tts") from e

        return TTSResult(
            audio_data=audio_data,
            format="mp3",
            sample_rate=24000  # gTTS uses 24kHz
        )

    def is_available(self) -> bool:
        try:
            from gtts import gTTS  # noqa: F401
            return True
        except ImportError:
            return False


class RecordingTTS(BaseTTS):
    """Keeps what it was asked to say instead of producing audio; for the console demo and tests"""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.spoken: List[Tuple[str, Optional[str], float]] = []
        self.fail_with = fail_with

    async def synthesize(self,
                         text: str,
                         language: Optional[str] = None,
                         rate: float = 1.0) -> TTSResult:
        if self.fail_with is not None:
            raise self.fail_with
        self.spoken.append((text, language, rate))
        return TTSResult(audio_data=text.encode("utf-8"), format="text")

    def is_available(self) -> bool:
        return True


class TTSFactory:
    """Factory for creating TTS instances"""

    @staticmethod
    def create(backend: str = "google", **kwargs) -> BaseTTS:
        backends = {
            "google": GoogleTTS,
            "recording": RecordingTTS
        }

        if backend not in backends:
            raise ValueError(f"Unknown TTS backend: {backend}")

        tts = backends[backend](**kwargs)
        if not tts.is_available():
            logger.warning("tts_backend_unavailable", backend=backend)
        return tts
