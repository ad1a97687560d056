"""
Voice Turn Pipeline
Wraps a text turn with speech recognition in front and speech synthesis behind
"""
from typing import Any, Dict, Optional

from ..agent.orchestrator import ConversationOrchestrator, StatusCallback, TurnRequest, TurnResponse
from ..config import SupportedLanguage
from ..errors import TransientExternalFailure
from ..observability import get_logger
from ..resilience import RetryPolicy
from .stt import BaseSTT, STTResult
from .tts import BaseTTS, TTSResult

logger = get_logger(__name__)


class VoiceTurnResult:
    """Transcript, the text turn it produced and the spoken reply (if synthesis worked)"""

    def __init__(self,
                 transcript: STTResult,
                 response: TurnResponse,
                 audio: Optional[TTSResult] = None):
        self.transcript = transcript
        self.response = response
        self.audio = audio

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript": self.transcript.to_dict(),
            "response": self.response.model_dump(mode="json"),
            "audio": self.audio.to_dict() if self.audio else None
        }


class VoiceTurnHandler:
    """
    Audio in, audio out. Recognition confidence flows into the turn request so a
    poor transcription is answered with a repeat prompt instead of a guess.
    """

    def __init__(self,
                 orchestrator: ConversationOrchestrator,
                 stt: BaseSTT,
                 tts: BaseTTS,
                 retry_policy: Optional[RetryPolicy] = None,
                 speech_rate: float = 1.0):
        self.orchestrator = orchestrator
        self.stt = stt
        self.tts = tts
        self.retry_policy = retry_policy or orchestrator.retry_policy
        self.speech_rate = speech_rate

    async def handle(self,
                     session_id: str,
                     audio_data: bytes,
                     language_hint: Optional[SupportedLanguage] = None,
                     on_status: Optional[StatusCallback] = None) -> VoiceTurnResult:
        hint = language_hint.value if language_hint else None
        try:
            transcript = await self.retry_policy.call(
                self.stt.transcribe, audio_data, hint, capability="stt"
            )
        except TransientExternalFailure:
            # nothing was understood; the turn reports it like any unclear input
            transcript = STTResult(text="", confidence=0.0, language=hint)

        response = await self.orchestrator.process_turn(
            TurnRequest(
                session_id=session_id,
                utterance_text=transcript.text,
                language=language_hint,
                recognition_confidence=0.0 if transcript.is_empty() else transcript.confidence,
            ),
            on_status=on_status,
        )

        audio = None
        try:
            audio = await self.retry_policy.call(
                self.tts.synthesize,
                response.response_text,
                response.language.value,
                self.speech_rate,
                capability="tts",
            )
        except TransientExternalFailure as e:
            # the text reply still stands; the caller can show it instead
            logger.warning("speech_synthesis_skipped", capability=e.capability)

        return VoiceTurnResult(transcript=transcript, response=response, audio=audio)
