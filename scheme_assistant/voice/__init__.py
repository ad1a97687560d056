"""
Voice Package
Speech capability interfaces and the audio turn pipeline
"""
from .stt import STTResult, BaseSTT, OpenAIWhisperSTT, ScriptedSTT, STTFactory
from .tts import TTSResult, BaseTTS, GoogleTTS, RecordingTTS, TTSFactory
from .pipeline import VoiceTurnHandler, VoiceTurnResult

__all__ = [
    "STTResult",
    "BaseSTT",
    "OpenAIWhisperSTT",
    "ScriptedSTT",
    "STTFactory",
    "TTSResult",
    "BaseTTS",
    "GoogleTTS",
    "RecordingTTS",
    "TTSFactory",
    "VoiceTurnHandler",
    "VoiceTurnResult"
]
