"""
FastAPI Server for the Scheme Assistant
Thin REST transport over the conversation orchestrator
"""
import io
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from scheme_assistant import __version__
from scheme_assistant.agent.orchestrator import ConversationOrchestrator, TurnRequest, TurnResponse, build_orchestrator
from scheme_assistant.config import SupportedLanguage, settings
from scheme_assistant.errors import AssistantError, ErrorKind, SchemeNotFound
from scheme_assistant.memory import ConsentFlags
from scheme_assistant.observability import get_logger, setup_logging
from scheme_assistant.voice import BaseSTT, BaseTTS, STTFactory, TTSFactory, VoiceTurnHandler

logger = get_logger(__name__)

HTTP_STATUS = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EXPIRED: 410,
    ErrorKind.CONFLICT: 409,
    ErrorKind.AMBIGUOUS_REFERENCE: 400,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.UNEXPECTED: 500,
}


# Request/Response Models
class SessionRequest(BaseModel):
    language: Optional[str] = None
    user_id: Optional[str] = None
    audio_retention: bool = False
    pii_retention: bool = False


class SessionResponse(BaseModel):
    session_id: str
    language: str
    state: str
    version: int


class ConsentRequest(BaseModel):
    audio_retention: Optional[bool] = None
    pii_retention: Optional[bool] = None


class TextRequest(BaseModel):
    session_id: str
    text: str
    language: Optional[SupportedLanguage] = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class EligibilityRequest(BaseModel):
    scheme_id: str
    profile: Dict[str, Any] = Field(default_factory=dict)
    language: SupportedLanguage = SupportedLanguage.ENGLISH


def create_app(orchestrator: Optional[ConversationOrchestrator] = None,
               stt: Optional[BaseSTT] = None,
               tts: Optional[BaseTTS] = None) -> FastAPI:
    """Build the app around an orchestrator; speech backends are created on first use"""
    orchestrator = orchestrator or build_orchestrator(settings)
    voice: Dict[str, Any] = {"stt": stt, "tts": tts}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        count = await orchestrator.cache.warm()
        logger.info("server_started", schemes=count)
        yield
        logger.info("server_stopped")

    app = FastAPI(
        title="Government Scheme Assistant",
        description="Multilingual conversational assistant for government scheme eligibility",
        version=__version__,
        lifespan=lifespan
    )
    app.state.orchestrator = orchestrator

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AssistantError)
    async def assistant_error_handler(request: Request, exc: AssistantError):
        body: Dict[str, Any] = {"error": exc.kind.value, "recoverable": exc.recoverable}
        field = getattr(exc, "field", None)
        if field:
            body["field"] = field
        return JSONResponse(body, status_code=HTTP_STATUS.get(exc.kind, 500))

    def voice_handler() -> VoiceTurnHandler:
        if voice["stt"] is None:
            voice["stt"] = STTFactory.create("openai", api_key=settings.openai_api_key)
        if voice["tts"] is None:
            voice["tts"] = TTSFactory.create("google")
        return VoiceTurnHandler(orchestrator, voice["stt"], voice["tts"])

    # REST Endpoints
    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "running",
            "service": "Government Scheme Assistant",
            "version": __version__,
            "supported_languages": [lang.value for lang in SupportedLanguage]
        }

    @app.get("/metrics")
    async def metrics():
        return {
            "sessions": orchestrator.sessions.metrics.to_dict(),
            "scheme_cache": {
                "size": len(orchestrator.cache),
                "hits": orchestrator.cache.hits,
                "misses": orchestrator.cache.misses
            },
            "errors": len(orchestrator.errors)
        }

    @app.post("/session/create", response_model=SessionResponse)
    async def create_session(request: SessionRequest):
        """Create a new session"""
        session = await orchestrator.sessions.create(
            language=request.language,
            user_id=request.user_id,
            consent=ConsentFlags(
                audio_retention=request.audio_retention,
                pii_retention=request.pii_retention
            )
        )
        return SessionResponse(
            session_id=session.session_id,
            language=session.language,
            state=session.state.value,
            version=session.version
        )

    @app.delete("/session/{session_id}")
    async def end_session(session_id: str, persist: bool = False):
        """End a session; without persist the conversation data is scrubbed"""
        aggregate = await orchestrator.sessions.end(session_id, consent_persist=persist)
        return {
            "status": "session ended",
            "session_id": session_id,
            "duration_seconds": aggregate.duration_seconds,
            "completed": aggregate.completed
        }

    @app.get("/session/{session_id}/state")
    async def get_session_state(session_id: str):
        """Get current session state"""
        session = await orchestrator.sessions.get(session_id)
        return session.to_dict()

    @app.post("/session/{session_id}/consent")
    async def set_consent(session_id: str, request: ConsentRequest):
        session = await orchestrator.sessions.set_consent(
            session_id,
            audio_retention=request.audio_retention,
            pii_retention=request.pii_retention
        )
        return {
            "session_id": session_id,
            "audio_retention": session.consent.audio_retention,
            "pii_retention": session.consent.pii_retention,
            "version": session.version
        }

    @app.post("/session/{session_id}/inactivity")
    async def check_inactivity(session_id: str):
        """Polled by clients while the user is silent; does not keep the session alive"""
        response = await orchestrator.check_inactivity(session_id)
        return {
            "session_id": session_id,
            "prompted": response is not None,
            "response": response.model_dump(mode="json") if response else None
        }

    @app.post("/chat/text", response_model=TurnResponse)
    async def chat_text(request: TextRequest):
        """Process text input"""
        return await orchestrator.process_turn(TurnRequest(
            session_id=request.session_id,
            utterance_text=request.text,
            language=request.language,
            recognition_confidence=request.confidence
        ))

    @app.post("/chat/voice")
    async def chat_voice(
        audio: UploadFile = File(...),
        session_id: str = Form(...),
        language: Optional[SupportedLanguage] = Form(None)
    ):
        """Process voice input and return voice response"""
        audio_data = await audio.read()
        result = await voice_handler().handle(session_id, audio_data, language)

        if result.audio is None:
            return result.to_dict()

        # headers must be latin-1, so only identifiers go there
        return StreamingResponse(
            io.BytesIO(result.audio.audio_data),
            media_type=f"audio/{result.audio.format}",
            headers={
                "X-Confidence": str(result.transcript.confidence),
                "X-Session-Id": session_id,
                "X-Next-State": result.response.next_state.value
            }
        )

    @app.get("/schemes")
    async def get_schemes(
        category: Optional[str] = None,
        language: SupportedLanguage = SupportedLanguage.ENGLISH,
        limit: int = 20
    ):
        """Get list of government schemes"""
        schemes = await orchestrator.cache.list(language, category=category)
        return {
            "schemes": [s.model_dump(mode="json") for s in schemes[:limit]],
            "total": len(schemes),
            "filters": {"category": category, "language": language.value}
        }

    @app.get("/schemes/{scheme_id}")
    async def get_scheme(scheme_id: str, language: SupportedLanguage = SupportedLanguage.ENGLISH):
        scheme = await orchestrator.cache.get(scheme_id, language)
        return scheme.model_dump(mode="json")

    @app.post("/schemes", status_code=201)
    async def create_scheme(record: Dict[str, Any]):
        """Publish a new scheme (administrative)"""
        scheme = await orchestrator.cache.repository.create(record)
        return scheme.to_dict()

    @app.put("/schemes/{scheme_id}")
    async def update_scheme(scheme_id: str, changes: Dict[str, Any]):
        """Store a new version of a scheme; earlier versions stay readable"""
        scheme = await orchestrator.cache.repository.update(scheme_id, changes)
        return scheme.to_dict()

    @app.delete("/schemes/{scheme_id}")
    async def withdraw_scheme(scheme_id: str):
        if not await orchestrator.cache.repository.delete(scheme_id):
            raise SchemeNotFound(scheme_id)
        orchestrator.cache.invalidate(scheme_id)
        return {"status": "withdrawn", "scheme_id": scheme_id}

    @app.get("/schemes/{scheme_id}/history")
    async def scheme_history(scheme_id: str):
        versions = await orchestrator.cache.repository.history(scheme_id)
        return {"scheme_id": scheme_id, "versions": [v.to_dict() for v in versions]}

    @app.post("/eligibility/check")
    async def check_eligibility(request: EligibilityRequest):
        """Check one scheme against a profile without touching any session"""
        scheme = await orchestrator.cache.get_record(request.scheme_id)
        result = orchestrator.engine.check_scheme(
            scheme,
            request.profile,
            request.language,
            await orchestrator.cache.refresh()
        )
        return result.model_dump(mode="json")

    return app


app = create_app()


def run_server():
    """Run the FastAPI server"""
    import uvicorn
    setup_logging(level=settings.log_level, format=settings.log_format, redact_pii=settings.redact_pii)
    uvicorn.run(
        "server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    run_server()
