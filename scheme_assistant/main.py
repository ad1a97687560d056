"""
Console Interface
Interactive text loop for the government scheme assistant
"""
import asyncio
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from .agent.orchestrator import ConversationOrchestrator, TurnRequest, TurnResponse, build_orchestrator
from .config import settings
from .errors import AssistantError
from .observability import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)

EXIT_WORDS = {"exit", "quit", ":q"}


class ConsoleInterface:
    """
    Text chat against the orchestrator, one session at a time
    """

    def __init__(self, orchestrator: Optional[ConversationOrchestrator] = None):
        self.orchestrator = orchestrator or build_orchestrator(settings)
        self.current_session_id: Optional[str] = None
        self.is_running = False

    async def start_session(self, language: Optional[str] = None) -> str:
        """Start a new interaction session"""
        await self.orchestrator.cache.warm()
        session = await self.orchestrator.sessions.create(language=language)
        self.current_session_id = session.session_id

        console.print(Panel(
            f"[green]New session started[/green]\nSession ID: {session.session_id}",
            title="Session",
            border_style="green"
        ))
        return session.session_id

    async def process_text_input(self, text: str) -> TurnResponse:
        if not self.current_session_id:
            await self.start_session()
        assert self.current_session_id is not None

        response = await self.orchestrator.process_turn(
            TurnRequest(session_id=self.current_session_id, utterance_text=text),
            on_status=lambda notice: console.print(f"[dim]{notice}[/dim]")
        )
        self.show(response)
        return response

    def show(self, response: TurnResponse):
        if response.summary:
            console.print(Panel(response.summary, title="Summary", border_style="magenta"))

        border = "red" if response.error else "green"
        console.print(Panel(
            f"[{border}]{response.response_text}[/{border}]",
            title=f"Assistant ({response.next_state.value})",
            border_style=border
        ))

        if response.eligibility and response.eligibility.complete:
            verdict = "eligible" if response.eligibility.eligible else "not eligible"
            console.print(f"[yellow]{response.eligibility.scheme_id}: {verdict}[/yellow]")

        if response.suggestions:
            console.print("[dim]Try: " + " | ".join(response.suggestions) + "[/dim]")

    async def run_interactive_loop(self, language: Optional[str] = None):
        """Read lines until the user leaves or the session ends"""
        self.is_running = True
        await self.start_session(language)
        loop = asyncio.get_running_loop()

        while self.is_running:
            try:
                text = await loop.run_in_executor(None, console.input, "[bold cyan]> [/bold cyan]")
            except (EOFError, KeyboardInterrupt):
                console.print("\n[yellow]Stopping...[/yellow]")
                break

            if not text.strip():
                continue
            if text.strip().lower() in EXIT_WORDS:
                break

            response = await self.process_text_input(text)
            if response.next_state.value == "ended":
                self.is_running = False

        await self.end_session()

    async def end_session(self):
        if self.current_session_id:
            try:
                await self.orchestrator.sessions.end(self.current_session_id)
            except AssistantError:
                # already closed by the conversation itself
                pass
            self.current_session_id = None
        self.is_running = False


async def main(language: Optional[str] = None):
    """Main entry point for the console interface"""
    setup_logging(level=settings.log_level, format=settings.log_format, redact_pii=settings.redact_pii)
    console.print(Panel(
        "[bold green]Government Scheme Assistant[/bold green]\n"
        "सरकारी योजना सहायक / அரசு திட்ட உதவியாளர்\n\n"
        "[dim]Type 'exit' to leave[/dim]",
        title="Welcome",
        border_style="green"
    ))

    interface = ConsoleInterface()
    try:
        await interface.run_interactive_loop(language)
    except KeyboardInterrupt:
        console.print("\n[yellow]Goodbye![/yellow]")
    finally:
        await interface.end_session()


if __name__ == "__main__":
    asyncio.run(main())
