"""
Citizen Helpdesk Intake - FastAPI Backend
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpdesk import __version__
from helpdesk.agents.oracle import OpenAIDomainResponder, OpenAIIntentClassifier
from helpdesk.agents.tools import ToolRegistry
from helpdesk.config import get_settings
from helpdesk.middleware.logging_middleware import LoggingMiddleware
from helpdesk.routes import chat, health, tickets
from helpdesk.services.billing_backend import AccountBackendClient
from helpdesk.services.orchestrator import TurnOrchestrator
from helpdesk.services.ticket_service import TicketService
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


def build_orchestrator() -> TurnOrchestrator:
    """Wire the production collaborators"""
    ticket_service = TicketService()
    tool_registry = ToolRegistry(ticket_service, AccountBackendClient())
    return TurnOrchestrator(
        classifier=OpenAIIntentClassifier(),
        responder=OpenAIDomainResponder(tool_registry),
        ticket_service=ticket_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = getattr(app.state, "orchestrator", None) or build_orchestrator()
    app.state.orchestrator = orchestrator
    orchestrator.sessions.start()
    logger.info(f"Helpdesk backend started ({settings.fastapi_env})")
    try:
        yield
    finally:
        await orchestrator.sessions.stop()
        logger.info("Helpdesk backend stopped")


app = FastAPI(
    title="Citizen Helpdesk Intake",
    description="Multi-turn citizen intake with flow routing and folio tickets",
    version=__version__,
    lifespan=lifespan,
)

# Middleware runs bottom-up: CORS first, then logging
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(chat.router)
app.include_router(tickets.router)
app.include_router(health.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/")
async def root():
    return {"message": "Citizen Helpdesk Intake API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
