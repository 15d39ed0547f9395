# backend/querymaster/app.py

import logging
from pathlib import Path

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from querymaster.core.client import ChallengeClient
from querymaster.core.config import Settings, load_settings
from querymaster.core.controller import ChallengeService, InteractionController
from querymaster.core.schemas import (
    AnswerKind,
    AnswerRequest,
    DifficultyRequest,
    EndSessionResponse,
    StateResponse,
)
from querymaster.core.sessions import SessionStore

logger = logging.getLogger("querymaster")

STATIC_DIR = Path(__file__).resolve().parent / "static"


# Middleware to log requests
class LogRequestMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            body = await request.body()
            logger.info(
                f"Incoming {request.method} {request.url.path} body={body.decode('utf-8')}"
            )
        except Exception:
            logger.warning("Could not read request body")
        return await call_next(request)


# ------------------------------------------------------------
# Exception handlers
# ------------------------------------------------------------
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error: {exc.errors()} body={exc.body}")
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "detail": exc.errors(),
            "body": exc.body,
        },
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": str(exc)},
    )


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def _sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _controller(request: Request, session_id: str) -> InteractionController:
    controller = _sessions(request).get(session_id)
    if controller is None:
        logger.warning(f"Session not found: {session_id}")
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return controller


def _state(session_id: str, controller: InteractionController) -> dict:
    return {"status": "ok", "session_id": session_id, "state": controller.snapshot()}


# ------------------------------------------------------------
# Routes
# ------------------------------------------------------------
router = APIRouter()


@router.get("/", include_in_schema=False)
async def index():
    return FileResponse(STATIC_DIR / "index.html")


@router.post("/sessions", response_model=StateResponse)
async def create_session(request: Request):
    session_id, controller = _sessions(request).create()
    await controller.fetch_challenge()
    return _state(session_id, controller)


@router.get("/sessions/{session_id}", response_model=StateResponse)
async def get_session(session_id: str, request: Request):
    return _state(session_id, _controller(request, session_id))


@router.post("/sessions/{session_id}/difficulty", response_model=StateResponse)
async def select_difficulty(session_id: str, req: DifficultyRequest, request: Request):
    controller = _controller(request, session_id)
    await controller.select_difficulty(req.difficulty)
    return _state(session_id, controller)


@router.post("/sessions/{session_id}/challenge", response_model=StateResponse)
async def fetch_challenge(session_id: str, request: Request):
    controller = _controller(request, session_id)
    await controller.fetch_challenge()
    return _state(session_id, controller)


@router.put("/sessions/{session_id}/answers/{kind}", response_model=StateResponse)
async def edit_answer(session_id: str, kind: AnswerKind, req: AnswerRequest, request: Request):
    controller = _controller(request, session_id)
    controller.edit_answer(kind, req.text)
    return _state(session_id, controller)


@router.post("/sessions/{session_id}/answers/{kind}/validate", response_model=StateResponse)
async def validate_answer(session_id: str, kind: AnswerKind, request: Request):
    controller = _controller(request, session_id)
    await controller.validate_answer(kind)
    return _state(session_id, controller)


@router.post("/sessions/{session_id}/answers/{kind}/reveal", response_model=StateResponse)
async def toggle_reveal(session_id: str, kind: AnswerKind, request: Request):
    controller = _controller(request, session_id)
    controller.toggle_reveal(kind)
    return _state(session_id, controller)


@router.post("/sessions/{session_id}/advance", response_model=StateResponse)
async def advance(session_id: str, request: Request):
    controller = _controller(request, session_id)
    if not await controller.advance():
        raise HTTPException(status_code=409, detail="Complete both validations to continue.")
    return _state(session_id, controller)


@router.delete("/sessions/{session_id}", response_model=EndSessionResponse)
async def end_session(session_id: str, request: Request):
    controller = _sessions(request).pop(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    logger.info(f"Cleared session={session_id}")

    return {
        "status": "ok",
        "message": f"Practice session {session_id} ended.",
        "score": controller.score,
        "topics_completed": len(controller.topic_history),
    }


@router.get("/healthz")
async def healthz():
    return {"ok": True}


# ------------------------------------------------------------
# Setup
# ------------------------------------------------------------
def create_app(settings: Settings | None = None, client: ChallengeService | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    if client is None:
        client = ChallengeClient.from_settings(settings)

    app = FastAPI(title="QueryMaster: Django ORM & SQL Practice")
    app.state.settings = settings
    app.state.sessions = SessionStore(
        lambda: InteractionController(client),
        max_entries=settings.max_sessions,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LogRequestMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(router)
    return app


app = create_app()
