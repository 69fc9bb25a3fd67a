"""
FastAPI application entry point for the multi-factor proof-of-life service
"""
import logging
from typing import List

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import config
from .models.data_models import (
    FeedbackType,
    LandmarkSnapshot,
    SessionState,
    TokenValidation,
    VerificationFeedback,
    VerificationResult
)
from .services import (
    ChallengeEngine,
    InvalidSessionStateError,
    SessionManager,
    SessionNotFoundError,
    TokenIssuer,
    VerificationEngine,
    WebSocketHandler
)

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Multi-Factor Proof of Life API",
    description="Randomized gesture + expression challenges with temporal liveness scoring",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
token_issuer = TokenIssuer()
challenge_engine = ChallengeEngine()
verification_engine = VerificationEngine(token_issuer=token_issuer)
session_manager = SessionManager(challenge_engine, verification_engine)
websocket_handler = WebSocketHandler()


class ChallengeResponse(BaseModel):
    """Response body for POST /api/challenges"""
    challenge_id: str
    gesture: str
    expression: str
    instruction: str
    issued_at: float
    expires_at: float
    websocket_url: str


class FramesRequest(BaseModel):
    """Request body for POST /api/challenges/{challenge_id}/frames"""
    frames: List[LandmarkSnapshot]


class FramesResponse(BaseModel):
    accepted: int
    buffered: int


class TokenValidateRequest(BaseModel):
    token: str


def _error_response(status_code: int, code: str, message: str, category: str, recoverable: bool) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "category": category,
                "recoverable": recoverable
            }
        }
    )


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return _error_response(
        404,
        "SESSION_NOT_FOUND",
        f"No active challenge with id {exc.args[0]}",
        "session",
        True
    )


@app.exception_handler(InvalidSessionStateError)
async def invalid_session_state_handler(request: Request, exc: InvalidSessionStateError):
    return _error_response(409, "INVALID_SESSION_STATE", str(exc), "session", True)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent error format"""
    return _error_response(
        exc.status_code,
        exc.detail if isinstance(exc.detail, str) else "HTTP_ERROR",
        str(exc.detail),
        "http",
        exc.status_code < 500
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred", "system", False)


@app.get("/")
async def root():
    return {
        "message": "Multi-Factor Proof of Life API",
        "status": "running",
        "version": __version__
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "api": "operational",
            "sessions": len(session_manager)
        }
    }


@app.post("/api/challenges", response_model=ChallengeResponse)
async def create_challenge():
    """Issue a new challenge and open its collection window"""
    session_manager.purge_expired(challenge_engine.clock())
    session = session_manager.create_session()
    challenge = session.challenge
    return ChallengeResponse(
        challenge_id=challenge.challenge_id,
        gesture=challenge.gesture.value,
        expression=challenge.expression.value,
        instruction=challenge.instruction,
        issued_at=challenge.issued_at,
        expires_at=challenge.expires_at,
        websocket_url=f"/ws/challenges/{challenge.challenge_id}"
    )


@app.post("/api/challenges/{challenge_id}/frames", response_model=FramesResponse)
async def append_frames(challenge_id: str, request: FramesRequest):
    """Append landmark frames to an open challenge window"""
    session = session_manager.get_session(challenge_id)
    accepted = sum(session.record_frame(landmarks) for landmarks in request.frames)
    return FramesResponse(accepted=accepted, buffered=len(session.frames))


@app.post("/api/challenges/{challenge_id}/verify", response_model=VerificationResult)
async def verify_challenge(challenge_id: str):
    """Close the window and score the collected frames"""
    return session_manager.finalize_session(challenge_id)


@app.post("/api/token/validate", response_model=TokenValidation)
async def validate_token(request: TokenValidateRequest):
    """
    Inspect an access token.
    
    Only checks structure and expiry; these tokens are not signed.
    """
    return token_issuer.validate_token(request.token)


@app.websocket("/ws/challenges/{challenge_id}")
async def challenge_stream(websocket: WebSocket, challenge_id: str):
    """
    Stream landmark frames for one challenge, then return the verdict.
    
    The window closes on a ``finalize`` message or on the first message
    received after the challenge expired. Expiry is only checked when a
    message arrives, so a client that goes silent past the deadline leaves
    the session in CHALLENGE until it sends something or disconnects; a
    later POST .../verify still reports it as expired.
    """
    await websocket_handler.handle_connection(websocket, challenge_id)
    
    try:
        session = session_manager.get_session(challenge_id)
    except SessionNotFoundError:
        await websocket_handler.send_feedback(
            websocket,
            VerificationFeedback(type=FeedbackType.ERROR, message="Unknown challenge")
        )
        await websocket_handler.close_connection(websocket, code=1008, reason="Unknown challenge")
        return
    
    if session.state != SessionState.CHALLENGE:
        await websocket_handler.send_feedback(
            websocket,
            VerificationFeedback(type=FeedbackType.ERROR, message="Challenge window is closed")
        )
        await websocket_handler.close_connection(websocket, code=1008, reason="Window closed")
        return
    
    await websocket_handler.send_challenge(websocket, session.challenge)
    
    try:
        while True:
            message = await websocket_handler.receive_message(websocket)
            if session.challenge.is_expired(challenge_engine.clock()):
                logger.info(f"Challenge {challenge_id} expired while streaming")
                break
            if message is None:
                continue
            
            message_type = message.get("type")
            if message_type == WebSocketHandler.MESSAGE_FINALIZE:
                break
            if message_type == WebSocketHandler.MESSAGE_LANDMARKS:
                landmarks = websocket_handler.parse_landmarks(message)
                if landmarks is not None:
                    session.record_frame(landmarks)
    except WebSocketDisconnect:
        logger.info(f"Client left challenge {challenge_id} before finalizing")
        return
    
    result = session_manager.finalize_session(challenge_id)
    await websocket_handler.send_result(websocket, result)
    await websocket_handler.close_connection(websocket)


def run():
    """Serve the app with uvicorn on the configured host and port"""
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
