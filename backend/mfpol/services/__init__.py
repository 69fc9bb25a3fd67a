"""
Services for the multi-factor proof-of-life challenge protocol
"""
from .challenge_engine import ChallengeEngine
from .landmark_extractor import LandmarkExtractor
from .session_manager import (
    InvalidSessionStateError,
    SessionManager,
    SessionNotFoundError,
    VerificationSession
)
from .token_issuer import TokenIssuer
from .verification_engine import VerificationEngine
from .websocket_handler import WebSocketHandler

__all__ = [
    "ChallengeEngine",
    "InvalidSessionStateError",
    "LandmarkExtractor",
    "SessionManager",
    "SessionNotFoundError",
    "TokenIssuer",
    "VerificationEngine",
    "VerificationSession",
    "WebSocketHandler",
]
