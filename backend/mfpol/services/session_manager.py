"""
Session Manager for driving challenge windows

Owns the append-only frame buffer for each challenge and hands it to the
verification engine exactly once, after collection has stopped.
"""
import logging
from typing import Dict, List, Optional

from ..config import config
from ..models.data_models import (
    Challenge,
    FrameRecord,
    LandmarkSnapshot,
    SessionState,
    VerificationResult
)
from .challenge_engine import ChallengeEngine
from .verification_engine import VerificationEngine

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a challenge id does not match any live session"""


class InvalidSessionStateError(RuntimeError):
    """Raised when a session operation is not allowed in the current state"""


class VerificationSession:
    """
    One challenge window: IDLE -> CHALLENGE -> VERIFYING -> RESULT.
    
    Frames are accepted only in CHALLENGE. ``finalize`` freezes the buffer
    before verifying, so the engine never sees a buffer that is still
    growing.
    """
    
    def __init__(
        self,
        challenge_engine: ChallengeEngine,
        verification_engine: VerificationEngine,
        max_frames: Optional[int] = None
    ):
        self.challenge_engine = challenge_engine
        self.verification_engine = verification_engine
        self.max_frames = config.MAX_FRAMES_PER_SESSION if max_frames is None else max_frames
        self.state = SessionState.IDLE
        self.challenge: Optional[Challenge] = None
        self.frames: List[FrameRecord] = []
        self.result: Optional[VerificationResult] = None
    
    def start(self, now: Optional[float] = None) -> Challenge:
        """Issue a new challenge and open the collection window"""
        self.challenge = self.challenge_engine.generate_challenge(now=now)
        self.frames = []
        self.result = None
        self.state = SessionState.CHALLENGE
        return self.challenge
    
    def record_frame(self, landmarks: LandmarkSnapshot) -> bool:
        """
        Append a frame while the window is open.
        
        Returns:
            bool: False if the session is not collecting or the buffer is full
        """
        if self.state != SessionState.CHALLENGE:
            return False
        if len(self.frames) >= self.max_frames:
            logger.warning(f"Frame buffer full for challenge {self.challenge.challenge_id}")
            return False
        
        self.frames.append(FrameRecord.from_landmarks(landmarks))
        return True
    
    def finalize(self, now: Optional[float] = None) -> VerificationResult:
        """
        Close the window and verify the collected frames.
        
        Idempotent: later calls return the first result.
        
        Raises:
            InvalidSessionStateError: If no challenge has been started
        """
        if self.state == SessionState.RESULT:
            return self.result
        if self.state != SessionState.CHALLENGE:
            raise InvalidSessionStateError(f"Cannot finalize a session in state {self.state.value}")
        
        self.state = SessionState.VERIFYING
        frames = tuple(self.frames)
        self.result = self.verification_engine.verify(self.challenge, frames, now=now)
        self.state = SessionState.RESULT
        return self.result
    
    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.challenge = None
        self.frames = []
        self.result = None


class SessionManager:
    """
    Keeps verification sessions keyed by challenge id.
    
    Failed attempts are expected; the retry path is always a new session.
    """
    
    def __init__(
        self,
        challenge_engine: Optional[ChallengeEngine] = None,
        verification_engine: Optional[VerificationEngine] = None,
        retention_seconds: Optional[float] = None
    ):
        self.challenge_engine = challenge_engine or ChallengeEngine()
        self.verification_engine = verification_engine or VerificationEngine()
        self.retention_seconds = (
            config.TOKEN_VALIDITY_MINUTES * 60 if retention_seconds is None else retention_seconds
        )
        self._sessions: Dict[str, VerificationSession] = {}
    
    def __len__(self) -> int:
        return len(self._sessions)
    
    def create_session(self, now: Optional[float] = None) -> VerificationSession:
        session = VerificationSession(self.challenge_engine, self.verification_engine)
        challenge = session.start(now=now)
        if challenge.challenge_id in self._sessions:
            logger.warning(f"Challenge id collision on {challenge.challenge_id}, replacing old session")
        self._sessions[challenge.challenge_id] = session
        return session
    
    def get_session(self, challenge_id: str) -> VerificationSession:
        try:
            return self._sessions[challenge_id]
        except KeyError:
            raise SessionNotFoundError(challenge_id) from None
    
    def record_frame(self, challenge_id: str, landmarks: LandmarkSnapshot) -> bool:
        return self.get_session(challenge_id).record_frame(landmarks)
    
    def finalize_session(self, challenge_id: str, now: Optional[float] = None) -> VerificationResult:
        session = self.get_session(challenge_id)
        result = session.finalize(now=now)
        logger.info(f"Session {challenge_id} finished: success={result.success}, score={result.score}")
        return result
    
    def purge_expired(self, now: float) -> int:
        """
        Drop sessions whose challenge expired more than ``retention_seconds`` ago.
        
        Returns:
            int: Number of sessions removed
        """
        stale = [
            challenge_id for challenge_id, session in self._sessions.items()
            if session.challenge is None
            or now > session.challenge.expires_at + self.retention_seconds
        ]
        for challenge_id in stale:
            del self._sessions[challenge_id]
        
        if stale:
            logger.info(f"Purged {len(stale)} expired sessions")
        return len(stale)
