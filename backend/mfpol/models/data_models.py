"""
Data models for the multi-factor proof-of-life challenge protocol
"""
import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import config

# Sentinel reported by the tracker when a wrist is not detected
HAND_NOT_DETECTED = -1.0


class GestureType(str, Enum):
    """Gestures a subject can be challenged to perform"""
    LEFT_HAND_UP = "left_hand_up"
    RIGHT_HAND_UP = "right_hand_up"
    TOUCH_NOSE = "touch_nose"


class ExpressionType(str, Enum):
    """Facial expressions a subject can be challenged to show"""
    SMILE = "smile"
    FROWN = "frown"
    BLINK = "blink"


class SessionState(str, Enum):
    """Lifecycle of one verification attempt"""
    IDLE = "IDLE"
    CHALLENGE = "CHALLENGE"
    VERIFYING = "VERIFYING"
    RESULT = "RESULT"


class FeedbackType(str, Enum):
    """Message types sent to the client over the WebSocket"""
    CHALLENGE_ISSUED = "challenge_issued"
    FRAME_ACCEPTED = "frame_accepted"
    VERIFICATION_SUCCESS = "verification_success"
    VERIFICATION_FAILED = "verification_failed"
    ERROR = "error"


class Challenge(BaseModel):
    """
    One randomized verification attempt.
    
    Immutable once issued; a retry always needs a new challenge.
    """
    model_config = ConfigDict(frozen=True)
    
    challenge_id: str
    gesture: GestureType
    expression: ExpressionType
    instruction: str = ""
    issued_at: float
    expires_at: float
    
    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class LandmarkSnapshot(BaseModel):
    """
    Normalized landmark measurements for a single captured instant.
    
    Values are relative to the subject's own frame of reference. Vertical
    positions grow downwards (0 is the top of the image).
    """
    model_config = ConfigDict(frozen=True)
    
    left_hand_y: float = HAND_NOT_DETECTED
    right_hand_y: float = HAND_NOT_DETECTED
    shoulder_y: float = 0.75
    mouth_width: float = 0.0
    brow_distance: float = 0.0
    hand_nose_dist: float = 1.0
    eye_ratio: float = 0.02
    timestamp: float = Field(default_factory=time.time)


class FrameRecord(BaseModel):
    """A landmark snapshot with eye_ratio and timestamp hoisted for the liveness pass"""
    model_config = ConfigDict(frozen=True)
    
    timestamp: float
    eye_ratio: float
    landmarks: LandmarkSnapshot
    
    @classmethod
    def from_landmarks(
        cls,
        landmarks: LandmarkSnapshot,
        timestamp: Optional[float] = None
    ) -> "FrameRecord":
        return cls(
            timestamp=landmarks.timestamp if timestamp is None else timestamp,
            eye_ratio=landmarks.eye_ratio,
            landmarks=landmarks
        )


class VerificationThresholds(BaseModel):
    """
    Tunable classification and scoring constants.
    
    Pick one consistent set per deployment; defaults come from Config.
    """
    model_config = ConfigDict(frozen=True)
    
    min_frame_count: int = Field(default=15, ge=1)
    min_pass_ratio: float = Field(default=0.15, gt=0.0, le=1.0)
    score_saturation_ratio: float = Field(default=0.4, gt=0.0, le=1.0)
    liveness_min_variance: float = Field(default=1e-9, ge=0.0)
    touch_nose_max_dist: float = Field(default=0.20, gt=0.0)
    smile_min_mouth_width: float = Field(default=0.07, ge=0.0)
    frown_max_brow_distance: float = Field(default=0.03, gt=0.0)
    blink_max_eye_ratio: float = Field(default=0.012, gt=0.0)
    
    @classmethod
    def from_config(cls) -> "VerificationThresholds":
        return cls(
            min_frame_count=config.MIN_FRAME_COUNT,
            min_pass_ratio=config.MIN_PASS_RATIO,
            score_saturation_ratio=config.SCORE_SATURATION_RATIO,
            liveness_min_variance=config.LIVENESS_MIN_VARIANCE,
            touch_nose_max_dist=config.TOUCH_NOSE_MAX_DIST,
            smile_min_mouth_width=config.SMILE_MIN_MOUTH_WIDTH,
            frown_max_brow_distance=config.FROWN_MAX_BROW_DISTANCE,
            blink_max_eye_ratio=config.BLINK_MAX_EYE_RATIO
        )


class VerificationResult(BaseModel):
    """
    Verdict of a single verify call.
    
    ``score`` is a display confidence and is decoupled from ``success``:
    a session can score well above zero and still fail, because every
    factor is mandatory for the verdict.
    """
    model_config = ConfigDict(frozen=True)
    
    success: bool
    score: int = Field(ge=0, le=100)
    token: Optional[str] = None
    reasons: List[str] = Field(default_factory=list)
    
    @model_validator(mode="after")
    def _token_only_on_success(self) -> "VerificationResult":
        if self.success != (self.token is not None):
            raise ValueError("token must be present if and only if success is true")
        return self


class TokenValidation(BaseModel):
    """Result of inspecting an access token"""
    valid: bool
    challenge_id: Optional[str] = None
    issued_at: Optional[float] = None
    expires_at: Optional[float] = None
    error: Optional[str] = None


class VerificationFeedback(BaseModel):
    """Outbound WebSocket message"""
    type: FeedbackType
    message: str
    data: Optional[Dict[str, Any]] = None
