"""
Verification Engine for scoring a landmark stream against an issued challenge
"""
import logging
import math
import time
from typing import Callable, List, Optional, Sequence, Tuple

from ..models.data_models import (
    Challenge,
    FrameRecord,
    VerificationResult,
    VerificationThresholds
)
from .factor_rules import EXPRESSION_RULES, GESTURE_RULES, population_variance
from .token_issuer import TokenIssuer

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, unlike round())"""
    return int(math.floor(value + 0.5))


class VerificationEngine:
    """
    Turns a challenge and its collected frames into a verdict.
    
    The verdict is the AND of three mandatory factors:
    - gesture held in at least ``min_pass_ratio`` of frames
    - expression held in at least ``min_pass_ratio`` of frames
    - eye aperture varies over time (a photo or frozen feed does not)
    
    Every failure comes back as ``success=False`` with reasons; ``verify``
    does not raise.
    """
    
    GESTURE_POINTS = 40
    EXPRESSION_POINTS = 40
    LIVENESS_POINTS = 20
    
    REASON_EXPIRED = "Protocol timeout: session expired"
    REASON_INSUFFICIENT = "Data density failure: insufficient biometric stream"
    REASON_LIVENESS_FAILED = "CRITICAL: Temporal authenticity failure"
    REASON_LIVENESS_PASSED = "Temporal authenticity confirmed"
    REASON_ALL_PASSED = "All factors validated"
    
    def __init__(
        self,
        thresholds: Optional[VerificationThresholds] = None,
        token_issuer: Optional[TokenIssuer] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.thresholds = thresholds or VerificationThresholds.from_config()
        self.token_issuer = token_issuer or TokenIssuer()
        self.clock = clock or time.time
    
    def classify_frame(self, challenge: Challenge, frame: FrameRecord) -> Tuple[bool, bool]:
        """Return (gesture matched, expression matched) for one frame."""
        gesture_rule = GESTURE_RULES[challenge.gesture]
        expression_rule = EXPRESSION_RULES[challenge.expression]
        return (
            gesture_rule(frame.landmarks, self.thresholds),
            expression_rule(frame.landmarks, self.thresholds)
        )
    
    def compute_score(
        self,
        gesture_ratio: float,
        expression_ratio: float,
        liveness_passed: bool
    ) -> int:
        """
        Confidence display value in [0, 100].
        
        Each pass ratio earns up to 40 points, saturating at
        ``score_saturation_ratio``; liveness adds a flat 20. This number does
        not decide the verdict.
        """
        saturation = self.thresholds.score_saturation_ratio
        raw = (
            min(gesture_ratio / saturation, 1.0) * self.GESTURE_POINTS
            + min(expression_ratio / saturation, 1.0) * self.EXPRESSION_POINTS
            + (self.LIVENESS_POINTS if liveness_passed else 0)
        )
        return max(0, min(100, round_half_up(raw)))
    
    def verify(
        self,
        challenge: Challenge,
        frames: Sequence[FrameRecord],
        now: Optional[float] = None
    ) -> VerificationResult:
        """
        Score a completed frame buffer against its challenge.
        
        Args:
            challenge: The challenge the subject was asked to perform
            frames: Frame records in capture order; must not be appended to
                while this runs
            now: Verification time; read from the clock when omitted
        
        Returns:
            VerificationResult: Verdict, display score, reasons and, on
            success only, an access token
        """
        current_time = self.clock() if now is None else now
        
        if challenge.is_expired(current_time):
            logger.info(f"Challenge {challenge.challenge_id} expired before verification")
            return VerificationResult(success=False, score=0, reasons=[self.REASON_EXPIRED])
        
        frame_count = len(frames)
        if frame_count < self.thresholds.min_frame_count:
            logger.info(
                f"Challenge {challenge.challenge_id} has {frame_count} frames, "
                f"needs {self.thresholds.min_frame_count}"
            )
            return VerificationResult(success=False, score=0, reasons=[self.REASON_INSUFFICIENT])
        
        gesture_pass_count = 0
        expression_pass_count = 0
        for frame in frames:
            gesture_hit, expression_hit = self.classify_frame(challenge, frame)
            gesture_pass_count += gesture_hit
            expression_pass_count += expression_hit
        
        gesture_ratio = gesture_pass_count / frame_count
        expression_ratio = expression_pass_count / frame_count
        eye_variance = population_variance([frame.eye_ratio for frame in frames])
        
        gesture_passed = gesture_ratio >= self.thresholds.min_pass_ratio
        expression_passed = expression_ratio >= self.thresholds.min_pass_ratio
        liveness_passed = eye_variance > self.thresholds.liveness_min_variance
        success = gesture_passed and expression_passed and liveness_passed
        
        score = self.compute_score(gesture_ratio, expression_ratio, liveness_passed)
        reasons = self._build_reasons(
            challenge,
            gesture_ratio if gesture_passed else None,
            expression_ratio if expression_passed else None,
            liveness_passed
        )
        
        logger.info(
            f"Verified challenge {challenge.challenge_id}: success={success}, score={score}, "
            f"gesture_ratio={gesture_ratio:.2f}, expression_ratio={expression_ratio:.2f}, "
            f"eye_variance={eye_variance:.3g}"
        )
        
        return VerificationResult(
            success=success,
            score=score,
            reasons=reasons,
            token=self.token_issuer.issue_token(challenge.challenge_id, now=current_time) if success else None
        )
    
    def _build_reasons(
        self,
        challenge: Challenge,
        gesture_ratio: Optional[float],
        expression_ratio: Optional[float],
        liveness_passed: bool
    ) -> List[str]:
        # A ratio of None marks a failed factor
        reasons = []
        
        if gesture_ratio is None:
            gesture_name = challenge.gesture.value.replace("_", " ")
            reasons.append(f"CRITICAL: Mandatory gesture ({gesture_name}) missing")
        else:
            reasons.append(f"Gesture confirmed: {round_half_up(gesture_ratio * 100)}% match")
        
        if expression_ratio is None:
            reasons.append(f"CRITICAL: Mandatory expression ({challenge.expression.value}) missing")
        else:
            reasons.append(f"Expression confirmed: {round_half_up(expression_ratio * 100)}% match")
        
        reasons.append(self.REASON_LIVENESS_PASSED if liveness_passed else self.REASON_LIVENESS_FAILED)
        
        if gesture_ratio is not None and expression_ratio is not None and liveness_passed:
            reasons.append(self.REASON_ALL_PASSED)
        
        return reasons
