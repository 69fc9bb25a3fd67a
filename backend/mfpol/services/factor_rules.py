"""
Per-frame classification rules for gesture and expression factors.

Each rule is a pure predicate over one landmark snapshot. Vertical
coordinates grow downwards, so a raised wrist has a *smaller* y than the
shoulder line.
"""
from typing import Callable, Dict, Sequence

import numpy as np

from ..models.data_models import (
    ExpressionType,
    GestureType,
    LandmarkSnapshot,
    VerificationThresholds
)

FactorRule = Callable[[LandmarkSnapshot, VerificationThresholds], bool]


def left_hand_raised(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return 0 < landmarks.left_hand_y < landmarks.shoulder_y


def right_hand_raised(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return 0 < landmarks.right_hand_y < landmarks.shoulder_y


def touching_nose(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return landmarks.hand_nose_dist < thresholds.touch_nose_max_dist


def smiling(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return landmarks.mouth_width > thresholds.smile_min_mouth_width


def frowning(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return landmarks.brow_distance < thresholds.frown_max_brow_distance


def eyes_closed(landmarks: LandmarkSnapshot, thresholds: VerificationThresholds) -> bool:
    return landmarks.eye_ratio < thresholds.blink_max_eye_ratio


GESTURE_RULES: Dict[GestureType, FactorRule] = {
    GestureType.LEFT_HAND_UP: left_hand_raised,
    GestureType.RIGHT_HAND_UP: right_hand_raised,
    GestureType.TOUCH_NOSE: touching_nose
}

EXPRESSION_RULES: Dict[ExpressionType, FactorRule] = {
    ExpressionType.SMILE: smiling,
    ExpressionType.FROWN: frowning,
    ExpressionType.BLINK: eyes_closed
}


def population_variance(values: Sequence[float]) -> float:
    """Variance over the whole series (ddof=0); 0.0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=np.float64)))
