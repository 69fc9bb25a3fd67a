"""
Shared fixtures for the proof-of-life test suite
"""
import pytest

from mfpol.models.data_models import (
    Challenge,
    ExpressionType,
    FrameRecord,
    GestureType,
    LandmarkSnapshot
)

ISSUED_AT = 1_000.0


def build_challenge(gesture, expression, issued_at=ISSUED_AT, ttl=45.0, challenge_id="TESTCH01"):
    return Challenge(
        challenge_id=challenge_id,
        gesture=gesture,
        expression=expression,
        instruction="test",
        issued_at=issued_at,
        expires_at=issued_at + ttl
    )


def compliant_landmarks(gesture, expression, index, timestamp=None):
    """Landmarks that satisfy both factors, with a varying eye aperture"""
    fields = {"eye_ratio": 0.02 if index % 2 == 0 else 0.025}
    if gesture == GestureType.LEFT_HAND_UP:
        fields["left_hand_y"] = 0.3
    elif gesture == GestureType.RIGHT_HAND_UP:
        fields["right_hand_y"] = 0.3
    else:
        fields["hand_nose_dist"] = 0.05
    
    if expression == ExpressionType.SMILE:
        fields["mouth_width"] = 0.1
    elif expression == ExpressionType.FROWN:
        fields["brow_distance"] = 0.01
    else:
        fields["eye_ratio"] = 0.008 if index % 2 == 0 else 0.014
    
    fields["timestamp"] = ISSUED_AT + index * 0.033 if timestamp is None else timestamp
    return LandmarkSnapshot(**fields)


@pytest.fixture
def make_challenge():
    """Factory for challenges with a fixed issue time"""
    return build_challenge


@pytest.fixture
def make_frames():
    """Factory building ``count`` frame records from per-index landmark overrides"""
    def _make(count, **fields):
        frames = []
        for i in range(count):
            values = {
                key: (value(i) if callable(value) else value)
                for key, value in fields.items()
            }
            values.setdefault("timestamp", ISSUED_AT + i * 0.033)
            frames.append(FrameRecord.from_landmarks(LandmarkSnapshot(**values)))
        return frames
    return _make


@pytest.fixture
def make_compliant_frames():
    def _make(gesture, expression, count=20):
        return [
            FrameRecord.from_landmarks(compliant_landmarks(gesture, expression, i))
            for i in range(count)
        ]
    return _make


@pytest.fixture
def make_compliant_landmarks():
    return compliant_landmarks
