"""
Unit tests for LandmarkExtractor
"""
from types import SimpleNamespace

import pytest

from mfpol.models.data_models import HAND_NOT_DETECTED, VerificationThresholds
from mfpol.services.factor_rules import left_hand_raised, touching_nose
from mfpol.services.landmark_extractor import (
    CHIN,
    INDEX_FINGER_TIP,
    LOWER_EYELID,
    MOUTH_LEFT,
    MOUTH_RIGHT,
    NOSE_TIP,
    UPPER_EYELID,
    LEFT_BROW_INNER,
    RIGHT_BROW_INNER,
    WRIST,
    LandmarkExtractor
)


def face_mesh(**points):
    """468-point face mesh, every point centred unless overridden by index"""
    mesh = [(0.5, 0.5, 0.0)] * 468
    mesh = list(mesh)
    for index, point in points.items():
        mesh[int(index)] = point
    return mesh


def default_face():
    return face_mesh(**{
        str(NOSE_TIP): (0.5, 0.4),
        str(CHIN): (0.5, 0.6),
        str(UPPER_EYELID): (0.45, 0.350),
        str(LOWER_EYELID): (0.45, 0.365),
        str(MOUTH_LEFT): (0.44, 0.5),
        str(MOUTH_RIGHT): (0.56, 0.5),
        str(LEFT_BROW_INNER): (0.47, 0.30),
        str(RIGHT_BROW_INNER): (0.53, 0.32),
    })


def hand(wrist, index_tip):
    points = [(0.0, 0.0, 0.0)] * 21
    points = list(points)
    points[WRIST] = wrist
    points[INDEX_FINGER_TIP] = index_tip
    return points


@pytest.fixture
def extractor():
    return LandmarkExtractor()


class TestDefaults:
    
    def test_initial_snapshot(self, extractor):
        snapshot = extractor.snapshot(timestamp=5.0)
        
        assert snapshot.left_hand_y == HAND_NOT_DETECTED
        assert snapshot.right_hand_y == HAND_NOT_DETECTED
        assert snapshot.shoulder_y == 0.75
        assert snapshot.mouth_width == 0.0
        assert snapshot.brow_distance == 0.0
        assert snapshot.hand_nose_dist == 1.0
        assert snapshot.eye_ratio == 0.02
        assert snapshot.timestamp == 5.0


class TestFaceMeasurements:
    
    def test_face_derived_values(self, extractor):
        extractor.update_face(default_face())
        snapshot = extractor.snapshot(timestamp=0.0)
        
        assert snapshot.shoulder_y == pytest.approx(0.75)
        assert snapshot.eye_ratio == pytest.approx(0.015)
        assert snapshot.mouth_width == pytest.approx(0.12)
        assert snapshot.brow_distance == pytest.approx(0.02)
    
    def test_missing_face_keeps_previous_measurements(self, extractor):
        extractor.update_face(default_face())
        extractor.update_face(None)
        
        snapshot = extractor.snapshot(timestamp=0.0)
        
        assert snapshot.eye_ratio == pytest.approx(0.015)
        assert extractor.nose is None
    
    def test_truncated_mesh_is_ignored(self, extractor):
        extractor.update_face([(0.5, 0.5)] * 10)
        
        assert extractor.nose is None
        assert extractor.snapshot(timestamp=0.0).eye_ratio == 0.02
    
    def test_accepts_landmark_objects(self, extractor):
        mesh = [SimpleNamespace(x=x, y=y, z=0.0) for x, y, *_ in default_face()]
        
        extractor.update_face(mesh)
        
        assert extractor.snapshot(timestamp=0.0).mouth_width == pytest.approx(0.12)


class TestHandMeasurements:
    
    def test_hand_on_left_of_image_is_right_hand(self, extractor):
        extractor.update_hands([hand(wrist=(0.3, 0.4), index_tip=(0.3, 0.3))])
        snapshot = extractor.snapshot(timestamp=0.0)
        
        assert snapshot.right_hand_y == 0.4
        assert snapshot.left_hand_y == HAND_NOT_DETECTED
    
    def test_hand_on_right_of_image_is_left_hand(self, extractor):
        extractor.update_hands([hand(wrist=(0.7, 0.4), index_tip=(0.7, 0.3))])
        snapshot = extractor.snapshot(timestamp=0.0)
        
        assert snapshot.left_hand_y == 0.4
        assert snapshot.right_hand_y == HAND_NOT_DETECTED
    
    def test_no_hands_resets_hand_values(self, extractor):
        extractor.update_face(default_face())
        extractor.update_hands([hand(wrist=(0.7, 0.4), index_tip=(0.5, 0.41))])
        extractor.update_hands([])
        snapshot = extractor.snapshot(timestamp=0.0)
        
        assert snapshot.left_hand_y == HAND_NOT_DETECTED
        assert snapshot.right_hand_y == HAND_NOT_DETECTED
        assert snapshot.hand_nose_dist == 1.0
    
    def test_nose_distance_uses_closest_index_tip(self, extractor):
        extractor.update_face(default_face())
        extractor.update_hands([
            hand(wrist=(0.3, 0.8), index_tip=(0.5, 0.7)),
            hand(wrist=(0.7, 0.6), index_tip=(0.53, 0.44)),
        ])
        
        assert extractor.snapshot(timestamp=0.0).hand_nose_dist == pytest.approx(0.05)
    
    def test_nose_distance_needs_a_face(self, extractor):
        extractor.update_hands([hand(wrist=(0.7, 0.6), index_tip=(0.5, 0.4))])
        
        assert extractor.snapshot(timestamp=0.0).hand_nose_dist == 1.0
    
    def test_truncated_hand_is_skipped(self, extractor):
        extractor.update_hands([[(0.7, 0.4)] * 3])
        
        assert extractor.snapshot(timestamp=0.0).left_hand_y == HAND_NOT_DETECTED


class TestProcess:
    
    def test_touching_nose_frame_satisfies_rule(self, extractor):
        snapshot = extractor.process(
            default_face(),
            [hand(wrist=(0.6, 0.6), index_tip=(0.51, 0.41))],
            timestamp=12.0
        )
        
        assert snapshot.timestamp == 12.0
        assert touching_nose(snapshot, VerificationThresholds()) is True
    
    def test_raised_left_hand_frame_satisfies_rule(self, extractor):
        snapshot = extractor.process(
            default_face(),
            [hand(wrist=(0.8, 0.2), index_tip=(0.8, 0.1))],
            timestamp=0.0
        )
        
        assert left_hand_raised(snapshot, VerificationThresholds()) is True
    
    def test_reset_restores_defaults(self, extractor):
        extractor.process(default_face(), [hand(wrist=(0.8, 0.2), index_tip=(0.8, 0.1))])
        extractor.reset()
        
        assert extractor.snapshot(timestamp=0.0) == LandmarkExtractor().snapshot(timestamp=0.0)
