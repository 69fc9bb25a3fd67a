"""
Landmark Extractor for turning detector output into landmark snapshots

Works on already-detected, normalized face-mesh and hand landmark points
(MediaPipe FaceMesh / Hands indexing). Running the detection models is left
to the capture pipeline.
"""
import logging
import time
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from ..models.data_models import HAND_NOT_DETECTED, LandmarkSnapshot

logger = logging.getLogger(__name__)

# Face mesh indices
NOSE_TIP = 1
CHIN = 152
UPPER_EYELID = 159
LOWER_EYELID = 145
MOUTH_LEFT = 61
MOUTH_RIGHT = 291
LEFT_BROW_INNER = 55
RIGHT_BROW_INNER = 285

# Hand indices
WRIST = 0
INDEX_FINGER_TIP = 8

# Offset from chin to the reference shoulder line
SHOULDER_OFFSET = 0.15
MAX_HAND_NOSE_DIST = 1.0


def _xy(point: Any) -> Tuple[float, float]:
    """Accept (x, y[, z]) sequences or landmark objects with .x/.y"""
    if hasattr(point, "x") and hasattr(point, "y"):
        return float(point.x), float(point.y)
    return float(point[0]), float(point[1])


class LandmarkExtractor:
    """
    Derives the per-frame measurements the verification engine consumes.
    
    Face and hand models report independently, so the extractor keeps the
    most recent value of every measurement and a snapshot merges them.
    """
    
    def __init__(self):
        self.reset()
    
    def reset(self) -> None:
        defaults = LandmarkSnapshot(timestamp=0.0)
        self.left_hand_y = defaults.left_hand_y
        self.right_hand_y = defaults.right_hand_y
        self.shoulder_y = defaults.shoulder_y
        self.mouth_width = defaults.mouth_width
        self.brow_distance = defaults.brow_distance
        self.hand_nose_dist = defaults.hand_nose_dist
        self.eye_ratio = defaults.eye_ratio
        self.nose = None
    
    def update_face(self, face_landmarks: Optional[Sequence[Any]]) -> None:
        """
        Update face-derived measurements from one face mesh.
        
        With no face, only the nose position is dropped; the other
        measurements keep their last values.
        """
        if not face_landmarks:
            self.nose = None
            return
        
        if len(face_landmarks) <= CHIN:
            logger.warning(f"Face mesh has {len(face_landmarks)} points, expected at least {CHIN + 1}")
            self.nose = None
            return
        
        nose = _xy(face_landmarks[NOSE_TIP])
        chin = _xy(face_landmarks[CHIN])
        
        self.nose = nose
        self.shoulder_y = chin[1] + SHOULDER_OFFSET
        self.eye_ratio = abs(_xy(face_landmarks[UPPER_EYELID])[1] - _xy(face_landmarks[LOWER_EYELID])[1])
        self.mouth_width = abs(_xy(face_landmarks[MOUTH_LEFT])[0] - _xy(face_landmarks[MOUTH_RIGHT])[0])
        self.brow_distance = abs(_xy(face_landmarks[LEFT_BROW_INNER])[1] - _xy(face_landmarks[RIGHT_BROW_INNER])[1])
    
    def update_hands(self, hands: Optional[Sequence[Sequence[Any]]]) -> None:
        """
        Update hand-derived measurements from all detected hands.
        
        In the unmirrored camera view the subject's right hand appears on
        the left half of the image (wrist x < 0.5).
        """
        self.left_hand_y = HAND_NOT_DETECTED
        self.right_hand_y = HAND_NOT_DETECTED
        self.hand_nose_dist = MAX_HAND_NOSE_DIST
        
        if not hands:
            return
        
        for hand in hands:
            if len(hand) <= INDEX_FINGER_TIP:
                continue
            
            wrist_x, wrist_y = _xy(hand[WRIST])
            if wrist_x < 0.5:
                self.right_hand_y = wrist_y
            else:
                self.left_hand_y = wrist_y
            
            if self.nose is not None:
                distance = float(np.linalg.norm(np.subtract(_xy(hand[INDEX_FINGER_TIP]), self.nose)))
                self.hand_nose_dist = min(self.hand_nose_dist, distance)
    
    def snapshot(self, timestamp: Optional[float] = None) -> LandmarkSnapshot:
        return LandmarkSnapshot(
            left_hand_y=self.left_hand_y,
            right_hand_y=self.right_hand_y,
            shoulder_y=self.shoulder_y,
            mouth_width=self.mouth_width,
            brow_distance=self.brow_distance,
            hand_nose_dist=self.hand_nose_dist,
            eye_ratio=self.eye_ratio,
            timestamp=time.time() if timestamp is None else timestamp
        )
    
    def process(
        self,
        face_landmarks: Optional[Sequence[Any]],
        hands: Optional[Sequence[Sequence[Any]]],
        timestamp: Optional[float] = None
    ) -> LandmarkSnapshot:
        """Apply one face result and one hands result, then snapshot"""
        self.update_face(face_landmarks)
        self.update_hands(hands)
        return self.snapshot(timestamp)
