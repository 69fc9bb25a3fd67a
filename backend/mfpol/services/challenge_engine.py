"""
Challenge Engine for generating random verification challenges
"""
import logging
import random
import secrets
import string
import time
from typing import Callable, Optional

from ..config import config
from ..models.data_models import Challenge, ExpressionType, GestureType

logger = logging.getLogger(__name__)


class ChallengeEngine:
    """
    Issues unpredictable gesture + expression challenges with a fixed expiry.
    
    Gesture and expression are drawn independently and uniformly. The random
    source and clock are injectable so tests can pin both down.
    """
    
    GESTURE_POOL = list(GestureType)
    EXPRESSION_POOL = list(ExpressionType)
    
    # Human-readable instructions for each gesture
    GESTURE_INSTRUCTIONS = {
        GestureType.LEFT_HAND_UP: "Raise your left hand above your shoulder",
        GestureType.RIGHT_HAND_UP: "Raise your right hand above your shoulder",
        GestureType.TOUCH_NOSE: "Touch your nose with your index finger"
    }
    
    # Human-readable instructions for each expression
    EXPRESSION_INSTRUCTIONS = {
        ExpressionType.SMILE: "smile",
        ExpressionType.FROWN: "frown",
        ExpressionType.BLINK: "blink"
    }
    
    ID_ALPHABET = string.ascii_uppercase + string.digits
    ID_LENGTH = 8
    
    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            ttl_seconds: Challenge window length (defaults to config, 45s)
            rng: Random source; defaults to the OS CSPRNG
            clock: Returns the current POSIX time in seconds
        """
        self.ttl_seconds = config.CHALLENGE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.rng = rng or secrets.SystemRandom()
        self.clock = clock or time.time
    
    def generate_challenge_id(self) -> str:
        """
        Generate an uppercase alphanumeric challenge identifier.
        
        Collisions are possible but vanishingly rare; the id is a label,
        not a secret.
        """
        return "".join(self.rng.choice(self.ID_ALPHABET) for _ in range(self.ID_LENGTH))
    
    def build_instruction(self, gesture: GestureType, expression: ExpressionType) -> str:
        return f"{self.GESTURE_INSTRUCTIONS[gesture]} and {self.EXPRESSION_INSTRUCTIONS[expression]}"
    
    def generate_challenge(self, now: Optional[float] = None) -> Challenge:
        """
        Generate a fresh challenge.
        
        Args:
            now: Issue time; read from the clock when omitted
            
        Returns:
            Challenge: Immutable challenge expiring ``ttl_seconds`` after issue
        """
        issued_at = self.clock() if now is None else now
        gesture = self.rng.choice(self.GESTURE_POOL)
        expression = self.rng.choice(self.EXPRESSION_POOL)
        
        challenge = Challenge(
            challenge_id=self.generate_challenge_id(),
            gesture=gesture,
            expression=expression,
            instruction=self.build_instruction(gesture, expression),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl_seconds
        )
        
        logger.info(
            f"Issued challenge {challenge.challenge_id}: "
            f"gesture={gesture.value}, expression={expression.value}"
        )
        return challenge
