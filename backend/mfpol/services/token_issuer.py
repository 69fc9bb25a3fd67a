"""
Token Issuer Service

Issues ephemeral bearer tokens for successful proof-of-life verifications.

The trailing ``sig_`` segment is a random placeholder, not a signature. These
tokens carry no integrity guarantee and anyone can forge one; a deployment
that authorizes anything with them must swap in a real signing scheme.
"""
import base64
import logging
import math
import random
import secrets
import time
from typing import Callable, Optional

from ..config import config
from ..models.data_models import TokenValidation

logger = logging.getLogger(__name__)


def _b64encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


class TokenIssuer:
    """
    Generates and inspects placeholder access tokens.
    
    Format: ``<PREFIX>.<b64 challenge_id>.<b64 issued_at>.<b64 expires_at>.sig_<hex>``
    """
    
    SIGNATURE_PREFIX = "sig_"
    MAX_SIGNATURE = 0xFFFFFF
    
    def __init__(
        self,
        validity_minutes: Optional[int] = None,
        prefix: Optional[str] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.validity_minutes = config.TOKEN_VALIDITY_MINUTES if validity_minutes is None else validity_minutes
        self.prefix = prefix or config.TOKEN_PREFIX
        self.rng = rng or secrets.SystemRandom()
        self.clock = clock or time.time
    
    def issue_token(self, challenge_id: str, now: Optional[float] = None) -> str:
        """
        Build a bearer token for a verified challenge.
        
        Args:
            challenge_id: Identifier of the challenge that passed
            now: Issue time; read from the clock when omitted
        
        Returns:
            Opaque token string valid for ``validity_minutes``
        """
        issued_at = self.clock() if now is None else now
        expires_at = issued_at + self.validity_minutes * 60
        placeholder_sig = format(self.rng.randint(0, self.MAX_SIGNATURE), "x")
        
        token = ".".join([
            self.prefix,
            _b64encode(challenge_id),
            _b64encode(f"{issued_at:.3f}"),
            _b64encode(f"{expires_at:.3f}"),
            f"{self.SIGNATURE_PREFIX}{placeholder_sig}"
        ])
        logger.debug(f"Issued token for challenge {challenge_id}")
        return token
    
    def validate_token(self, token: str, now: Optional[float] = None) -> TokenValidation:
        """
        Parse a token and check its validity window.
        
        This is a structural check only. ``valid=True`` means well formed and
        unexpired, not authentic.
        
        Args:
            token: Token string to inspect
            now: Reference time; read from the clock when omitted
        
        Returns:
            TokenValidation with the decoded claims or an error message
        """
        current_time = self.clock() if now is None else now
        parts = token.split(".") if token else []
        
        if len(parts) != 5 or parts[0] != self.prefix:
            return TokenValidation(valid=False, error="Malformed token")
        
        signature = parts[4]
        if not signature.startswith(self.SIGNATURE_PREFIX):
            return TokenValidation(valid=False, error="Missing signature segment")
        
        try:
            int(signature[len(self.SIGNATURE_PREFIX):], 16)
            challenge_id = _b64decode(parts[1])
            issued_at = float(_b64decode(parts[2]))
            expires_at = float(_b64decode(parts[3]))
        except ValueError as e:
            return TokenValidation(valid=False, error=f"Invalid token: {e}")
        
        if not (math.isfinite(issued_at) and math.isfinite(expires_at)):
            return TokenValidation(valid=False, error="Invalid token claims")
        
        if not challenge_id or expires_at <= issued_at:
            return TokenValidation(valid=False, error="Invalid token claims")
        
        if current_time > expires_at:
            return TokenValidation(
                valid=False,
                challenge_id=challenge_id,
                issued_at=issued_at,
                expires_at=expires_at,
                error="Token has expired"
            )
        
        return TokenValidation(
            valid=True,
            challenge_id=challenge_id,
            issued_at=issued_at,
            expires_at=expires_at
        )
