"""
WebSocket handler for streaming landmark frames during a challenge window.

This module provides the WebSocketHandler class that manages WebSocket
connections, landmark message decoding, challenge delivery, and verdict
feedback.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..models.data_models import (
    Challenge,
    FeedbackType,
    LandmarkSnapshot,
    VerificationFeedback,
    VerificationResult
)

logger = logging.getLogger(__name__)


class WebSocketHandler:
    """
    Manages WebSocket communication for a single challenge window.
    
    Inbound messages are JSON objects with a ``type`` of ``landmarks``
    (carrying a ``landmarks`` object) or ``finalize``.
    """
    
    MESSAGE_LANDMARKS = "landmarks"
    MESSAGE_FINALIZE = "finalize"
    
    async def handle_connection(self, websocket: WebSocket, challenge_id: str) -> None:
        """Accept the connection for a challenge"""
        await websocket.accept()
        logger.info(f"WebSocket connection established for challenge {challenge_id}")
    
    async def receive_message(self, websocket: WebSocket) -> Optional[Dict[str, Any]]:
        """
        Receive and parse one JSON message from the client.
        
        Returns:
            The decoded message, or None if it is not a JSON object
        
        Raises:
            WebSocketDisconnect: If the client went away
        """
        try:
            data = await websocket.receive_text()
            message = json.loads(data)
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected while receiving message")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON received: {e}")
            return None
        
        if not isinstance(message, dict):
            logger.error(f"Ignoring non-object message: {type(message).__name__}")
            return None
        return message
    
    def parse_landmarks(self, message: Dict[str, Any]) -> Optional[LandmarkSnapshot]:
        """Decode the landmark payload of a ``landmarks`` message"""
        payload = message.get("landmarks")
        if not isinstance(payload, dict):
            return None
        try:
            return LandmarkSnapshot.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Invalid landmark payload: {e.error_count()} errors")
            return None
    
    async def send_challenge(self, websocket: WebSocket, challenge: Challenge) -> None:
        """Send the issued challenge to the client"""
        await self.send_feedback(
            websocket,
            VerificationFeedback(
                type=FeedbackType.CHALLENGE_ISSUED,
                message=f"Challenge: {challenge.instruction}",
                data=challenge.model_dump(mode="json")
            )
        )
        logger.debug(f"Sent challenge {challenge.challenge_id}: {challenge.instruction}")
    
    async def send_result(self, websocket: WebSocket, result: VerificationResult) -> None:
        """Send the final verdict"""
        await self.send_feedback(
            websocket,
            VerificationFeedback(
                type=FeedbackType.VERIFICATION_SUCCESS if result.success else FeedbackType.VERIFICATION_FAILED,
                message="Verification succeeded" if result.success else "Verification failed",
                data=result.model_dump(mode="json")
            )
        )
    
    async def send_feedback(self, websocket: WebSocket, feedback: VerificationFeedback) -> None:
        """
        Send a feedback message to the client.
        
        Raises:
            Exception: Propagates transport errors after logging them
        """
        try:
            await websocket.send_json(feedback.model_dump(mode="json"))
            logger.debug(f"Sent feedback: {feedback.type.value}")
        except Exception as e:
            logger.error(f"Error sending feedback: {e}")
            raise
    
    async def close_connection(
        self,
        websocket: WebSocket,
        code: int = 1000,
        reason: str = "Normal closure"
    ) -> None:
        """Close the WebSocket connection gracefully"""
        try:
            await websocket.close(code=code, reason=reason)
            logger.info(f"WebSocket closed: {reason} (code: {code})")
        except Exception as e:
            logger.error(f"Error closing WebSocket: {e}")
