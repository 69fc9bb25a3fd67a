"""
Configuration management for the application
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration"""
    
    # Challenge Configuration
    CHALLENGE_TTL_SECONDS = float(os.getenv('CHALLENGE_TTL_SECONDS', '45'))
    MAX_FRAMES_PER_SESSION = int(os.getenv('MAX_FRAMES_PER_SESSION', '2000'))
    
    # Verification Configuration
    MIN_FRAME_COUNT = int(os.getenv('MIN_FRAME_COUNT', '15'))
    MIN_PASS_RATIO = float(os.getenv('MIN_PASS_RATIO', '0.15'))
    SCORE_SATURATION_RATIO = float(os.getenv('SCORE_SATURATION_RATIO', '0.4'))
    LIVENESS_MIN_VARIANCE = float(os.getenv('LIVENESS_MIN_VARIANCE', '1e-9'))
    
    # Classification thresholds (normalized landmark units)
    TOUCH_NOSE_MAX_DIST = float(os.getenv('TOUCH_NOSE_MAX_DIST', '0.20'))
    SMILE_MIN_MOUTH_WIDTH = float(os.getenv('SMILE_MIN_MOUTH_WIDTH', '0.07'))
    FROWN_MAX_BROW_DISTANCE = float(os.getenv('FROWN_MAX_BROW_DISTANCE', '0.03'))
    BLINK_MAX_EYE_RATIO = float(os.getenv('BLINK_MAX_EYE_RATIO', '0.012'))
    
    # Token Configuration
    TOKEN_PREFIX = os.getenv('TOKEN_PREFIX', 'MFPOL')
    TOKEN_VALIDITY_MINUTES = int(os.getenv('TOKEN_VALIDITY_MINUTES', '5'))
    
    # Server Configuration
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '8000'))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


config = Config()
