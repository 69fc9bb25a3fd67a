"""
Multi-factor proof-of-life challenge verification
"""
__version__ = "1.0.0"
