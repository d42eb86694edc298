"""
API routes for the signature service
"""

from . import signatures

__all__ = ["signatures"]
