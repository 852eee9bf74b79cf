"""
API routes for wellness service
"""

from . import auth, coaches, emails, health

__all__ = ["auth", "coaches", "emails", "health"]
