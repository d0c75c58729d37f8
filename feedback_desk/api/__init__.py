"""
HTTP API package for Feedback Desk.
"""

from feedback_desk.api.app import create_app

__all__ = ["create_app"]
