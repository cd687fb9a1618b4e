"""
Webhook Package

This package contains webhook handling components:
- handler: FastAPI route handler
- security: Signature verification and event decoding
- reconciler: Moves or creates the pull request's project card
"""

from projectbot.webhook.handler import router

__all__ = ["router"]
