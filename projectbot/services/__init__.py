"""
Services Package

- board_client: GitHub classic project board API client
"""

from projectbot.services.board_client import BoardAPIError, BoardClient

__all__ = [
    "BoardAPIError",
    "BoardClient",
]
