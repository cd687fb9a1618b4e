"""
Data Models Module

Pydantic models for the webhook payloads we accept and the project board
objects returned by the GitHub REST API.

Design Decisions:
- Webhook models only declare the fields we read; GitHub sends far more
- Board models ignore unknown fields so API additions don't break parsing
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

OPENED_ACTION = "opened"


# =============================================================================
# Enums
# =============================================================================

class CardContentType(str, Enum):
    """Content types a project card can point at."""
    PULL_REQUEST = "PullRequest"


class CardPosition(str, Enum):
    """Positions accepted by the card move endpoint."""
    BOTTOM = "bottom"


class ReconcileOutcome(str, Enum):
    """What the reconciler did with an event."""
    IGNORED = "ignored"
    CREATED = "created"
    MOVED = "moved"


# =============================================================================
# GitHub Webhook Models
# =============================================================================

class GitHubPullRequest(BaseModel):
    """
    Pull request information from webhook.

    Attributes:
        id: Numeric identifier, used as the card's content id
        node_id: Global node identifier, matched against card node ids
        number: Pull request number within the repository
        title: Pull request title, used for log context
    """
    id: int
    node_id: str
    number: int
    title: str


class PullRequestEvent(BaseModel):
    """Pull request webhook payload."""
    action: str
    pull_request: GitHubPullRequest

    @property
    def is_opened(self) -> bool:
        return self.action == OPENED_ACTION


# =============================================================================
# Project Board Models
# =============================================================================

class Project(BaseModel):
    """A classic repository project board."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class ProjectColumn(BaseModel):
    """A column (workflow stage) on a project board."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class ProjectCard(BaseModel):
    """
    A card on a project board.

    Which column a card sits in is not part of the card itself; it is
    whichever column listing the card was returned from.
    """
    model_config = ConfigDict(extra="ignore")

    id: int
    node_id: Optional[str] = None


class CreateCardRequest(BaseModel):
    """Body of the create-project-card call."""
    content_id: int = Field(description="Numeric id of the issue or pull request")
    content_type: CardContentType = Field(default=CardContentType.PULL_REQUEST)


class MoveCardRequest(BaseModel):
    """Body of the move-project-card call."""
    position: CardPosition = Field(default=CardPosition.BOTTOM)
    column_id: int = Field(description="Destination column id")
