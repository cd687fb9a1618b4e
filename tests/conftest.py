"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import hashlib
import hmac
import json
import os
from typing import Dict, Generator, List, Optional

# Settings are cached on first use, so the environment must be in place
# before anything from projectbot is imported.
os.environ.setdefault("WEBHOOK_SECRET", "test_secret")
os.environ.setdefault("GITHUB_TOKEN", "ghp_testtoken")
os.environ.setdefault("LOG_JSON_FORMAT", "false")

import pytest
from fastapi.testclient import TestClient

from projectbot.main import app
from projectbot.models import (
    CardContentType,
    CardPosition,
    Project,
    ProjectCard,
    ProjectColumn,
)
from projectbot.services.board_client import BoardAPIError
from projectbot.webhook.handler import get_board_client

WEBHOOK_SECRET = os.environ["WEBHOOK_SECRET"]

COLUMN_IDS = {
    "Backlog": 11,
    "In progress": 12,
    "In review": 13,
    "Pending release": 14,
}


class FakeBoardClient:
    """
    In-memory stand-in for BoardClient.

    Records every call in `calls` as (method, args) tuples. Set an entry in
    `errors` keyed by method name to make that call raise.
    """

    def __init__(self):
        self.projects: List[Project] = [Project(id=1, name="Sprint")]
        self.columns: List[ProjectColumn] = [
            ProjectColumn(id=column_id, name=name) for name, column_id in COLUMN_IDS.items()
        ]
        self.cards: Dict[int, List[ProjectCard]] = {column_id: [] for column_id in COLUMN_IDS.values()}
        self.errors: Dict[str, BoardAPIError] = {}
        self.calls: List[tuple] = []

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if method in self.errors:
            raise self.errors[method]

    def called(self, method: str) -> List[tuple]:
        return [args for name, args in self.calls if name == method]

    async def list_projects(self, owner: str, repo: str) -> List[Project]:
        self._record("list_projects", owner, repo)
        return self.projects

    async def list_project_columns(self, project_id: int) -> List[ProjectColumn]:
        self._record("list_project_columns", project_id)
        return self.columns

    async def list_project_cards(self, column_id: int) -> List[ProjectCard]:
        self._record("list_project_cards", column_id)
        return self.cards.get(column_id, [])

    async def create_project_card(
        self,
        column_id: int,
        content_id: int,
        content_type: CardContentType = CardContentType.PULL_REQUEST
    ) -> ProjectCard:
        self._record("create_project_card", column_id, content_id, content_type)
        return ProjectCard(id=999, node_id="CARD_NEW")

    async def move_project_card(
        self,
        card_id: int,
        column_id: int,
        position: CardPosition = CardPosition.BOTTOM
    ) -> None:
        self._record("move_project_card", card_id, column_id, position)


@pytest.fixture
def board() -> FakeBoardClient:
    """A fake board with the four standard columns and no cards."""
    return FakeBoardClient()


@pytest.fixture
def client(board: FakeBoardClient) -> Generator[TestClient, None, None]:
    """Create a test client whose board calls go to the fake board."""
    app.dependency_overrides[get_board_client] = lambda: board
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_pr_payload() -> dict:
    """Sample pull request webhook payload."""
    return {
        "action": "opened",
        "number": 42,
        "pull_request": {
            "id": 123456789,
            "node_id": "PR_1",
            "number": 42,
            "state": "open",
            "title": "Add new feature",
            "html_url": "https://github.com/owner/repo/pull/42",
        },
        "repository": {
            "id": 111,
            "name": "repo",
            "full_name": "owner/repo",
            "owner": {
                "login": "owner",
                "id": 1
            }
        },
        "sender": {
            "login": "testuser",
            "id": 12345
        }
    }


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Compute the X-Hub-Signature-256 header value for a body."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def webhook_headers(body: bytes, event_type: Optional[str] = "pull_request") -> Dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "X-Hub-Signature-256": sign(body),
        "X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958",
    }
    if event_type:
        headers["X-GitHub-Event"] = event_type
    return headers


@pytest.fixture
def post_webhook(client: TestClient):
    """Post a correctly signed delivery to the webhook endpoint."""
    def _post(payload: dict, event_type: Optional[str] = "pull_request"):
        body = json.dumps(payload).encode()
        return client.post(
            "/api/projectbot",
            content=body,
            headers=webhook_headers(body, event_type)
        )
    return _post
