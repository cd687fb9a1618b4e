"""
Tests for Data Models and Settings
"""

import pytest
from pydantic import ValidationError

from projectbot.config import ALL_COLUMNS, Settings
from projectbot.models import (
    CardContentType,
    CardPosition,
    CreateCardRequest,
    MoveCardRequest,
    ProjectCard,
    PullRequestEvent,
)


class TestWebhookModels:
    """Tests for webhook payload models."""

    def test_pull_request_event(self, sample_pr_payload: dict):
        event = PullRequestEvent.model_validate(sample_pr_payload)

        assert event.action == "opened"
        assert event.is_opened
        assert event.pull_request.title == "Add new feature"

    def test_closed_is_not_opened(self, sample_pr_payload: dict):
        sample_pr_payload["action"] = "closed"

        assert not PullRequestEvent.model_validate(sample_pr_payload).is_opened

    def test_pull_request_requires_node_id(self, sample_pr_payload: dict):
        del sample_pr_payload["pull_request"]["node_id"]

        with pytest.raises(ValidationError):
            PullRequestEvent.model_validate(sample_pr_payload)

    def test_unread_fields_are_dropped(self, sample_pr_payload: dict):
        event = PullRequestEvent.model_validate(sample_pr_payload)

        assert set(event.model_dump()) == {"action", "pull_request"}
        assert set(event.pull_request.model_dump()) == {"id", "node_id", "number", "title"}


class TestBoardModels:
    """Tests for project board models."""

    def test_card_ignores_unknown_fields(self):
        card = ProjectCard.model_validate({
            "id": 1,
            "node_id": "MDExOlByb2plY3RDYXJkMQ==",
            "note": None,
            "creator": {"login": "octocat"},
            "column_url": "https://api.github.com/projects/columns/367",
        })

        assert card.id == 1
        assert card.model_dump() == {"id": 1, "node_id": "MDExOlByb2plY3RDYXJkMQ=="}

    def test_create_card_request_defaults_to_pull_request(self):
        body = CreateCardRequest(content_id=7).model_dump(mode="json")

        assert body == {"content_id": 7, "content_type": "PullRequest"}

    def test_move_card_request_defaults_to_bottom(self):
        body = MoveCardRequest(column_id=3).model_dump(mode="json")

        assert body == {"position": "bottom", "column_id": 3}

    def test_enum_values(self):
        assert CardContentType.PULL_REQUEST.value == "PullRequest"
        assert CardPosition.BOTTOM.value == "bottom"


class TestSettings:

    def test_board_layout(self):
        assert ALL_COLUMNS == ["Backlog", "In progress", "In review", "Pending release"]

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.project_name == "Sprint"
        assert settings.github_api_base == "https://api.github.com"

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")
