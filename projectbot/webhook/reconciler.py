"""
Card Reconciler Module

Puts the card for a newly opened pull request into the "In review" column of
the repository's project board, creating the card if the pull request has
none yet.

Each step is a single sequential API call. The first failure aborts the
run with a ReconcileError carrying the HTTP status to report.
"""

from typing import Dict, List, Optional

from fastapi import status

from projectbot.config import ALL_COLUMNS, IN_REVIEW, Settings, get_settings
from projectbot.logging_config import get_logger
from projectbot.models import (
    CardContentType,
    CardPosition,
    Project,
    ProjectCard,
    ProjectColumn,
    PullRequestEvent,
    ReconcileOutcome,
)
from projectbot.services.board_client import BoardAPIError, BoardClient

logger = get_logger(__name__)


class ReconcileError(Exception):
    """A failure that ends processing of the current event."""
    def __init__(self, message: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(message)
        self.status_code = status_code


class ProjectNotFoundError(ReconcileError):
    """The repository's first project board is not the configured one."""
    pass


class ColumnNotFoundError(ReconcileError):
    """A required column is missing from the project board."""
    pass


def _upstream_error(e: BoardAPIError) -> ReconcileError:
    """Carry an upstream error status through, falling back to 401."""
    if e.status_code and e.status_code >= 400:
        return ReconcileError(str(e), e.status_code)
    return ReconcileError(str(e), status.HTTP_401_UNAUTHORIZED)


def resolve_columns(
    columns: List[ProjectColumn],
    names: List[str] = ALL_COLUMNS
) -> Dict[str, ProjectColumn]:
    """
    Map each required column name to the board's column.

    When several columns share a name, the last one listed is used.

    Raises:
        ColumnNotFoundError: For the first name, in order, with no column
    """
    by_name: Dict[str, ProjectColumn] = {}
    for column in columns:
        if column.name in names:
            by_name[column.name] = column

    for name in names:
        if name not in by_name:
            raise ColumnNotFoundError(f"column {name} does not exist")

    return by_name


def find_card(cards: List[ProjectCard], node_id: str) -> Optional[ProjectCard]:
    """Return the first card referencing node_id, if any."""
    for card in cards:
        if card.node_id == node_id:
            return card
    return None


class CardReconciler:
    """
    Moves or creates the project card for an opened pull request.

    Usage:
        reconciler = CardReconciler(board_client)
        outcome = await reconciler.reconcile(event)
    """

    def __init__(self, client: BoardClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    async def reconcile(self, event: PullRequestEvent) -> ReconcileOutcome:
        """
        Handle one pull request event.

        Returns:
            IGNORED for actions other than "opened", otherwise CREATED or
            MOVED depending on whether the card already existed

        Raises:
            ReconcileError: On any lookup or API failure
        """
        if not event.is_opened:
            logger.debug("Ignoring pull request action", action=event.action)
            return ReconcileOutcome.IGNORED

        pr = event.pull_request

        project = await self._get_project()
        columns = await self._get_columns(project)
        cards = await self._get_cards(columns)

        in_review = columns[IN_REVIEW]
        card = find_card(cards, pr.node_id)

        if card is None:
            try:
                created = await self.client.create_project_card(
                    in_review.id,
                    content_id=pr.id,
                    content_type=CardContentType.PULL_REQUEST
                )
            except BoardAPIError as e:
                logger.error("Error creating project card", pr_title=pr.title, error=str(e))
                raise _upstream_error(e) from e

            logger.info(
                "Created card for pull request",
                pr_number=pr.number,
                card_id=created.id if created else None,
                column=IN_REVIEW
            )
            return ReconcileOutcome.CREATED

        try:
            await self.client.move_project_card(
                card.id,
                column_id=in_review.id,
                position=CardPosition.BOTTOM
            )
        except BoardAPIError as e:
            logger.error("Error moving project card", pr_title=pr.title, card_id=card.id, error=str(e))
            raise _upstream_error(e) from e

        logger.info("Moved card for pull request", pr_number=pr.number, card_id=card.id, column=IN_REVIEW)
        return ReconcileOutcome.MOVED

    async def _get_project(self) -> Project:
        """Fetch the repository's project board and check its name."""
        try:
            projects = await self.client.list_projects(
                self.settings.repo_owner,
                self.settings.repo_name
            )
        except BoardAPIError as e:
            logger.error("Error getting project name", error=str(e))
            raise ReconcileError(str(e)) from e

        if not projects:
            logger.error("Repository has no projects", repo=f"{self.settings.repo_owner}/{self.settings.repo_name}")
            raise ProjectNotFoundError(f"project {self.settings.project_name} not found")

        project = projects[0]
        if project.name != self.settings.project_name:
            logger.error("Project not found", project=project.name, expected=self.settings.project_name)
            raise ProjectNotFoundError(f"project {project.name} not found")

        return project

    async def _get_columns(self, project: Project) -> Dict[str, ProjectColumn]:
        try:
            columns = await self.client.list_project_columns(project.id)
        except BoardAPIError as e:
            logger.error("Error getting project columns", project_id=project.id, error=str(e))
            raise ReconcileError(str(e)) from e

        try:
            return resolve_columns(columns)
        except ColumnNotFoundError as e:
            logger.error("Error getting project columns", project_id=project.id, error=str(e))
            raise

    async def _get_cards(self, columns: Dict[str, ProjectColumn]) -> List[ProjectCard]:
        """Collect the cards of every column, in board order."""
        cards: List[ProjectCard] = []
        for name in ALL_COLUMNS:
            try:
                cards.extend(await self.client.list_project_cards(columns[name].id))
            except BoardAPIError as e:
                logger.error("Error listing project cards", column=name, error=str(e))
                raise _upstream_error(e) from e
        return cards
