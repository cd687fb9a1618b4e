"""
Project Board API Client Module

Async client for the classic GitHub Projects REST API. It covers the five
calls the reconciler needs: listing projects, columns and cards, creating a
card and moving a card.

Design Decisions:
- Use httpx for async HTTP requests
- Authenticate with a static access token supplied through the environment
- Follow pagination on list endpoints
- Never retry: the first failure is reported to the caller with its status code
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from projectbot.config import Settings, get_settings
from projectbot.logging_config import get_logger
from projectbot.models import (
    CardContentType,
    CardPosition,
    CreateCardRequest,
    MoveCardRequest,
    Project,
    ProjectCard,
    ProjectColumn,
)

logger = get_logger(__name__)

# Classic projects are still served behind the inertia preview media type.
PROJECTS_MEDIA_TYPE = "application/vnd.github.inertia-preview+json"

PER_PAGE = 100

ModelT = TypeVar("ModelT", bound=BaseModel)


class BoardAPIError(Exception):
    """Raised when a project board API call fails."""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class BoardClient:
    """
    Async client for a repository's classic project board.

    A client owns one httpx.AsyncClient. Create one per inbound request and
    close it afterwards, or use it as an async context manager.

    Usage:
        async with BoardClient(settings) as client:
            projects = await client.list_projects("owner", "repo")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the board client.

        Args:
            settings: Application settings (defaults to the cached settings)
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            base_url=self.settings.github_api_base,
            headers=self._get_headers(),
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BoardClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_headers(self) -> Dict[str, str]:
        """Get authenticated headers for API requests."""
        return {
            "Authorization": f"Bearer {self.settings.github_token}",
            "Accept": PROJECTS_MEDIA_TYPE,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _check_rate_limit(self, response: httpx.Response) -> None:
        """Log a warning when the remaining API quota runs low."""
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining and remaining.isdigit() and int(remaining) < 100:
            logger.warning(
                "GitHub API rate limit running low",
                remaining=int(remaining),
                reset_at=response.headers.get("x-ratelimit-reset")
            )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer GitHub's own error message over the raw body."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return f"{response.request.method} {response.request.url}: {response.status_code} {body['message']}"
        return f"{response.request.method} {response.request.url}: {response.status_code}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make an authenticated request to the GitHub API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments to pass to httpx

        Returns:
            httpx.Response object

        Raises:
            BoardAPIError: If the request fails or GitHub returns an error status
        """
        try:
            response = await self._client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "GitHub API request failed",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__
            )
            raise BoardAPIError(f"{method} {endpoint}: {e}") from e

        self._check_rate_limit(response)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                status_code=response.status_code,
                endpoint=endpoint,
                error=error_body[:500]
            )
            raise BoardAPIError(
                self._error_message(response),
                status_code=response.status_code,
                response_body=error_body
            )

        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Parse a successful response body as JSON."""
        try:
            return response.json()
        except ValueError as e:
            raise BoardAPIError(
                f"{response.request.method} {response.request.url}: unreadable response body",
                status_code=response.status_code,
                response_body=response.text
            ) from e

    async def _get_all(self, endpoint: str, model: Type[ModelT]) -> List[ModelT]:
        """Fetch every page of a list endpoint and parse each item as model."""
        items: List[ModelT] = []
        page = 1

        while True:
            response = await self._request(
                "GET",
                endpoint,
                params={"page": page, "per_page": PER_PAGE}
            )
            page_items = self._decode(response)
            if not isinstance(page_items, list):
                raise BoardAPIError(
                    f"GET {endpoint}: expected a list, got {type(page_items).__name__}",
                    status_code=response.status_code,
                    response_body=response.text
                )

            try:
                items.extend(model.model_validate(item) for item in page_items)
            except ValidationError as e:
                raise BoardAPIError(
                    f"GET {endpoint}: unexpected {model.__name__} data: {e}",
                    status_code=response.status_code,
                    response_body=response.text
                ) from e

            if len(page_items) < PER_PAGE:
                break

            page += 1

        return items

    async def list_projects(self, owner: str, repo: str) -> List[Project]:
        """List the classic project boards of a repository."""
        logger.debug("Listing projects", owner=owner, repo=repo)
        return await self._get_all(f"/repos/{owner}/{repo}/projects", Project)

    async def list_project_columns(self, project_id: int) -> List[ProjectColumn]:
        """List the columns of a project board."""
        logger.debug("Listing project columns", project_id=project_id)
        return await self._get_all(f"/projects/{project_id}/columns", ProjectColumn)

    async def list_project_cards(self, column_id: int) -> List[ProjectCard]:
        """List every card in a column."""
        logger.debug("Listing project cards", column_id=column_id)
        return await self._get_all(f"/projects/columns/{column_id}/cards", ProjectCard)

    async def create_project_card(
        self,
        column_id: int,
        content_id: int,
        content_type: CardContentType = CardContentType.PULL_REQUEST
    ) -> Optional[ProjectCard]:
        """
        Create a card for an issue or pull request in a column.

        Args:
            column_id: Column that receives the card
            content_id: Numeric id of the issue or pull request
            content_type: Kind of content the card points at

        Returns:
            The created card, or None when GitHub accepted the request but
            its reply can't be parsed
        """
        payload = CreateCardRequest(content_id=content_id, content_type=content_type)
        response = await self._request(
            "POST",
            f"/projects/columns/{column_id}/cards",
            json=payload.model_dump(mode="json")
        )

        logger.info(
            "Project card created",
            column_id=column_id,
            content_id=content_id,
            content_type=payload.content_type.value
        )

        # The card exists upstream once the POST succeeds.
        try:
            return ProjectCard.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(
                "Could not parse created project card",
                column_id=column_id,
                status_code=response.status_code,
                error=str(e)
            )
            return None

    async def move_project_card(
        self,
        card_id: int,
        column_id: int,
        position: CardPosition = CardPosition.BOTTOM
    ) -> None:
        """
        Move a card to a position within a column.

        Args:
            card_id: Card to move
            column_id: Destination column
            position: "top" or "bottom" of the destination column
        """
        payload = MoveCardRequest(position=position, column_id=column_id)
        await self._request(
            "POST",
            f"/projects/columns/cards/{card_id}/moves",
            json=payload.model_dump(mode="json")
        )

        logger.info(
            "Project card moved",
            card_id=card_id,
            column_id=column_id,
            position=payload.position.value
        )
