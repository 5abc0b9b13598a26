"""
Client for the rent-splitting REST API server.

Only the provisioning call used by the auth flow lives here: role selection
creates the app_user record that moves a session from "authenticating" to
"authenticated". Requests carry the session's access token as a Bearer
token; the API server verifies it with the identity provider.
"""

import logging
from dataclasses import dataclass

import httpx

from rentcalc.core.config import settings
from rentcalc.models import UserRole

logger = logging.getLogger(__name__)

# HTTP timeout (seconds)
REST_API_TIMEOUT = 30.0


class RentApiError(Exception):
    """Exception raised when the REST API could not be reached or answered garbage."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


@dataclass(frozen=True)
class SelectUserTypeResult:
    """Outcome of a role selection request."""

    success: bool
    user_id: str | None = None
    role: UserRole | None = None
    error: str | None = None


class RentApiClient:
    """
    HTTP client for the REST API server.

    Usage:
        client = RentApiClient()
        result = await client.select_user_type(UserRole.OWNER, session.access_token)
        if not result.success:
            print(result.error)  # e.g. "User type already selected"
    """

    def __init__(self, base_url: str | None = None, timeout: float = REST_API_TIMEOUT):
        self.base_url = (base_url or settings.REST_API_URL).rstrip("/")
        self.timeout = timeout

    async def select_user_type(self, role: UserRole, access_token: str) -> SelectUserTypeResult:
        """
        Provision the application user with the chosen role.

        The server rejects invalid roles and repeated selections with a JSON
        body {"success": false, "error": "..."}; those come back as an
        unsuccessful result rather than an exception.

        Args:
            role: Role chosen by the user
            access_token: Access token of the current session

        Returns:
            SelectUserTypeResult

        Raises:
            RentApiError: If the request failed or the response was not JSON
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/select-user-type",
                    json={"user_type": role.value},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"REST API request failed: {e}")
            raise RentApiError(f"Could not reach REST API: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise RentApiError(
                f"Unexpected response from REST API (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        if response.status_code != 200 or not data.get("success"):
            error = data.get("error") or f"HTTP {response.status_code}"
            logger.info(f"Role selection rejected ({response.status_code}): {error}")
            return SelectUserTypeResult(success=False, error=error)

        try:
            selected = UserRole(data.get("user_type", role.value))
        except ValueError as e:
            raise RentApiError(
                f"REST API returned unknown user_type: {data.get('user_type')}",
                status_code=response.status_code,
            ) from e

        return SelectUserTypeResult(success=True, user_id=data.get("user_id"), role=selected)
