"""HTTP handlers for user profiles."""

from hustle_data.dto import UserResponse
from hustle_data.errors import HustleDataError
from hustle_data.services import UserService

from .errors import http_error, not_found


class UserHandler:
    """HTTP handlers for user operations."""

    def __init__(self, user_service: UserService) -> None:
        self._users = user_service

    async def get_user(self, user_id: str) -> UserResponse:
        """Handle GET /users/{id} requests.

        Raises:
            HTTPException: 404 if no such profile exists
        """
        try:
            user = await self._users.fetch_by_id(user_id)
        except HustleDataError as e:
            raise http_error(e, "get user") from e
        if user is None:
            raise not_found(f"user {user_id}")
        return UserResponse.model_validate(user, from_attributes=True)
