"""IdentityProvider implementations.

- StaticIdentityProvider: a single signed-in user (scripts and tests)
- ContextIdentityProvider: per-request identity bound through contextvars,
  used by the HTTP layer
"""

from contextvars import ContextVar, Token


class StaticIdentityProvider:
    """Holds one mutable signed-in identity."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id

    def current_user_id(self) -> str | None:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None


_current_user: ContextVar[str | None] = ContextVar("hustle_current_user", default=None)


class ContextIdentityProvider:
    """Reads the caller id bound to the current context.

    Example:
        ```python
        identity = ContextIdentityProvider()
        token = identity.bind("u1")
        try:
            ...  # service calls see "u1"
        finally:
            identity.reset(token)
        ```
    """

    def current_user_id(self) -> str | None:
        return _current_user.get()

    def bind(self, user_id: str | None) -> Token:
        return _current_user.set(user_id)

    def reset(self, token: Token) -> None:
        _current_user.reset(token)
