"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from hustle_data.config import configure_logging, settings
from hustle_data.handlers import CacheHandler, PostHandler, ReviewHandler, UserHandler
from hustle_data.repositories import ContextIdentityProvider
from hustle_data.services import ServiceContainer

logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Check lifespan setup.")
    return value


def get_container(request: Request) -> ServiceContainer:
    """Dependency injection for the ServiceContainer from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The ServiceContainer instance from app.state

    Raises:
        RuntimeError: If the container is not initialized
    """
    return _from_state(request, "container")


def get_post_handler(request: Request) -> PostHandler:
    return _from_state(request, "post_handler")


def get_review_handler(request: Request) -> ReviewHandler:
    return _from_state(request, "review_handler")


def get_user_handler(request: Request) -> UserHandler:
    return _from_state(request, "user_handler")


def get_cache_handler(request: Request) -> CacheHandler:
    return _from_state(request, "cache_handler")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Identity provider - bound per request from the X-User-Id header
    2. Services (business logic) - app.state.container
    3. Handlers (HTTP endpoints) - app.state.*_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Detaches live listeners, closes the push client and removes
        everything from app.state on shutdown
    """
    configure_logging()

    identity = ContextIdentityProvider()
    container = ServiceContainer.create_in_memory(identity=identity)

    app.state.identity = identity
    app.state.container = container
    app.state.post_handler = PostHandler(post_service=container.posts)
    app.state.review_handler = ReviewHandler(review_service=container.reviews)
    app.state.user_handler = UserHandler(user_service=container.users)
    app.state.cache_handler = CacheHandler(cache=container.cache, documents=container.documents)

    logger.info("services initialized")
    logger.info(f"default page size: {settings.default_page_size}")
    logger.info(f"push: {type(container.push).__name__}")

    yield

    await container.close()
    del app.state.cache_handler
    del app.state.user_handler
    del app.state.review_handler
    del app.state.post_handler
    del app.state.container
    del app.state.identity
    logger.info("services shut down")


# Type aliases for cleaner dependency injection
ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
PostHandlerDep = Annotated[PostHandler, Depends(get_post_handler)]
ReviewHandlerDep = Annotated[ReviewHandler, Depends(get_review_handler)]
UserHandlerDep = Annotated[UserHandler, Depends(get_user_handler)]
CacheHandlerDep = Annotated[CacheHandler, Depends(get_cache_handler)]
