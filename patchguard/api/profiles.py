"""
Profile API endpoints.
Client payloads are arbitrary JSON; only allowlisted fields ever reach the store.
"""
import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Header, Request, status

from patchguard.core.auth import verify_auth_header
from patchguard.core.logging import get_safe_logger
from patchguard.schemas.response import ProfileResponse, ResponseMetadata
from patchguard.services.profile_store import ProfileStore

router = APIRouter(prefix="/v1", tags=["profiles"], dependencies=[Depends(verify_auth_header)])
logger = get_safe_logger(__name__)


def get_request_id(
    x_request_id: Annotated[str | None, Header(alias="X-Request-ID")] = None
) -> str:
    """
    Get or generate request ID from header.
    """
    if x_request_id and len(x_request_id) <= 100:
        return x_request_id
    return str(uuid.uuid4())


def get_profile_store() -> ProfileStore:
    return ProfileStore.get_instance()


@router.get(
    "/workspaces/{workspace_id}/users/{user_id}",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Read a public profile",
)
async def read_profile(
    workspace_id: str,
    user_id: str,
    request_id: Annotated[str, Depends(get_request_id)],
    store: Annotated[ProfileStore, Depends(get_profile_store)],
) -> ProfileResponse:
    profile = store.get_profile(workspace_id, user_id)
    return ProfileResponse(
        data=profile,
        metadata=ResponseMetadata(requestId=request_id),
    )


@router.patch(
    "/workspaces/{workspace_id}/users/{user_id}/profile",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a profile",
    description=(
        "Accepts any JSON body. Keys outside the caller's allowlist policy are "
        "discarded before the update is applied."
    ),
)
async def update_profile(
    workspace_id: str,
    user_id: str,
    request: Request,
    payload: Annotated[Any, Body()],
    request_id: Annotated[str, Depends(get_request_id)],
    store: Annotated[ProfileStore, Depends(get_profile_store)],
) -> ProfileResponse:
    """
    Apply a profile patch as the authenticated user.

    The actor is always the token's uid, never a field of the body.
    """
    actor_id: str = request.state.uid
    profile = store.update_profile(
        workspace_id=workspace_id,
        actor_id=actor_id,
        target_user_id=user_id,
        updates=payload,
    )
    logger.info(
        "Profile patch applied",
        request_id=request_id,
        method="PATCH",
        status_code=status.HTTP_200_OK,
    )
    return ProfileResponse(
        data=profile,
        metadata=ResponseMetadata(requestId=request_id),
    )
