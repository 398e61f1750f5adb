"""
Streaming service catalog and per-user selection endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context, set_session_cookie
from services.connectors import list_streaming_providers
from services.errors import PersistenceError, ValidationError
from services.selections import list_selections, selection_map, set_selections, validate_selection_update
from services.session_token import create_session_token

router = APIRouter()


class UpdateServicesRequest(BaseModel):
    services: Dict[str, bool] = Field(default_factory=dict)


class ServicesResponse(BaseModel):
    mode: str
    services: List[Dict[str, Any]]
    session_token: Optional[str] = None


def _catalog_with_flags(selections: Dict[str, bool]) -> List[Dict[str, Any]]:
    return [
        {**provider.to_dict(), "connected": bool(selections.get(provider.id, False))}
        for provider in list_streaming_providers()
    ]


@router.get("/", response_model=ServicesResponse)
async def list_services(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Every known provider, with whether the caller has it selected."""
    if auth.is_demo:
        selections = selection_map(auth.demo_services)
    else:
        try:
            selections = await list_selections(db, auth.user_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ServicesResponse(mode=auth.mode, services=_catalog_with_flags(selections))


@router.put("/", response_model=ServicesResponse)
async def update_services(
    request: UpdateServicesRequest,
    response: Response,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Toggle services on or off. Demo sessions get a re-issued token instead of a DB write."""
    try:
        updates = validate_selection_update(request.services)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if auth.is_demo:
        selections = selection_map(auth.demo_services)
        selections.update(updates)
        connected = [provider_id for provider_id, flag in selections.items() if flag]
        session = create_session_token(auth.user_id, auth.email, demo_services=connected)
        set_session_cookie(response, session["token"])
        return ServicesResponse(
            mode=auth.mode,
            services=_catalog_with_flags(selections),
            session_token=session["token"],
        )

    try:
        selections = await set_selections(db, auth.user_id, updates)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ServicesResponse(mode=auth.mode, services=_catalog_with_flags(selections))
