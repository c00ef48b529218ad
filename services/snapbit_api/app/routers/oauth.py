"""Browser-facing routes of the authorization-code flow."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..deps import get_ledger_store, get_provider_client, get_settings_dependency
from ..flow import OAuthFlow, sanitize_provider_error
from ..ledger import LedgerStore
from ..provider import ProviderClient, ProviderIdentity
from ..state import StateCookie, bind_state, consume_state, read_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.get("/auth", response_model=None)
async def oauth_start(
    error: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings_dependency),
    provider: ProviderClient = Depends(get_provider_client),
) -> RedirectResponse | JSONResponse:
    if error:
        # Redirecting again would bounce the user straight back into a failing flow.
        return JSONResponse(
            {
                "error": sanitize_provider_error(error),
                "message": "Sign-in did not complete.",
                "retry": settings.error_redirect_path,
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    flow = OAuthFlow(settings, provider)
    state, url = flow.begin()
    response = RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    bind_state(response, state, StateCookie.from_settings(settings))
    return response


@router.get("/oauth/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings_dependency),
    provider: ProviderClient = Depends(get_provider_client),
    store: LedgerStore = Depends(get_ledger_store),
) -> RedirectResponse:
    cookie = StateCookie.from_settings(settings)

    async def register_identity(identity: ProviderIdentity) -> None:
        await run_in_threadpool(
            store.register,
            identity.sub,
            display_name=identity.display_name,
            action="oauth.registered",
        )

    flow = OAuthFlow.resume(
        settings,
        provider,
        identity_sink=register_identity if settings.register_on_login else None,
    )
    outcome = await flow.complete(
        code=code,
        returned_state=state,
        stored_state=read_state(request, cookie),
        provider_error=error,
    )

    response = RedirectResponse(outcome.redirect_url, status_code=status.HTTP_302_FOUND)
    consume_state(response, cookie)
    return response
