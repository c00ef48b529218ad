"""Ledger routes called by the game servers and the front-end back office."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from ..deps import get_ledger_store
from ..errors import ClientInputError
from ..ledger import LedgerStore
from ..schemas import (
    USER_ID_MAX_LENGTH,
    AddTokensRequest,
    AddTokensResponse,
    RegisterRequest,
    RegisterResponse,
    TokensResponse,
)

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.get("", response_model=TokensResponse)
async def read_tokens(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: LedgerStore = Depends(get_ledger_store),
) -> TokensResponse:
    user_id = (user_id or "").strip()
    if not user_id:
        raise ClientInputError("Missing userId")
    if len(user_id) > USER_ID_MAX_LENGTH:
        raise ClientInputError("Invalid userId")
    entry = await run_in_threadpool(store.get_or_create, user_id)
    return TokensResponse(
        user_id=entry.user_id,
        tokens=entry.balance,
        league=entry.league,
        is_registered=entry.is_registered,
    )


@router.post("/add", response_model=AddTokensResponse)
async def add_tokens(
    payload: AddTokensRequest,
    store: LedgerStore = Depends(get_ledger_store),
) -> AddTokensResponse:
    entry = await run_in_threadpool(store.increment, payload.user_id, payload.amount)
    return AddTokensResponse(user_id=entry.user_id, new_total=entry.balance, league=entry.league)


@router.post("/register", response_model=RegisterResponse)
async def register_user(
    payload: RegisterRequest,
    store: LedgerStore = Depends(get_ledger_store),
) -> RegisterResponse:
    entry = await run_in_threadpool(store.register, payload.user_id)
    return RegisterResponse(user_id=entry.user_id, is_registered=entry.is_registered)
