from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StringConstraints

USER_ID_MAX_LENGTH = 64
TOKEN_DELTA_LIMIT = 2**31 - 1

UserId = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=USER_ID_MAX_LENGTH)
]
TokenDelta = Annotated[StrictInt, Field(ge=-TOKEN_DELTA_LIMIT - 1, le=TOKEN_DELTA_LIMIT)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TokensResponse(_CamelModel):
    user_id: str = Field(..., alias="userId")
    tokens: int
    league: str
    is_registered: bool = Field(..., alias="isRegistered")


class AddTokensRequest(_CamelModel):
    user_id: UserId = Field(..., alias="userId")
    amount: TokenDelta


class AddTokensResponse(_CamelModel):
    user_id: str = Field(..., alias="userId")
    new_total: int = Field(..., alias="newTotal")
    league: str


class RegisterRequest(_CamelModel):
    user_id: UserId = Field(..., alias="userId")


class RegisterResponse(_CamelModel):
    user_id: str = Field(..., alias="userId")
    is_registered: bool = Field(..., alias="isRegistered")


class HealthResponse(BaseModel):
    status: str = "ok"


__all__ = [
    "AddTokensRequest",
    "AddTokensResponse",
    "HealthResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TokenDelta",
    "TokensResponse",
    "USER_ID_MAX_LENGTH",
    "UserId",
]
