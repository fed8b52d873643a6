from typing import Annotated, Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from starlette import status
from typing_extensions import TypeAlias

from core.async_engine import AsyncSessionLocal
from core.auth import bearer_scheme, is_valid_operator_key, is_valid_session_token, operator_key_scheme
from core.settings import settings
from core.store import Store
from crud.vote_crud import VoteLedger


store = Store(AsyncSessionLocal)


def get_store() -> Store:
    return store

StoreDep: TypeAlias = Annotated[Store, Depends(get_store)]


def get_vote_ledger(store: StoreDep) -> VoteLedger:
    return VoteLedger(store)

VoteLedgerDep: TypeAlias = Annotated[VoteLedger, Depends(get_vote_ledger)]


async def require_session_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]
) -> str:
    """Reject requests without a well-formed upstream session token.

    Verifying the token against the upstream marketplace is not done here;
    the caller supplies the voter id it was issued for.
    """
    login_required = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Please log in to vote",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise login_required

    token = credentials.credentials
    if not is_valid_session_token(token.strip()):
        raise login_required

    return token

SessionToken: TypeAlias = Annotated[str, Depends(require_session_token)]


async def require_operator_key(
    api_key: Annotated[Optional[str], Depends(operator_key_scheme)]
) -> str:
    if not is_valid_operator_key(api_key, settings.OPERATOR_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Operator credentials required",
        )
    return api_key

OperatorKey: TypeAlias = Annotated[str, Depends(require_operator_key)]
