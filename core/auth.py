import re
import secrets
from typing import Optional

from fastapi.security import APIKeyHeader, HTTPBearer

bearer_scheme = HTTPBearer(auto_error=False)
operator_key_scheme = APIKeyHeader(name="X-Operator-Key", auto_error=False)

_TOKEN_ID = re.compile(r"^\d+$")
_TOKEN_SECRET = re.compile(r"^[A-Za-z0-9]+$")


def is_valid_session_token(token: str) -> bool:
    """Upstream marketplace session tokens look like ``<numeric id>|<alphanumeric secret>``."""
    if not token or len(token) <= 20 or "|" not in token:
        return False
    parts = token.split("|")
    if len(parts) != 2:
        return False
    token_id, secret = parts
    return bool(_TOKEN_ID.match(token_id) and _TOKEN_SECRET.match(secret))


def is_valid_operator_key(supplied: Optional[str], expected: Optional[str]) -> bool:
    if not supplied or not expected:
        return False
    return secrets.compare_digest(supplied.encode(), expected.encode())
