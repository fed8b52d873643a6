"""Persistent store adapter.

Every database round trip made by the vote ledger goes through :class:`Store`.
Statements are SQLAlchemy constructs, so parameters are always bound by the
driver (pagination limit/offset included). A unit of work runs in a single
transaction on a fresh session and is retried as a whole, with tenacity,
when the failure looks like a transient connectivity problem. Authentication
failures are never retried, and neither is a connection lost during COMMIT.
When the retry budget is spent the caller gets
:class:`~core.exceptions.StoreUnavailable`, never an empty result.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from sqlalchemy import Executable, Row
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_incrementing

from core.exceptions import StoreUnavailable
from core.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "connection refused",
    "could not connect",
    "connection reset",
    "connection lost",
    "server closed the connection",
    "terminating connection",
    "database is locked",
)

_AUTH_MARKERS = (
    "password authentication failed",
    "access denied",
    "permission denied",
)

# PostgreSQL: class 28 is invalid authorization, 42501 insufficient privilege.
# MySQL: 1044 ER_DBACCESS_DENIED_ERROR, 1045 ER_ACCESS_DENIED_ERROR.
_AUTH_MYSQL_CODES = {1044, 1045}


def is_auth_error(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate and (sqlstate.startswith("28") or sqlstate == "42501"):
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in _AUTH_MYSQL_CODES:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _AUTH_MARKERS)


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, InterfaceError):
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False


def _should_retry(exc: BaseException) -> bool:
    return is_transient_error(exc) and not is_auth_error(exc)


class CommitOutcomeUnknown(Exception):
    """The connection failed while committing, so the unit may or may not have been applied."""


class Store:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_factory = session_factory
        self.max_retries = settings.STORE_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = settings.STORE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.timeout_seconds = settings.STORE_STATEMENT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self.sleep = sleep

    def _retrying(self, label: str) -> AsyncRetrying:
        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Transient store error during {label} "
                f"(attempt {retry_state.attempt_number}/{self.max_retries + 1}), "
                f"retrying in {retry_state.next_action.sleep}s: {retry_state.outcome.exception()!r}"
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception(_should_retry),
            before_sleep=log_retry,
            sleep=self.sleep,
            reraise=True,
        )

    async def _run_once(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.session_factory() as session:
            result = await asyncio.wait_for(work(session), timeout=self.timeout_seconds)
            try:
                await session.commit()
            except Exception as e:
                # Replaying a toggle whose commit may have landed would undo it
                if is_transient_error(e):
                    raise CommitOutcomeUnknown(str(e)) from e
                raise
            return result

    async def run(self, work: Callable[[AsyncSession], Awaitable[T]], label: str = "unit of work") -> T:
        """Run ``work(session)`` in one transaction, retrying transient failures.

        Failures before the commit are retried; a connection lost during the
        commit is not, since the unit may already be applied.
        """
        retrying = self._retrying(label)
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._run_once(work)
        except CommitOutcomeUnknown as e:
            logger.error(f"Store connection lost while committing {label}: {e}")
            raise StoreUnavailable(
                f"Database connection lost while committing: {e}",
                attempts=retrying.statistics.get("attempt_number", 1),
            ) from e
        except Exception as e:
            attempts = retrying.statistics.get("attempt_number", 1)
            if is_auth_error(e):
                logger.error(f"Store rejected credentials during {label}: {e}")
                raise StoreUnavailable(f"Database authentication failed: {e}", attempts=attempts) from e
            if is_transient_error(e):
                logger.error(f"Store unavailable for {label} after {attempts} attempts: {e!r}")
                raise StoreUnavailable(f"Database unavailable after {attempts} attempts", attempts=attempts) from e
            raise

        raise StoreUnavailable(f"Database unavailable for {label}", attempts=self.max_retries + 1)

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> Sequence[Row]:
        async def _execute(session: AsyncSession) -> Sequence[Row]:
            result = await session.execute(statement, params)
            return result.all() if result.returns_rows else []

        return await self.run(_execute, label="execute")

    async def scalar(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> Any:
        async def _scalar(session: AsyncSession) -> Any:
            return await session.scalar(statement, params)

        return await self.run(_scalar, label="scalar")
