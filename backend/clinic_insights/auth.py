"""Bearer credential pass-through to the collaborator API."""

from collections.abc import AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_insights.clients.clinic_api import ClinicApiClient, SessionExpiredError
from clinic_insights.session import SessionContext

bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionContext:
    """Build the caller's SessionContext from the Authorization header.

    The token itself is validated by the collaborator API on first use.

    Raises:
        SessionExpiredError: if no bearer token was sent.
    """
    if credentials is None or not credentials.credentials:
        raise SessionExpiredError(401, "Missing authentication token")
    return SessionContext(credentials.credentials)


async def get_clinic_client(
    session: SessionContext = Depends(get_session_context),
) -> AsyncIterator[ClinicApiClient]:
    """Yield a ClinicApiClient bound to the caller's session for one request."""
    async with ClinicApiClient(session) as client:
        yield client
