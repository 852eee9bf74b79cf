"""
FastAPI Dependencies
Session resolver wiring and route guards
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Annotated, Optional
import logging

from app.models.session import Role, Session
from app.services.coach_service import CoachService
from app.services.email_service import EmailService, get_email_service
from app.services.session_resolver import SessionResolver
from app.utils.config import get_app_config, get_supabase_config
from app.utils.notification_client import get_notification_client
from app.utils.supabase_client import (
    SupabaseDocumentStore, SupabaseIdentityProvider, get_supabase_client
)

logger = logging.getLogger(__name__)

# Bearer tokens are the provider's access tokens
security = HTTPBearer(auto_error=False)

_session_resolver: Optional[SessionResolver] = None
_coach_service: Optional[CoachService] = None


def get_session_resolver() -> SessionResolver:
    """Get the process-wide session resolver"""
    global _session_resolver
    if _session_resolver is None:
        supabase = get_supabase_client()
        supabase_config = get_supabase_config()
        _session_resolver = SessionResolver(
            identity_provider=SupabaseIdentityProvider(supabase),
            document_store=SupabaseDocumentStore(supabase),
            notifier=get_notification_client(),
            users_collection=supabase_config.users_collection,
            coaches_collection=supabase_config.coaches_collection,
            google_redirect_url=get_app_config().google_redirect_url,
        )
    return _session_resolver


def get_coach_service() -> CoachService:
    """Get the coach directory service"""
    global _coach_service
    if _coach_service is None:
        supabase_config = get_supabase_config()
        _coach_service = CoachService(
            SupabaseDocumentStore(get_supabase_client()),
            coaches_collection=supabase_config.coaches_collection,
            rating_history_collection=supabase_config.rating_history_collection,
        )
    return _coach_service


async def get_caller_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    resolver: SessionResolver = Depends(get_session_resolver)
) -> Optional[Session]:
    """
    Session of the HTTP caller, identified by its bearer token

    Returns:
        Session, or None without a token or when the provider rejects it
    """
    if credentials is None:
        return None
    return await resolver.resolve_caller(credentials.credentials)


async def get_current_session(
    session: Optional[Session] = Depends(get_caller_session)
) -> Session:
    """
    Get the signed-in caller's session

    Raises:
        HTTPException: 401 when the caller is not signed in
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_role(role: Role):
    """Guard that admits only sessions whose role equals role"""

    async def check_role(session: Session = Depends(get_current_session)) -> Session:
        if session.role != role:
            logger.warning(f"{session.email} ({session.role.value}) denied {role.value}-only route")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not authorized to view this page."
            )
        return session

    return check_role


# Type aliases for cleaner dependency injection
ResolverDep = Annotated[SessionResolver, Depends(get_session_resolver)]
CoachServiceDep = Annotated[CoachService, Depends(get_coach_service)]
EmailServiceDep = Annotated[EmailService, Depends(get_email_service)]
CallerSession = Annotated[Optional[Session], Depends(get_caller_session)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
CoachSession = Annotated[Session, Depends(require_role(Role.COACH))]
