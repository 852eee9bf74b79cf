"""
Authentication Routes
Registration, password login, Google sign-in, logout and session lookup
"""

from fastapi import APIRouter, HTTPException, status, Depends
import logging

from app.models.session import CredentialsRequest, OAuthCallback, SessionResponse
from app.utils.dependencies import CallerSession, CurrentSession, ResolverDep
from app.utils.errors import SessionError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(credentials: CredentialsRequest, resolver: ResolverDep):
    """
    Register new user

    Creates the credential and profile, sends a welcome email in the
    background, and signs the new user in
    """
    try:
        session = await resolver.register(credentials.email, credentials.password)
        return SessionResponse(
            signed_in=True, session=session, access_token=resolver.current_access_token()
        )

    except SessionError:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )


@router.post("/login", response_model=SessionResponse)
async def login(credentials: CredentialsRequest, resolver: ResolverDep):
    """Sign in with email and password"""
    try:
        session = await resolver.login(credentials.email, credentials.password)
        return SessionResponse(
            signed_in=True, session=session, access_token=resolver.current_access_token()
        )

    except SessionError:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )


@router.get("/google")
async def begin_google_login(resolver: ResolverDep):
    """Get the URL that opens the Google sign-in"""
    url = await resolver.begin_google_login()
    return {"success": True, "url": url}


@router.get("/google/callback", response_model=SessionResponse)
async def google_callback(resolver: ResolverDep, callback: OAuthCallback = Depends()):
    """
    Complete Google sign-in

    The redirect carries either an authorization code or an error such as
    access_denied (cancelled) or popup_blocked
    """
    try:
        session = await resolver.login_with_google(callback)
        return SessionResponse(
            signed_in=True, session=session, access_token=resolver.current_access_token()
        )

    except SessionError:
        raise
    except Exception as e:
        logger.error(f"Google sign-in error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Google sign-in failed"
        )


@router.post("/logout")
async def logout(session: CurrentSession, resolver: ResolverDep):
    """Sign out; the session is kept if the provider sign-out fails"""
    logger.info(f"Logout requested by {session.email}")
    if not await resolver.logout():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Logout failed"
        )
    return {"success": True, "message": "Logout successful"}


@router.get("/session", response_model=SessionResponse)
async def current_session(session: CallerSession):
    """Get the session of the calling client"""
    return SessionResponse(signed_in=session is not None, session=session)
