"""
Supabase Client Configuration
Identity provider and document store adapters backed by Supabase
"""

import asyncio
from supabase import create_client, Client, ClientOptions, AuthApiError
from typing import Any, Callable, Dict, List, Optional
import logging

from app.models.session import Identity, OAuthCallback
from app.utils.config import get_supabase_config
from app.utils.errors import (
    SessionError, CredentialError, AuthError, InteractiveAuthError, InteractiveAuthReason,
    GenericAuthFailure
)

logger = logging.getLogger(__name__)

IdentityCallback = Callable[[Optional[Identity]], None]

# Supabase error codes, grouped by the caller-facing error they become
EMAIL_IN_USE_CODES = {"user_already_exists", "email_exists"}
WEAK_PASSWORD_CODES = {"weak_password"}
INVALID_EMAIL_CODES = {"email_address_invalid", "validation_failed", "email_address_not_authorized"}
BAD_CREDENTIAL_CODES = {"invalid_credentials", "user_not_found", "email_not_confirmed", "invalid_grant"}
ACCOUNT_EXISTS_CODES = {"identity_already_exists", "email_exists", "user_already_exists"}

# Auth events that change which identity is signed in
IDENTITY_EVENTS = {"INITIAL_SESSION", "SIGNED_IN", "SIGNED_OUT", "USER_UPDATED"}


class SupabaseClient:
    """Supabase client wrapper shared by the identity and document adapters"""

    def __init__(self):
        config = get_supabase_config()
        self.url: str = config.url
        self.key: str = config.anon_key
        self.client: Optional[Client] = None

        if self.url and self.key:
            try:
                # PKCE keeps the OAuth code verifier in this process until the callback arrives
                self.client = create_client(self.url, self.key, options=ClientOptions(flow_type="pkce"))
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize Supabase client: {e}")
                self.client = None
        else:
            logger.warning("Supabase credentials not found in environment")

    def is_available(self) -> bool:
        """Check if Supabase is available and configured"""
        return self.client is not None

    def require_client(self) -> Client:
        if not self.client:
            raise GenericAuthFailure("Authentication service is not configured.")
        return self.client


def identity_from_user(user: Any, session: Any = None) -> Identity:
    """Build an Identity from a Supabase user object and, when present, its auth session"""
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        uid=str(user.id),
        email=user.email or metadata.get("email", ""),
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url") or metadata.get("picture"),
        access_token=getattr(session, "access_token", None),
    )


def credential_error_from(error: AuthApiError) -> CredentialError:
    code = getattr(error, "code", None)
    if code in EMAIL_IN_USE_CODES:
        return CredentialError("This email address is already registered.", status_code=409)
    if code in WEAK_PASSWORD_CODES:
        return CredentialError("Password is too weak. Please choose a stronger password.")
    if code in INVALID_EMAIL_CODES:
        return CredentialError("Email address is invalid.")
    return CredentialError("Unable to create account with these credentials.")


def classify_oauth_error(error: str, description: Optional[str] = None) -> SessionError:
    """Map an OAuth callback error onto the interactive sign-in taxonomy"""
    text = f"{error} {description or ''}".lower()
    if "popup_blocked" in text or "blocked" in text:
        return InteractiveAuthError(InteractiveAuthReason.POPUP_BLOCKED)
    if any(code in text for code in ACCOUNT_EXISTS_CODES) or "different credential" in text:
        return InteractiveAuthError(InteractiveAuthReason.ACCOUNT_EXISTS)
    if error in ("access_denied", "popup_closed", "popup_closed_by_user", "cancelled"):
        return InteractiveAuthError(InteractiveAuthReason.CANCELLED)
    return GenericAuthFailure()


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth"""

    def __init__(self, supabase: SupabaseClient):
        self.supabase = supabase

    async def create_credential(self, email: str, password: str) -> Identity:
        """
        Create an email/password credential

        Raises:
            CredentialError: email in use, weak password, malformed email
            GenericAuthFailure: any other provider failure
        """
        client = self.supabase.require_client()
        try:
            response = await asyncio.to_thread(
                client.auth.sign_up, {"email": email, "password": password}
            )
        except AuthApiError as e:
            logger.warning(f"Supabase sign up rejected for {email}: {getattr(e, 'code', None)}")
            raise credential_error_from(e) from e
        except Exception as e:
            logger.error(f"Supabase sign up error: {e}")
            raise GenericAuthFailure() from e

        if not response.user:
            logger.error(f"Failed to sign up: {email}")
            raise GenericAuthFailure("Failed to create account.")

        logger.info(f"Credential created: {email}")
        return identity_from_user(response.user, response.session)

    async def authenticate(self, email: str, password: str) -> Identity:
        """
        Sign in with email and password

        Raises:
            AuthError: unknown user or wrong password, never distinguished
            GenericAuthFailure: any other provider failure
        """
        client = self.supabase.require_client()
        try:
            response = await asyncio.to_thread(
                client.auth.sign_in_with_password, {"email": email, "password": password}
            )
        except AuthApiError as e:
            code = getattr(e, "code", None)
            if code in BAD_CREDENTIAL_CODES or getattr(e, "status", None) == 400:
                raise AuthError() from e
            logger.error(f"Supabase sign in error: {code}")
            raise GenericAuthFailure() from e
        except Exception as e:
            logger.error(f"Supabase sign in error: {e}")
            raise GenericAuthFailure() from e

        if not response.user:
            raise AuthError()

        return identity_from_user(response.user, response.session)

    async def authorization_url(self, provider_kind: str, redirect_to: str) -> str:
        """Get the URL the client opens to start an interactive sign-in"""
        client = self.supabase.require_client()
        try:
            response = await asyncio.to_thread(
                client.auth.sign_in_with_oauth,
                {"provider": provider_kind, "options": {"redirect_to": redirect_to}},
            )
        except Exception as e:
            logger.error(f"Supabase OAuth start error: {e}")
            raise GenericAuthFailure() from e
        return response.url

    async def authenticate_interactive(self, provider_kind: str, callback: OAuthCallback) -> Identity:
        """
        Complete an interactive sign-in from its OAuth callback

        Raises:
            InteractiveAuthError: cancelled, popup blocked, account exists with another credential
            GenericAuthFailure: any other provider failure
        """
        if callback.error:
            logger.info(f"{provider_kind} sign-in ended with {callback.error}")
            raise classify_oauth_error(callback.error, callback.error_description)
        if not callback.code:
            raise InteractiveAuthError(InteractiveAuthReason.CANCELLED)

        client = self.supabase.require_client()
        try:
            response = await asyncio.to_thread(
                client.auth.exchange_code_for_session, {"auth_code": callback.code}
            )
        except AuthApiError as e:
            if getattr(e, "code", None) in ACCOUNT_EXISTS_CODES:
                raise InteractiveAuthError(InteractiveAuthReason.ACCOUNT_EXISTS) from e
            logger.error(f"Supabase code exchange error: {getattr(e, 'code', None)}")
            raise GenericAuthFailure() from e
        except Exception as e:
            logger.error(f"Supabase code exchange error: {e}")
            raise GenericAuthFailure() from e

        if not response.user:
            raise GenericAuthFailure()

        return identity_from_user(response.user, response.session)

    async def sign_out(self):
        client = self.supabase.require_client()
        await asyncio.to_thread(client.auth.sign_out)

    async def verify_access_token(self, access_token: str) -> Optional[Identity]:
        """
        Identify the holder of an access token via Supabase Auth

        Returns:
            Identity, or None when Supabase rejects the token

        Raises:
            GenericAuthFailure: Supabase could not be reached
        """
        client = self.supabase.require_client()
        try:
            response = await asyncio.to_thread(client.auth.get_user, access_token)
        except AuthApiError as e:
            logger.info(f"Access token rejected: {getattr(e, 'code', None)}")
            return None
        except Exception as e:
            logger.error(f"Supabase token verification error: {e}")
            raise GenericAuthFailure() from e

        if not response or not response.user:
            return None
        return identity_from_user(response.user)

    def subscribe(self, callback: IdentityCallback) -> Callable[[], None]:
        """
        Forward identity changes to callback

        Supabase invokes listeners on whichever thread performed the auth call,
        so callback must be safe to call off the event loop.

        Returns:
            Callable that removes the subscription
        """
        client = self.supabase.require_client()

        def on_change(event, session):
            event_name = getattr(event, "value", event)
            if event_name not in IDENTITY_EVENTS:
                return
            if session is not None and getattr(session, "user", None) is not None:
                callback(identity_from_user(session.user, session))
            else:
                callback(None)

        subscription = client.auth.on_auth_state_change(on_change)
        return subscription.unsubscribe


class SupabaseDocumentStore:
    """Document store over PostgREST tables keyed by an ``id`` column"""

    def __init__(self, supabase: SupabaseClient):
        self.supabase = supabase

    async def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        client = self.supabase.require_client()
        response = await asyncio.to_thread(
            lambda: client.table(collection).select("*").eq("id", doc_id).limit(1).execute()
        )
        return response.data[0] if response.data else None

    async def set_document(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        client = self.supabase.require_client()
        await asyncio.to_thread(
            lambda: client.table(collection).upsert({"id": doc_id, **fields}).execute()
        )

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        client = self.supabase.require_client()
        response = await asyncio.to_thread(
            lambda: client.table(collection).select("*").eq(field, value).execute()
        )
        return list(response.data or [])

    async def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        client = self.supabase.require_client()
        response = await asyncio.to_thread(
            lambda: client.table(collection).select("*").execute()
        )
        return list(response.data or [])


# Global Supabase client instance
_supabase_client: Optional[SupabaseClient] = None


def get_supabase_client() -> SupabaseClient:
    """Get Supabase client instance"""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = SupabaseClient()
    return _supabase_client
