"""
Session Resolver
Resolves authenticated identities into application sessions (role + coach linkage)
"""

import asyncio
from typing import Any, Dict, List, Optional, Set, Tuple
import logging

from pydantic import ValidationError

from app.models.coach import Coach
from app.models.session import AuthProvider, Identity, OAuthCallback, ProfileDocument, Role, Session
from app.services.role_inference import exact_match_name, infer_role, resolve_coach_reference
from app.utils.session_state import SessionState

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"


class ProfileUnavailable(Exception):
    """Profile document could not be read (as opposed to not existing)"""
    pass


class SessionResolver:
    """
    Owns the current session and is its only writer.

    Every operation completes its remote calls before publishing, and the
    operations and provider events are serialized, so consumers never see a
    partially resolved session.
    """

    def __init__(
        self,
        identity_provider,
        document_store,
        notifier,
        state: Optional[SessionState] = None,
        users_collection: str = "users",
        coaches_collection: str = "coaches",
        google_redirect_url: str = "",
    ):
        self.identity_provider = identity_provider
        self.document_store = document_store
        self.notifier = notifier
        self.state = state or SessionState()
        self.users_collection = users_collection
        self.coaches_collection = coaches_collection
        self.google_redirect_url = google_redirect_url

        self._lock = asyncio.Lock()
        self._events: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._unsubscribe = None
        self._background_tasks: Set[asyncio.Task] = set()
        # Bumped each time an operation publishes or clears the session
        self._generation = 0
        self._access_token: Optional[str] = None

    def current_session(self) -> Optional[Session]:
        """Get the current session, or None when signed out"""
        return self.state.get()

    def current_access_token(self) -> Optional[str]:
        """Provider access token issued with the current session, if any"""
        return self._access_token

    async def resolve_caller(self, access_token: str) -> Optional[Session]:
        """
        Session for the holder of a provider access token

        Used to identify HTTP callers; the current session is not touched.

        Returns:
            Session, or None when the provider rejects the token
        """
        identity = await self.identity_provider.verify_access_token(access_token)
        if identity is None:
            return None
        profile = await self._profile_or_default(identity.uid)
        return Session.from_profile(identity, profile)

    # ------------------------------------------------------------------
    # Provider event stream
    # ------------------------------------------------------------------

    async def start(self):
        """Subscribe to identity-provider auth events for the lifetime of the process"""
        if self._consumer is not None:
            return

        loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()

        def on_identity(identity: Optional[Identity]):
            # May be called from a worker thread
            loop.call_soon_threadsafe(self._events.put_nowait, (self._generation, identity))

        self._unsubscribe = self.identity_provider.subscribe(on_identity)
        self._consumer = asyncio.create_task(self._consume_auth_events())
        logger.info("Session resolver subscribed to auth events")

    async def stop(self):
        """Unsubscribe and wait for in-flight notifications"""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        if self._consumer:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        logger.info("Session resolver stopped")

    async def _consume_auth_events(self):
        while True:
            generation, identity = await self._events.get()
            try:
                await self.handle_auth_event(identity, generation)
            except Exception as e:
                logger.error(f"Failed to handle auth event: {e}", exc_info=True)
            finally:
                self._events.task_done()

    async def handle_auth_event(self, identity: Optional[Identity], generation: Optional[int] = None):
        """
        Apply one identity change reported by the provider

        An event queued before the latest operation completed (generation older
        than the current one) was caused by or superseded by that operation and
        is dropped. A signed-in identity that already owns the current session
        is left untouched.
        """
        async with self._lock:
            if generation is not None and generation < self._generation:
                logger.debug(f"Dropping stale auth event (generation {generation} < {self._generation})")
                return

            current = self.state.get()

            if identity is None:
                self._access_token = None
                if current is not None:
                    self.state.clear()
                return

            if current is not None and current.uid == identity.uid:
                return

            profile = await self._profile_or_default(identity.uid)
            self._access_token = identity.access_token
            self.state.publish(Session.from_profile(identity, profile))

    def _complete(self, session: Optional[Session], access_token: Optional[str]):
        """Publish (or clear) the result of an operation; must hold the lock"""
        self._generation += 1
        self._access_token = access_token
        if session is None:
            self.state.clear()
        else:
            self.state.publish(session)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str) -> Session:
        """
        Register a new email/password identity

        Args:
            email: Email address
            password: Password meeting provider policy

        Returns:
            Session: The published session

        Raises:
            CredentialError: email in use, weak password, malformed email
            GenericAuthFailure: any other provider failure
        """
        async with self._lock:
            identity = await self.identity_provider.create_credential(email, password)

            role, coach_id = await self._resolve_role(email, None)

            profile = ProfileDocument(email=email, role=role, coach_id=coach_id)
            await self._write_profile(identity.uid, profile)

            self._schedule_welcome(email)

            session = Session(
                email=identity.email or email,
                uid=identity.uid,
                role=role,
                coach_id=coach_id,
            )
            self._complete(session, identity.access_token)

        logger.info(f"Registered {session.email} as {role.value}")
        return session

    async def login(self, email: str, password: str) -> Session:
        """
        Sign in with email and password

        Raises:
            AuthError: unknown user or wrong password (single generic message)
            GenericAuthFailure: any other provider failure
        """
        async with self._lock:
            identity = await self.identity_provider.authenticate(email, password)
            profile = await self._profile_or_default(identity.uid)
            session = Session.from_profile(identity, profile)
            self._complete(session, identity.access_token)

        logger.info(f"Logged in {session.email}")
        return session

    async def begin_google_login(self) -> str:
        """Get the URL that starts the interactive Google sign-in"""
        return await self.identity_provider.authorization_url(GOOGLE_PROVIDER, self.google_redirect_url)

    async def login_with_google(self, callback: OAuthCallback) -> Session:
        """
        Complete an interactive Google sign-in

        An existing profile is authoritative. A first sign-in infers the role,
        resolves the coach reference (display name as secondary key) and
        writes a new profile.

        Raises:
            InteractiveAuthError: cancelled, popup blocked, account exists
            GenericAuthFailure: any other provider failure
        """
        async with self._lock:
            identity = await self.identity_provider.authenticate_interactive(GOOGLE_PROVIDER, callback)

            try:
                profile = await self._fetch_profile(identity.uid)
            except ProfileUnavailable as e:
                # Unknown whether a profile exists; never overwrite one blindly
                logger.error(f"Profile read failed for {identity.uid}, using default role: {e}")
                session = Session.from_profile(identity, None)
                self._complete(session, identity.access_token)
                return session

            if profile is not None:
                session = Session.from_profile(identity, profile)
                self._complete(session, identity.access_token)
                logger.info(f"Google sign-in for existing profile {session.email}")
                return session

            role, coach_id = await self._resolve_role(identity.email, identity.display_name)
            profile = ProfileDocument(
                email=identity.email,
                role=role,
                coach_id=coach_id,
                auth_provider=AuthProvider.GOOGLE,
                display_name=identity.display_name,
                photo_url=identity.photo_url,
            )
            await self._write_profile(identity.uid, profile)

            self._schedule_welcome(identity.email)

            session = Session(
                email=identity.email,
                uid=identity.uid,
                role=role,
                coach_id=coach_id,
                display_name=identity.display_name,
                photo_url=identity.photo_url,
            )
            self._complete(session, identity.access_token)

        logger.info(f"First Google sign-in for {session.email} as {role.value}")
        return session

    async def logout(self) -> bool:
        """
        Sign out via the provider and clear the session

        On provider failure the session is left as is.

        Returns:
            bool: True if signed out
        """
        async with self._lock:
            try:
                await self.identity_provider.sign_out()
            except Exception as e:
                logger.error(f"Error signing out: {e}")
                return False

            self._complete(None, None)
            return True

    # ------------------------------------------------------------------
    # Profile and coach lookups (failures degrade, never raise)
    # ------------------------------------------------------------------

    async def _fetch_profile(self, uid: str) -> Optional[ProfileDocument]:
        try:
            document = await self.document_store.get_document(self.users_collection, uid)
        except Exception as e:
            raise ProfileUnavailable(str(e)) from e

        if document is None:
            return None

        try:
            return ProfileDocument.model_validate(document)
        except ValidationError as e:
            raise ProfileUnavailable(f"Malformed profile document: {e}") from e

    async def _profile_or_default(self, uid: str) -> Optional[ProfileDocument]:
        try:
            profile = await self._fetch_profile(uid)
        except ProfileUnavailable as e:
            logger.error(f"Profile read failed for {uid}, using default role: {e}")
            return None

        if profile is None:
            logger.warning(f"No profile document for {uid}, using default role")
        return profile

    async def _write_profile(self, uid: str, profile: ProfileDocument) -> bool:
        try:
            await self.document_store.set_document(self.users_collection, uid, profile.to_fields())
            return True
        except Exception as e:
            logger.error(f"Failed to write profile for {uid}: {e}")
            return False

    async def _resolve_role(self, email: str, display_name: Optional[str]) -> Tuple[Role, Optional[str]]:
        role = infer_role(email)
        if role != Role.COACH:
            return role, None

        try:
            exact = self._to_coaches(
                await self.document_store.query(self.coaches_collection, "name", exact_match_name(email))
            )
            candidates: List[Coach] = []
            if not exact:
                candidates = self._to_coaches(
                    await self.document_store.list_documents(self.coaches_collection)
                )
        except Exception as e:
            logger.error(f"Coach lookup failed for {email}: {e}")
            return role, None

        role, coach_id = resolve_coach_reference(email, display_name, candidates, exact)
        if coach_id:
            logger.info(f"Linked {email} to coach {coach_id}")
        else:
            logger.info(f"No coach record matched {email}")
        return role, coach_id

    @staticmethod
    def _to_coaches(documents: List[Dict[str, Any]]) -> List[Coach]:
        coaches = []
        for document in documents:
            try:
                coaches.append(Coach.model_validate(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed coach record {document.get('id')}: {e}")
        return coaches

    # ------------------------------------------------------------------
    # Welcome notification (fire-and-forget)
    # ------------------------------------------------------------------

    def _schedule_welcome(self, email: str):
        task = asyncio.create_task(self._send_welcome(email))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _send_welcome(self, email: str):
        try:
            await self.notifier.send_welcome_email(email)
        except Exception as e:
            logger.error(f"❌ Failed to send welcome email to {email}: {e}")
            # Don't raise the exception to avoid blocking registration
