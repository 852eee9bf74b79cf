"""
Pytest fixtures for wellness service tests
"""

import asyncio
import pytest
from collections import defaultdict
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from app.models.session import Identity, OAuthCallback
from app.services.session_resolver import SessionResolver
from app.utils.errors import AuthError, CredentialError
from app.utils.session_state import SessionState
from app.utils.supabase_client import classify_oauth_error


class FakeIdentityProvider:
    """In-memory identity provider that emits auth events like Supabase does"""

    def __init__(self):
        self.accounts: Dict[str, Dict[str, str]] = {}
        self.google_identities: Dict[str, Identity] = {}
        self.listeners = []
        self.sign_out_error: Optional[Exception] = None
        self.tokens: Dict[str, Identity] = {}
        self.current_token: Optional[str] = None
        self._next_uid = 1
        self._next_token = 1

    def subscribe(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def emit(self, identity: Optional[Identity]):
        for listener in list(self.listeners):
            listener(identity)

    def _new_uid(self) -> str:
        uid = f"uid-{self._next_uid}"
        self._next_uid += 1
        return uid

    def _signed_in(self, identity: Identity) -> Identity:
        """Issue an access token for the identity and report the sign-in"""
        token = f"token-{identity.uid}-{self._next_token}"
        self._next_token += 1
        identity = identity.model_copy(update={"access_token": token})
        self.tokens[token] = identity
        self.current_token = token
        self.emit(identity)
        return identity

    async def verify_access_token(self, access_token: str) -> Optional[Identity]:
        return self.tokens.get(access_token)

    async def create_credential(self, email: str, password: str) -> Identity:
        if email in self.accounts:
            raise CredentialError("This email address is already registered.", status_code=409)
        if len(password) < 6:
            raise CredentialError("Password is too weak. Please choose a stronger password.")
        uid = self._new_uid()
        self.accounts[email] = {"uid": uid, "password": password}
        return self._signed_in(Identity(uid=uid, email=email))

    async def authenticate(self, email: str, password: str) -> Identity:
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise AuthError()
        return self._signed_in(Identity(uid=account["uid"], email=email))

    def add_google_identity(self, code: str, email: str, display_name: str = None, uid: str = None) -> Identity:
        identity = Identity(
            uid=uid or self._new_uid(),
            email=email,
            display_name=display_name,
            photo_url=f"https://photos.example.com/{code}.jpg",
        )
        self.google_identities[code] = identity
        return identity

    async def authorization_url(self, provider_kind: str, redirect_to: str) -> str:
        return f"https://auth.example.com/authorize?provider={provider_kind}&redirect_to={redirect_to}"

    async def authenticate_interactive(self, provider_kind: str, callback: OAuthCallback) -> Identity:
        if callback.error:
            raise classify_oauth_error(callback.error, callback.error_description)
        return self._signed_in(self.google_identities[callback.code])

    async def sign_out(self):
        if self.sign_out_error:
            raise self.sign_out_error
        self.tokens.pop(self.current_token, None)
        self.current_token = None
        self.emit(None)


class FakeDocumentStore:
    """In-memory document store keyed by collection and id"""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.fail_reads = False
        self.fail_writes = False
        self.fail_queries = False
        self.writes: List[tuple] = []
        self.queries: List[tuple] = []

    async def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if self.fail_reads:
            raise ConnectionError("document store unavailable")
        document = self.collections[collection].get(doc_id)
        return {"id": doc_id, **document} if document is not None else None

    async def set_document(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        if self.fail_writes:
            raise ConnectionError("document store unavailable")
        self.writes.append((collection, doc_id, dict(fields)))
        self.collections[collection].setdefault(doc_id, {}).update(fields)

    async def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        if self.fail_queries:
            raise ConnectionError("document store unavailable")
        self.queries.append((collection, field, value))
        return [
            {"id": doc_id, **document}
            for doc_id, document in self.collections[collection].items()
            if document.get(field) == value
        ]

    async def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        if self.fail_queries:
            raise ConnectionError("document store unavailable")
        self.queries.append((collection, None, None))
        return [{"id": doc_id, **document} for doc_id, document in self.collections[collection].items()]


@pytest.fixture
def identity_provider():
    """In-memory identity provider"""
    return FakeIdentityProvider()


@pytest.fixture
def document_store():
    """Document store seeded with three coaches"""
    store = FakeDocumentStore()
    store.collections["coaches"] = {
        "1": {"name": "Jane Doe", "specializations": ["Strength Training"], "ratings": [5, 4, 5]},
        "2": {"name": "Sarah Smith", "specializations": ["Yoga"], "ratings": [5, 5, 4]},
        "3": {"name": "Emily Jones", "specializations": ["Cardio"], "ratings": [4]},
    }
    return store


@pytest.fixture
def notifier():
    """Welcome notifier that always succeeds"""
    client = MagicMock()
    client.send_welcome_email = AsyncMock(return_value={"success": True})
    return client


@pytest.fixture
def session_state():
    return SessionState()


@pytest.fixture
def resolver(identity_provider, document_store, notifier, session_state):
    return SessionResolver(
        identity_provider=identity_provider,
        document_store=document_store,
        notifier=notifier,
        state=session_state,
        google_redirect_url="http://localhost:5173/auth/google/callback",
    )


@pytest.fixture
def settle(resolver):
    """Let queued auth events and background notifications finish"""

    async def _settle():
        await asyncio.sleep(0)
        if resolver._events is not None:
            await resolver._events.join()
        if resolver._background_tasks:
            await asyncio.gather(*resolver._background_tasks, return_exceptions=True)

    return _settle


@pytest.fixture
def mock_smtp_config():
    """Mock SMTP configuration"""
    config = MagicMock()
    config.host = "localhost"
    config.port = 1025
    config.use_tls = False
    config.timeout = 10
    config.username = None
    config.password = None
    config.from_email = "noreply@test.com"
    config.from_name = "Test Platform"
    return config


@pytest.fixture
def mock_app_config():
    """Mock application configuration"""
    config = MagicMock()
    config.platform_name = "Test Platform"
    config.support_email = "support@test.com"
    config.frontend_url = "https://app.test.com"
    config.feedback_timezone = "Australia/Sydney"
    config.notification_service_url = "http://notifications.test"
    config.notification_timeout = 5.0
    return config
