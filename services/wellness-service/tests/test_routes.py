"""
Unit tests for API routes
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from app.main import app
from app.services.coach_service import CoachService
from app.services.email_service import get_email_service
from app.utils.dependencies import get_coach_service, get_session_resolver
from app.utils.smtp_client import SMTPError

FEEDBACK = {"to": "support@example.com", "subject": "Hi", "message": "Hello"}


@pytest.fixture
def email_service():
    """Email service with successful sends"""
    service = MagicMock()
    service.send_welcome_email = AsyncMock(return_value={"success": True, "message_id": "<welcome@test.com>"})
    service.send_feedback_email = AsyncMock(return_value={"success": True, "message_id": "<feedback@test.com>"})
    return service


@pytest.fixture
def client(resolver, document_store, email_service):
    """Test client wired to in-memory adapters"""
    app.dependency_overrides[get_session_resolver] = lambda: resolver
    app.dependency_overrides[get_coach_service] = lambda: CoachService(document_store)
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email, password="secret123"):
    return client.post("/auth/register", json={"email": email, "password": password})


def auth_headers(response):
    """Authorization header for the token a sign-in response carries"""
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def sign_up(client, email):
    return auth_headers(register(client, email))


class TestAuthRoutes:
    """Test authentication routes"""

    def test_register(self, client):
        """Test successful registration"""
        response = register(client, "coach.jane@example.com")

        assert response.status_code == 201
        data = response.json()
        assert data["signed_in"] is True
        assert data["session"]["email"] == "coach.jane@example.com"
        assert data["session"]["role"] == "coach"
        assert data["access_token"]
        assert data["token_type"] == "bearer"

    def test_register_duplicate_email(self, client):
        """Test registration with an email already in use"""
        client.post("/auth/logout", headers=sign_up(client, "jane@example.com"))

        response = register(client, "jane@example.com")

        assert response.status_code == 409
        data = response.json()
        assert data["error"] is True
        assert data["type"] == "CredentialError"

    def test_register_invalid_email(self, client):
        """Test registration with a malformed email"""
        response = register(client, "not-an-email")
        assert response.status_code == 422

    def test_login_wrong_password_is_generic(self, client):
        """Test wrong password gives the generic message"""
        client.post("/auth/logout", headers=sign_up(client, "jane@example.com"))

        response = client.post("/auth/login", json={"email": "jane@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password."

    def test_login(self, client):
        """Test successful password sign-in"""
        client.post("/auth/logout", headers=sign_up(client, "jane@example.com"))

        response = client.post("/auth/login", json={"email": "jane@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["session"]["role"] == "user"
        assert client.get("/auth/session", headers=auth_headers(response)).json()["signed_in"] is True

    def test_session_and_logout(self, client):
        """Test session lookup before and after logout"""
        assert client.get("/auth/session").json()["signed_in"] is False

        headers = sign_up(client, "jane@example.com")
        assert client.get("/auth/session", headers=headers).json()["signed_in"] is True

        response = client.post("/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json()["success"] is True
        data = client.get("/auth/session", headers=headers).json()
        assert data["signed_in"] is False
        assert data["session"] is None

    def test_session_is_per_caller(self, client):
        """Test an anonymous caller does not see another user's session"""
        sign_up(client, "jane@example.com")

        response = client.get("/auth/session")

        assert response.status_code == 200
        data = response.json()
        assert data["signed_in"] is False
        assert data["session"] is None

    def test_session_with_unknown_token(self, client):
        """Test an unrecognised bearer token is not signed in"""
        sign_up(client, "jane@example.com")

        response = client.get("/auth/session", headers={"Authorization": "Bearer forged"})

        assert response.json()["signed_in"] is False

    def test_logout_requires_sign_in(self, client, resolver):
        """Test logout without a token"""
        sign_up(client, "jane@example.com")

        response = client.post("/auth/logout")

        assert response.status_code == 401
        assert resolver.current_session() is not None

    def test_logout_failure_keeps_session(self, client, identity_provider, resolver):
        """Test provider sign-out failure"""
        headers = sign_up(client, "jane@example.com")
        identity_provider.sign_out_error = RuntimeError("network down")

        response = client.post("/auth/logout", headers=headers)

        assert response.status_code == 503
        assert resolver.current_session().email == "jane@example.com"
        assert client.get("/auth/session", headers=headers).json()["signed_in"] is True

    def test_google_start(self, client):
        """Test the Google sign-in URL"""
        response = client.get("/auth/google")

        assert response.status_code == 200
        assert "provider=google" in response.json()["url"]

    def test_google_callback(self, client, identity_provider):
        """Test a successful Google callback"""
        identity_provider.add_google_identity("code-9", "jane@gmail.com", display_name="Jane")

        response = client.get("/auth/google/callback", params={"code": "code-9"})

        assert response.status_code == 200
        session = response.json()["session"]
        assert session["email"] == "jane@gmail.com"
        assert session["display_name"] == "Jane"
        assert response.json()["access_token"]

    @pytest.mark.parametrize("error,status_code,reason", [
        ("access_denied", 400, "cancelled"),
        ("popup_blocked", 400, "popup_blocked"),
        ("identity_already_exists", 409, "account_exists"),
    ])
    def test_google_callback_errors(self, client, error, status_code, reason):
        """Test Google callback error reasons"""
        response = client.get("/auth/google/callback", params={"error": error})

        assert response.status_code == status_code
        data = response.json()
        assert data["type"] == "InteractiveAuthError"
        assert data["reason"] == reason


class TestCoachRoutes:
    """Test coach directory routes"""

    def test_list_coaches(self, client):
        """Test listing coaches"""
        response = client.get("/coaches")

        assert response.status_code == 200
        names = {coach["name"] for coach in response.json()}
        assert names == {"Jane Doe", "Sarah Smith", "Emily Jones"}

    def test_get_coach(self, client):
        """Test getting a coach with its average rating"""
        response = client.get("/coaches/1")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "1"
        assert data["average_rating"] == 4.67

    def test_get_unknown_coach(self, client):
        """Test getting a coach that does not exist"""
        assert client.get("/coaches/999").status_code == 404

    def test_rate_requires_sign_in(self, client):
        """Test rating without a token"""
        response = client.post("/coaches/1/ratings", json={"rating": 5})

        assert response.status_code == 401
        assert response.json()["message"] == "You must be logged in"

    def test_rate_not_allowed_for_anonymous_while_user_signed_in(self, client, document_store):
        """Test another user's sign-in does not authorize an anonymous rating"""
        sign_up(client, "jane@example.com")

        response = client.post("/coaches/3/ratings", json={"rating": 1})

        assert response.status_code == 401
        assert document_store.collections["coaches"]["3"]["ratings"] == [4]

    def test_rate_once(self, client, document_store):
        """Test a user can rate a coach only once"""
        headers = sign_up(client, "jane@example.com")

        first = client.post("/coaches/3/ratings", json={"rating": 2}, headers=headers)
        second = client.post("/coaches/3/ratings", json={"rating": 5}, headers=headers)

        assert first.status_code == 201
        assert first.json()["ratings"] == [4, 2]
        assert second.status_code == 409
        assert document_store.collections["coaches"]["3"]["ratings"] == [4, 2]

    def test_rate_out_of_range(self, client):
        """Test a rating above five"""
        headers = sign_up(client, "jane@example.com")
        assert client.post("/coaches/1/ratings", json={"rating": 6}, headers=headers).status_code == 422

    def test_dashboard_requires_coach_role(self, client):
        """Test the dashboard rejects regular users"""
        headers = sign_up(client, "jane@example.com")

        response = client.get("/coaches/dashboard/me", headers=headers)

        assert response.status_code == 403
        assert response.json()["message"] == "You are not authorized to view this page."

    def test_dashboard_for_linked_coach(self, client, document_store):
        """Test the dashboard for a coach linked to a record"""
        document_store.collections["coaches"]["4"] = {"name": "Jane Coach", "ratings": []}
        headers = sign_up(client, "jane.coach@example.com")

        response = client.get("/coaches/dashboard/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == "4"

    def test_dashboard_without_linked_record(self, client):
        """Test the dashboard for a coach without a record"""
        headers = sign_up(client, "coach.nobody@example.com")
        assert client.get("/coaches/dashboard/me", headers=headers).status_code == 404


class TestEmailRoutes:
    """Test email API routes"""

    def test_welcome(self, client, email_service):
        """Test successful welcome email"""
        response = client.post("/api/v1/emails/welcome", json={"email": "jane@example.com"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "error": None}
        email_service.send_welcome_email.assert_awaited_once_with("jane@example.com")

    def test_welcome_smtp_failure(self, client, email_service):
        """Test welcome email SMTP failure"""
        email_service.send_welcome_email.side_effect = SMTPError("connection refused")

        response = client.post("/api/v1/emails/welcome", json={"email": "jane@example.com"})

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "connection refused"}

    def test_custom_requires_sign_in(self, client, email_service):
        """Test feedback email without a token"""
        response = client.post("/api/v1/emails/custom", json=FEEDBACK)

        assert response.status_code == 401
        email_service.send_feedback_email.assert_not_awaited()

    def test_custom_rejects_anonymous_while_user_signed_in(self, client, email_service):
        """Test another user's sign-in does not let an anonymous caller send feedback"""
        sign_up(client, "jane@example.com")

        response = client.post("/api/v1/emails/custom", json=FEEDBACK)

        assert response.status_code == 401
        email_service.send_feedback_email.assert_not_awaited()

    def test_custom_missing_fields(self, client):
        """Test feedback email with missing fields"""
        headers = sign_up(client, "jane@example.com")

        response = client.post(
            "/api/v1/emails/custom", json={"to": "support@example.com", "subject": "Hi"}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields: to, subject, or message"

    def test_custom_sends_as_signed_in_user(self, client, email_service):
        """Test feedback email is sent on behalf of the caller"""
        sign_up(client, "sam@example.com")
        headers = sign_up(client, "jane@example.com")

        response = client.post("/api/v1/emails/custom", json={
            "to": "support@example.com",
            "subject": "Great app",
            "message": "Thanks!",
            "attachments": [{"content": "aGVsbG8=", "filename": "note.txt", "type": "text/plain"}]
        }, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message_id"] == "<feedback@test.com>"
        call_kwargs = email_service.send_feedback_email.call_args.kwargs
        assert call_kwargs["sender_email"] == "jane@example.com"
        assert call_kwargs["to"] == "support@example.com"
        assert call_kwargs["attachments"][0].filename == "note.txt"

    def test_custom_rejects_invalid_attachment(self, client, email_service):
        """Test feedback email with an attachment that is not base64"""
        headers = sign_up(client, "jane@example.com")

        response = client.post("/api/v1/emails/custom", json={
            **FEEDBACK,
            "attachments": [{"content": "not base64!", "filename": "note.txt"}]
        }, headers=headers)

        assert response.status_code == 422
        email_service.send_feedback_email.assert_not_awaited()

    @pytest.mark.parametrize("subject", ["Hi\r\nBcc: victim@example.com", "Hi\nthere"])
    def test_custom_rejects_multiline_subject(self, client, email_service, subject):
        """Test feedback email with line breaks in the subject"""
        headers = sign_up(client, "jane@example.com")

        response = client.post("/api/v1/emails/custom", json={**FEEDBACK, "subject": subject}, headers=headers)

        assert response.status_code == 422
        email_service.send_feedback_email.assert_not_awaited()

    def test_custom_smtp_failure(self, client, email_service):
        """Test feedback email SMTP failure"""
        headers = sign_up(client, "jane@example.com")
        email_service.send_feedback_email.side_effect = SMTPError("mailbox unavailable")

        response = client.post("/api/v1/emails/custom", json=FEEDBACK, headers=headers)

        assert response.status_code == 503
        assert "mailbox unavailable" in response.json()["message"]


class TestHealthRoutes:
    """Test health check routes"""

    def test_health_check(self, client):
        """Test basic health check"""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "wellness-service"

    def test_detailed_health_degraded_when_smtp_down(self, client):
        """Test detailed health check with SMTP down"""
        smtp = MagicMock()
        smtp.test_connection = AsyncMock(return_value={"success": False, "error": "refused", "host": "mailhog", "port": 1025})
        with patch("app.routes.health.get_smtp_client", return_value=smtp):
            response = client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["smtp"]["status"] == "unhealthy"
