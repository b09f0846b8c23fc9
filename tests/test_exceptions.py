"""
Tests for exception handling and error responses.
"""
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from app.core.exceptions import (
    AppException,
    AuthenticationException,
    AuthorizationException,
    ConfigurationException,
    ConflictException,
    DuplicateEntityException,
    EntityInUseException,
    ExternalServiceException,
    InvalidReferenceException,
    InvalidStatusTransitionException,
    InvoiceLockedException,
    MissingTenantException,
    NotFoundException,
    RateLimitException,
    RevenueShareExceededException,
    ValidationException,
    register_exception_handlers,
)


class TestAppException:
    """Tests for base AppException class."""

    def test_default_values(self):
        """Test default exception values."""
        exc = AppException()
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.message == "Wystapil nieoczekiwany blad"
        assert exc.details is None

    def test_custom_message_and_code(self):
        exc = AppException(message="Cos poszlo nie tak", error_code="CUSTOM")
        assert exc.message == "Cos poszlo nie tak"
        assert exc.error_code == "CUSTOM"
        assert str(exc) == "Cos poszlo nie tak"

    def test_to_response(self):
        """Test conversion to error response."""
        exc = AppException(message="Blad testowy", details={"key": "value"})
        response = exc.to_response(request_id="req-123")

        assert response.error == "Blad testowy"
        assert response.code == "INTERNAL_ERROR"
        assert response.status_code == 500
        assert response.request_id == "req-123"
        assert response.details == {"key": "value"}
        assert response.timestamp.endswith("Z")


class TestClientErrors:
    """Status codes and codes of the 4xx family."""

    def test_validation(self):
        exc = ValidationException("Zle dane")
        assert exc.status_code == 400
        assert exc.error_code == "VALIDATION_ERROR"

    def test_authentication(self):
        exc = AuthenticationException()
        assert exc.status_code == 401
        assert exc.error_code == "AUTHENTICATION_FAILED"

    def test_authorization(self):
        exc = AuthorizationException()
        assert exc.status_code == 403
        assert exc.error_code == "PERMISSION_DENIED"

    def test_not_found(self):
        assert NotFoundException().status_code == 404

    def test_conflict(self):
        assert ConflictException().status_code == 409

    def test_rate_limit(self):
        exc = RateLimitException()
        assert exc.status_code == 429
        assert exc.error_code == "RATE_LIMIT_EXCEEDED"

    def test_missing_tenant(self):
        exc = MissingTenantException()
        assert exc.status_code == 403
        assert exc.error_code == "TENANT_REQUIRED"


class TestDomainExceptions:
    """Domain errors carry structured details."""

    def test_duplicate_entity(self):
        exc = DuplicateEntityException("Pojazd juz istnieje", field="registration_number", value="WX12345")
        assert exc.status_code == 409
        assert exc.error_code == "DUPLICATE_ENTITY"
        assert exc.details == {"field": "registration_number", "value": "WX12345"}

    def test_entity_in_use(self):
        exc = EntityInUseException("Kierowca ma aktywne zlecenia", active_count=3)
        assert exc.status_code == 409
        assert exc.details == {"active_count": 3}

    def test_invalid_reference(self):
        exc = InvalidReferenceException("Kierowca nie istnieje", field="driver_id", value="abc")
        assert exc.status_code == 400
        assert exc.error_code == "INVALID_REFERENCE"
        assert exc.details["field"] == "driver_id"

    def test_invalid_status_transition(self):
        exc = InvalidStatusTransitionException(current="NEW", target="COMPLETED", allowed=["ACCEPTED"])
        assert exc.status_code == 400
        assert exc.error_code == "INVALID_STATUS_TRANSITION"
        assert "NEW" in exc.message and "COMPLETED" in exc.message
        assert exc.details["allowed"] == ["ACCEPTED"]

    def test_revenue_share_exceeded(self):
        exc = RevenueShareExceededException(current_total=0.7, requested=0.5)
        assert exc.status_code == 400
        assert exc.error_code == "REVENUE_SHARE_EXCEEDED"
        assert "70%" in exc.message
        assert "50%" in exc.message
        assert exc.details["available"] == 0.3

    def test_invoice_locked(self):
        exc = InvoiceLockedException()
        assert exc.status_code == 400
        assert exc.error_code == "INVOICE_LOCKED"


class TestServerErrors:

    def test_external_service(self):
        exc = ExternalServiceException("Webhook nie odpowiada")
        assert exc.status_code == 502
        assert exc.error_code == "EXTERNAL_SERVICE_ERROR"

    def test_configuration(self):
        exc = ConfigurationException(message="Brak SECRET_KEY")
        assert exc.status_code == 500
        assert exc.error_code == "CONFIGURATION_ERROR"


class Payload(BaseModel):
    name: str = Field(..., min_length=3)


def _app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundException("Nie znaleziono pojazdu")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    @app.post("/payload")
    async def payload(body: Payload):
        return body

    return app


class TestExceptionHandlers:
    """Every error leaves the API in the same JSON shape."""

    def test_register_handlers(self):
        app = FastAPI()
        register_exception_handlers(app)

        assert AppException in app.exception_handlers
        assert Exception in app.exception_handlers

    def test_app_exception_shape(self):
        client = TestClient(_app())
        response = client.get("/not-found", headers={"X-Request-ID": "abc-1"})

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Nie znaleziono pojazdu"
        assert body["code"] == "NOT_FOUND"
        assert body["status_code"] == 404
        assert body["request_id"] == "abc-1"
        assert response.headers["X-Request-ID"] == "abc-1"

    def test_request_validation_is_400_with_fields(self):
        client = TestClient(_app())
        response = client.post("/payload", json={"name": "ab"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "name"

    def test_unknown_route(self):
        client = TestClient(_app())
        response = client.get("/missing")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_unhandled_exception(self):
        client = TestClient(_app(), raise_server_exceptions=False)
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert "unexpected" not in body["error"]
