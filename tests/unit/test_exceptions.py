"""Tests for custom exceptions."""

from src.core.exceptions import (
    ActionRejectedError,
    AmbiguousOutcomeError,
    BookingBotError,
    ConfigurationError,
    ElementNotFoundError,
    PreconditionTimeoutError,
    StageError,
    UpstreamNavigationError,
    ValidationError,
)


class TestBookingBotError:
    """Test the base exception."""

    def test_to_dict(self):
        """Serialized errors carry class, message and details."""
        error = BookingBotError("boom", recoverable=False, details={"a": 1})

        data = error.to_dict()

        assert data["error"] == "BookingBotError"
        assert data["message"] == "boom"
        assert data["recoverable"] is False
        assert data["details"] == {"a": 1}
        assert "timestamp" in data


class TestStageErrors:
    """Test stage failure types."""

    def test_element_not_found(self):
        """The message lists the tried selectors; diagnostics are kept."""
        error = ElementNotFoundError(
            "service 'Telemedicina'",
            tried_selectors=[".MuiTypography-root"],
            stage="select_service",
            diagnostics=["Consultas", "Exámenes"],
        )

        assert isinstance(error, StageError)
        assert "service 'Telemedicina'" in error.message
        assert ".MuiTypography-root" in error.message
        assert error.stage == "select_service"
        assert error.diagnostics == ["Consultas", "Exámenes"]
        assert error.details["stage"] == "select_service"
        assert error.recoverable is False

    def test_precondition_timeout(self):
        """Timeouts say what was awaited and for how long."""
        error = PreconditionTimeoutError("wait_availability", 45.0, waiting_for="slots")

        assert error.message == "Timed out after 45s waiting for slots in stage wait_availability"
        assert error.timeout == 45.0
        assert error.recoverable is True

    def test_action_rejected_and_ambiguous(self):
        """Both are unrecoverable stage errors."""
        rejected = ActionRejectedError("disabled", stage="identify_patient")
        ambiguous = AmbiguousOutcomeError(stage="submit_reservation", diagnostics=["..."])

        assert rejected.stage == "identify_patient"
        assert not rejected.recoverable
        assert ambiguous.message == "Reservation outcome could not be determined"
        assert ambiguous.diagnostics == ["..."]

    def test_upstream_navigation(self):
        """Navigation failures belong to the start stage."""
        error = UpstreamNavigationError("https://agenda.redsalud.cl", "net::ERR_TIMED_OUT")

        assert error.stage == "start"
        assert error.url == "https://agenda.redsalud.cl"
        assert "net::ERR_TIMED_OUT" in error.message


class TestInputErrors:
    """Test configuration and validation errors."""

    def test_validation_error_field(self):
        """The failing field is exposed and in the details."""
        error = ValidationError("Unknown booking parameter(s): x", field="x")

        assert error.field == "x"
        assert error.details == {"field": "x"}

    def test_configuration_error_defaults(self):
        """Configuration errors are unrecoverable by default."""
        error = ConfigurationError()

        assert error.message == "Configuration error"
        assert error.recoverable is False
