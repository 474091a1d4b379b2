import pytest
from fastapi import HTTPException
from core.exceptions import (
    ConfigurationError,
    DrawInProgressError,
    DuplicateHostError,
    HostLimitError,
    InvalidArgumentError,
    NoWinnerError,
    ProfileNotFoundError,
    RaffleAPIException,
    StoreError,
    UpstreamUnavailableError,
    to_http_exception,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_invalid_argument_error(self):
        error = InvalidArgumentError("username", "@", "Username cannot be empty")
        assert error.status_code == 400
        assert error.error_code == "INVALID_ARGUMENT"
        assert error.details == {
            "field": "username",
            "value": "@",
            "reason": "Username cannot be empty",
        }

    def test_profile_not_found_error(self):
        error = ProfileNotFoundError("ghost")
        assert str(error) == "Profile not found for username: ghost"
        assert error.status_code == 404
        assert error.error_code == "PROFILE_NOT_FOUND"

    def test_upstream_unavailable_is_retryable(self):
        error = UpstreamUnavailableError("rapidapi", "HTTP 503", upstream_status=503)
        assert error.retryable is True
        assert error.status_code == 500
        assert error.details == {
            "service": "rapidapi",
            "reason": "HTTP 503",
            "upstream_status": 503,
        }

    def test_upstream_status_omitted_when_unknown(self):
        error = UpstreamUnavailableError("rapidapi", "timeout")
        assert "upstream_status" not in error.details

    def test_configuration_error(self):
        error = ConfigurationError("RAPIDAPI_KEY")
        assert error.message == "API configuration error: RAPIDAPI_KEY not configured"
        assert error.retryable is False

    @pytest.mark.parametrize(
        "error,code",
        [
            (DuplicateHostError("@ann1"), "DUPLICATE_HOST"),
            (HostLimitError(3), "HOST_LIMIT_REACHED"),
            (DrawInProgressError(), "DRAW_IN_PROGRESS"),
        ],
    )
    def test_raffle_conflicts(self, error, code):
        assert error.status_code == 409
        assert error.error_code == code

    def test_all_inherit_from_base(self):
        for error in (
            InvalidArgumentError("f", 1, "r"),
            ProfileNotFoundError("x"),
            UpstreamUnavailableError("s", "r"),
            ConfigurationError("k"),
            StoreError("get", "r"),
        ):
            assert isinstance(error, RaffleAPIException)


class TestToHttpException:
    """Test to_http_exception function."""

    @pytest.mark.parametrize(
        "error,status",
        [
            (InvalidArgumentError("username", "", "empty"), 400),
            (ProfileNotFoundError("ghost"), 404),
            (NoWinnerError("idle"), 404),
            (HostLimitError(3), 409),
            (ConfigurationError("RAPIDAPI_KEY"), 500),
            (StoreError("set", "disk full"), 500),
            (UpstreamUnavailableError("rapidapi", "timeout"), 500),
        ],
    )
    def test_status_codes(self, error, status):
        http_error = to_http_exception(error)
        assert isinstance(http_error, HTTPException)
        assert http_error.status_code == status

    def test_detail_shape(self):
        http_error = to_http_exception(ProfileNotFoundError("ghost"))
        assert http_error.detail == {
            "error_code": "PROFILE_NOT_FOUND",
            "message": "Profile not found for username: ghost",
            "details": {"username": "ghost", "reason": "User not found or API error"},
        }

    def test_unknown_code_uses_class_status(self):
        http_error = to_http_exception(RaffleAPIException("odd", "SOMETHING_ELSE"))
        assert http_error.status_code == 500
