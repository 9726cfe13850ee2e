"""Tests for ic_common.errors, ic_common.response and ic_common.result."""

import pytest

from src.ic_common.errors import (
    AccountNotFoundError,
    AppError,
    InsufficientCreditsError,
    LedgerWriteError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from src.ic_common.response import ApiResponse, error_response, success_response
from src.ic_common.result import Err, Ok


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    def test_insufficient_credits_keeps_amounts(self) -> None:
        err = InsufficientCreditsError("u1", required=1, available=0)
        assert err.code == 2001
        assert err.http_status == 402
        assert (err.account_id, err.required, err.available) == ("u1", 1, 0)
        assert "required 1" in err.message

    def test_account_not_found(self) -> None:
        err = AccountNotFoundError("u9")
        assert err.code == 2002
        assert err.http_status == 404

    def test_ledger_write_error(self) -> None:
        err = LedgerWriteError("connection reset")
        assert err.code == 2003
        assert "connection reset" in err.message

    def test_provider_error_timeout_flag(self) -> None:
        assert ProviderError("boom").timed_out is False
        err = ProviderError("slow", timed_out=True)
        assert err.timed_out is True
        assert err.http_status == 502

    def test_persistence_error(self) -> None:
        assert PersistenceError("x").code == 3002

    def test_validation_error(self) -> None:
        err = ValidationError("input cannot be empty")
        assert err.http_status == 422
        assert err.message == "Invalid input: input cannot be empty"


class TestResult:
    def test_ok(self) -> None:
        result = Ok(5)
        assert result.is_ok
        assert result.unwrap() == 5

    def test_err_unwrap_raises_the_error(self) -> None:
        err = AccountNotFoundError("u1")
        result = Err(err)
        assert not result.is_ok
        with pytest.raises(AccountNotFoundError):
            result.unwrap()

    def test_pattern_matching(self) -> None:
        match Err(ValidationError("x")):
            case Ok(_):
                pytest.fail("expected Err")
            case Err(error):
                assert error.code == 1001


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"credits": 3})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.data == {"credits": 3}
        assert resp.request_id.startswith("req_")

    def test_error_response_keeps_request_id(self) -> None:
        resp = error_response(2001, "Insufficient credits", request_id="req_abc")
        assert resp.code == 2001
        assert resp.data is None
        assert resp.request_id == "req_abc"
