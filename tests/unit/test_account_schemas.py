"""Tests for ic_account schemas and the ledger cursor codec."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.ic_account.application.schemas import (
    AddCreditsRequest,
    LedgerEntryItem,
    OpenAccountRequest,
    cursor_decode,
    cursor_encode,
)
from src.ic_account.domain.models import LedgerEntry
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import ValidationError


class TestCursor:
    def test_decode_encoded(self) -> None:
        assert cursor_decode(cursor_encode("txn_00000000000000000042")) == "txn_00000000000000000042"

    def test_none(self) -> None:
        assert cursor_decode(None) is None

    @pytest.mark.parametrize("cursor", ["%%%", "not-base64!!", "W10="])
    def test_malformed_rejected(self, cursor: str) -> None:
        with pytest.raises(ValidationError):
            cursor_decode(cursor)


class TestAddCreditsRequest:
    def test_defaults_to_add(self) -> None:
        req = AddCreditsRequest(amount=5, description="Purchase")
        assert req.kind is TransactionKind.ADD

    def test_zero_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            AddCreditsRequest(amount=0, description="x")

    def test_description_required(self) -> None:
        with pytest.raises(PydanticValidationError):
            AddCreditsRequest(amount=1, description="")


class TestOpenAccountRequest:
    def test_negative_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            OpenAccountRequest(credits=-1)

    def test_optional(self) -> None:
        assert OpenAccountRequest().credits is None


class TestLedgerEntryItem:
    def test_from_domain(self) -> None:
        entry = LedgerEntry.create("u1", -1, TransactionKind.DEDUCT, "Generation: PRD", {"saga_id": "s"})
        item = LedgerEntryItem.from_domain(entry)
        assert item.kind == "DEDUCT"
        assert item.amount == -1
        assert item.metadata == {"saga_id": "s"}
