from __future__ import annotations

from topnote.errors import (
    NotFoundError,
    PersistenceError,
    RangeError,
    StoreError,
    TopnoteError,
    ValidationError,
)


def test_range_error_records_positions() -> None:
    from topnote.editor.blocks_models import Position

    err = RangeError("Offset outside block", position=Position(2, 40), end=Position(3, 0))

    assert isinstance(err, TopnoteError)
    assert err.to_dict() == {
        "type": "range",
        "message": "Offset outside block",
        "recoverable": False,
        "position": (2, 40),
        "end": (3, 0),
    }


def test_range_error_extra_context() -> None:
    err = RangeError("Block index out of range", context={"index": 9})

    assert err.context == {"index": 9}
    assert err.position is None


def test_validation_error_truncates_value() -> None:
    err = ValidationError("bad", field="kind", value="x" * 500)

    assert err.field == "kind"
    assert len(err.context["value"]) == 100
    assert err.context["value"].endswith("...")


def test_store_error_defaults_recoverable() -> None:
    err = StoreError("offline", operation="update", note_id="n1")

    assert err.recoverable is True
    assert err.to_dict() == {
        "type": "store",
        "message": "offline",
        "recoverable": True,
        "operation": "update",
        "note_id": "n1",
    }


def test_persistence_error_is_store_error() -> None:
    err = PersistenceError("Could not update share link", status_code=403, recoverable=False)

    assert isinstance(err, StoreError)
    assert err.to_dict()["type"] == "persistence"
    assert err.to_dict()["status_code"] == 403


def test_not_found_hides_full_token() -> None:
    err = NotFoundError(token="abcdef0123456789")

    assert err.message == "Note not found"
    assert err.context == {"token_prefix": "abcdef"}
    assert "abcdef0123456789" not in str(err.to_dict())


def test_not_found_without_token() -> None:
    err = NotFoundError()

    assert err.to_dict() == {"type": "notfound", "message": "Note not found", "recoverable": False}
