"""Unit tests for collection payload validation."""
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def test_insert_payload_keeps_only_supplied_keys():
    from api.schemas import validatePayload
    assert validatePayload("organizations", {"name": "Acme"}) == {"name": "Acme"}


def test_insert_requires_required_fields():
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload("organizations", {"website": "https://acme.test"})


def test_unknown_field_rejected():
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload("roles", {"name": "editor", "colour": "red"})


def test_unknown_table_rejected():
    from api.errors import UnknownTableError
    from api.schemas import validatePayload
    with pytest.raises(UnknownTableError):
        validatePayload("widgets", {"name": "x"})


def test_partial_allows_missing_required_fields():
    from api.schemas import validatePayload
    assert validatePayload("events", {"location": "Hall B"}, partial=True) == {"location": "Hall B"}


def test_partial_keeps_constraints():
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload("organizations", {"name": "   "}, partial=True)
    with pytest.raises(ValidationError):
        validatePayload("feedback", {"rating": 9}, partial=True)


@pytest.mark.parametrize("table,field", [
    ("organizations", "name"),
    ("payments", "amount"),
    ("events", "starts_at"),
])
def test_partial_rejects_none_for_required_columns(table, field):
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload(table, {field: None}, partial=True)


def test_partial_accepts_none_for_nullable_columns():
    from api.schemas import validatePayload
    assert validatePayload("organizations", {"description": None}, partial=True) == {"description": None}


@pytest.mark.parametrize("amount", ["inf", "-inf", "nan", float("inf")])
def test_payment_amount_must_be_finite(amount):
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload("payments", {"amount": amount})
    with pytest.raises(ValidationError):
        validatePayload("payments", {"amount": amount}, partial=True)


def test_partial_rejects_id():
    from api.schemas import validatePayload
    with pytest.raises(ValidationError):
        validatePayload("organizations", {"id": "org-2"}, partial=True)


def test_form_strings_are_coerced():
    from api.schemas import validatePayload
    out = validatePayload("payments", {"amount": "12.50", "payment_date": "2024-03-01T10:00:00"})
    assert out["amount"] == 12.5
    assert out["payment_date"].startswith("2024-03-01T10:00:00")


def test_email_pattern():
    from api.schemas import validatePayload
    assert validatePayload("email_signups", {"email": " a@b.co "})["email"] == "a@b.co"
    with pytest.raises(ValidationError):
        validatePayload("email_signups", {"email": "not-an-email"})


def test_every_table_builds_a_partial_model():
    from api.schemas import TABLES, partialModel
    for table in TABLES:
        assert "id" not in partialModel(table).model_fields
