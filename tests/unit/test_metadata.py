import pytest

from eventreg.errors import ValidationError
from eventreg.payments.metadata import (
    METADATA_VERSION, build_metadata, extract_metadata_from_session,
)

def _registration():
    return {"id": "reg-1", "email": "b@x.com", "full_name": "Bea", "phone": None, "team_name": "Ballers"}

def test_build_metadata_serializes_all_fields_as_strings():
    meta = build_metadata(_registration(), "evt2").to_stripe()
    assert meta == {
        "v": METADATA_VERSION,
        "registration_id": "reg-1",
        "event_id": "evt2",
        "email": "b@x.com",
        "full_name": "Bea",
        "phone": "",
        "team_name": "Ballers",
    }

def test_extract_metadata_reads_versioned_schema():
    meta = build_metadata(_registration(), "evt2").to_stripe()
    parsed = extract_metadata_from_session({"metadata": meta})
    assert parsed.registration_id == "reg-1"
    assert parsed.event_id == "evt2"
    assert parsed.team_name == "Ballers"

def test_registration_id_falls_back_to_client_reference_id():
    meta = build_metadata(_registration(), "evt2").to_stripe()
    meta.pop("registration_id")
    parsed = extract_metadata_from_session({"metadata": meta, "client_reference_id": "reg-1"})
    assert parsed.registration_id == "reg-1"

def test_missing_required_field_is_named_in_error():
    meta = build_metadata(_registration(), "evt2").to_stripe()
    meta["email"] = " "
    with pytest.raises(ValidationError) as exc:
        extract_metadata_from_session({"metadata": meta})
    assert exc.value.code == "invalid_metadata"
    assert "email" in exc.value.message

def test_unknown_version_is_rejected():
    meta = build_metadata(_registration(), "evt2").to_stripe()
    meta["v"] = "2"
    with pytest.raises(ValidationError) as exc:
        extract_metadata_from_session({"metadata": meta})
    assert exc.value.message.endswith(": v")

def test_empty_session_is_rejected():
    with pytest.raises(ValidationError):
        extract_metadata_from_session({})
