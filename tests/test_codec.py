"""Tests for Firestore typed value encoding."""

from datetime import UTC, date, datetime

import pytest

from herdbook.core.codec import decode_document, decode_value, document_id, encode_fields, encode_value
from herdbook.models import Sex


class TestEncodeValue:
    """Tests for the encode_value function."""

    def test_integers_travel_as_strings(self):
        assert encode_value(340) == {"integerValue": "340"}

    def test_bool_is_not_an_integer(self):
        assert encode_value(True) == {"booleanValue": True}

    def test_float(self):
        assert encode_value(340.5) == {"doubleValue": 340.5}

    def test_enum_uses_its_value(self):
        assert encode_value(Sex.FEMALE) == {"stringValue": "Fêmea"}

    def test_date_becomes_midnight_timestamp(self):
        assert encode_value(date(2025, 1, 15)) == {"timestampValue": "2025-01-15T00:00:00Z"}

    def test_naive_datetime_is_treated_as_utc(self):
        assert encode_value(datetime(2025, 1, 15, 10, 30)) == {"timestampValue": "2025-01-15T10:30:00Z"}

    def test_empty_list(self):
        assert encode_value([]) == {"arrayValue": {}}

    def test_nested_map(self):
        encoded = encode_value({"bullId": "b1", "weights": [1, 2]})
        fields = encoded["mapValue"]["fields"]
        assert fields["bullId"] == {"stringValue": "b1"}
        assert fields["weights"]["arrayValue"]["values"][1] == {"integerValue": "2"}

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            encode_value(object())


class TestEncodeFields:
    """Tests for encode_fields."""

    def test_drops_none_values(self):
        assert encode_fields({"nome": None, "brinco": "A1"}) == {"brinco": {"stringValue": "A1"}}


class TestDecodeValue:
    """Tests for decode_value."""

    def test_integer_string_becomes_int(self):
        assert decode_value({"integerValue": "42"}) == 42

    def test_timestamp(self):
        value = decode_value({"timestampValue": "2025-01-15T00:00:00Z"})
        assert value == datetime(2025, 1, 15, tzinfo=UTC)

    def test_array_without_values(self):
        assert decode_value({"arrayValue": {}}) == []

    def test_null(self):
        assert decode_value({"nullValue": None}) is None

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            decode_value({"mysteryValue": 1})


class TestDocuments:
    """Tests for document helpers."""

    def test_document_id_from_resource_name(self):
        name = "projects/p/databases/(default)/documents/animals/abc"
        assert document_id(name) == "abc"

    def test_decode_document_adds_id(self):
        document = {
            "name": "projects/p/databases/(default)/documents/animals/cow-1",
            "fields": {"brinco": {"stringValue": "V001"}, "pesoKg": {"doubleValue": 450.0}},
        }
        assert decode_document(document) == {"id": "cow-1", "brinco": "V001", "pesoKg": 450.0}
