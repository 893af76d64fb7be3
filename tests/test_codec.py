from __future__ import annotations

import unittest

from itinerary_service.codec import (
    ArrayValue,
    DoubleValue,
    IntegerValue,
    MapValue,
    StringValue,
    decode_fields,
    encode_fields,
    from_field,
    from_python,
)


class FieldEncodingTest(unittest.TestCase):
    def test_scalars_use_typed_markers(self) -> None:
        fields = encode_fields({"a": None, "b": "x", "c": 7, "d": True})
        self.assertEqual(
            fields,
            {
                "a": {"nullValue": None},
                "b": {"stringValue": "x"},
                "c": {"integerValue": "7"},
                "d": {"booleanValue": True},
            },
        )

    def test_bool_is_not_encoded_as_integer(self) -> None:
        self.assertEqual(encode_fields({"flag": False}), {"flag": {"booleanValue": False}})

    def test_nested_list_of_records(self) -> None:
        fields = encode_fields({"days": [{"day": 1, "tags": ["a"]}]})
        self.assertEqual(
            fields["days"],
            {
                "arrayValue": {
                    "values": [
                        {
                            "mapValue": {
                                "fields": {
                                    "day": {"integerValue": "1"},
                                    "tags": {"arrayValue": {"values": [{"stringValue": "a"}]}},
                                }
                            }
                        }
                    ]
                }
            },
        )

    def test_unsupported_values_are_omitted(self) -> None:
        fields = encode_fields({"ok": "yes", "ratio": 0.5, "blob": b"raw", "obj": object(), "items": [1, 0.25, "x"]})
        self.assertEqual(set(fields), {"ok", "items"})
        self.assertEqual(
            fields["items"],
            {"arrayValue": {"values": [{"integerValue": "1"}, {"stringValue": "x"}]}},
        )

    def test_integral_float_becomes_integer(self) -> None:
        self.assertEqual(from_python(3.0), IntegerValue(3))

    def test_lift_builds_variants(self) -> None:
        value = from_python({"name": "Rome", "days": [1, 2]})
        self.assertEqual(
            value,
            MapValue((("name", StringValue("Rome")), ("days", ArrayValue((IntegerValue(1), IntegerValue(2)))))),
        )


class FieldDecodingTest(unittest.TestCase):
    def test_round_trip_job_document(self) -> None:
        document = {
            "status": "completed",
            "destination": "Lisbon",
            "durationDays": 2,
            "createdAt": "2026-01-01T00:00:00+00:00",
            "completedAt": None,
            "error": None,
            "itinerary": [
                {
                    "day": 1,
                    "theme": "Old town",
                    "activities": [{"time": "Morning", "description": "Tram 28", "location": "Alfama"}],
                },
                {"day": 2, "theme": "Coast", "activities": []},
            ],
            "flags": {"public": False, "tags": [], "meta": {}},
        }
        self.assertEqual(decode_fields(encode_fields(document)), document)

    def test_integer_parsed_from_string(self) -> None:
        self.assertEqual(decode_fields({"n": {"integerValue": "42"}}), {"n": 42})
        self.assertEqual(decode_fields({"n": {"integerValue": -5}}), {"n": -5})

    def test_empty_containers_as_returned_by_store(self) -> None:
        self.assertEqual(decode_fields({"list": {"arrayValue": {}}, "map": {"mapValue": {}}}), {"list": [], "map": {}})

    def test_array_items_wrapped_or_raw(self) -> None:
        field = {
            "arrayValue": {
                "values": [
                    {"mapValue": {"fields": {"day": {"integerValue": "1"}}}},
                    {"fields": {"day": {"integerValue": "2"}}},
                    {"day": {"integerValue": "3"}},
                    {"stringValue": "plain"},
                ]
            }
        }
        self.assertEqual(from_field(field).to_python(), [{"day": 1}, {"day": 2}, {"day": 3}, "plain"])

    def test_foreign_markers(self) -> None:
        decoded = decode_fields(
            {"at": {"timestampValue": "2026-01-01T00:00:00Z"}, "score": {"doubleValue": 4.5}}
        )
        self.assertEqual(decoded, {"at": "2026-01-01T00:00:00Z", "score": 4.5})

    def test_double_decodes_to_its_own_variant(self) -> None:
        value = from_field({"doubleValue": "4.5"})
        self.assertEqual(value, DoubleValue(4.5))
        self.assertEqual(value.to_field(), {"doubleValue": 4.5})
        self.assertIsNone(from_python(4.5))

    def test_unknown_marker_raises(self) -> None:
        with self.assertRaises(ValueError):
            decode_fields({"x": {"geoPointValue": {"latitude": 1}}})

    def test_missing_fields_decodes_to_empty(self) -> None:
        self.assertEqual(decode_fields(None), {})


if __name__ == "__main__":
    unittest.main()
