"""
County Directory Backend: Structured Field Decoding Tests
===========================================================

Both outcomes of decode-or-default are asserted explicitly: values that
decode (or need no decoding) and text that falls back to the empty default.
"""

from county_api.services.field_decoder import (
    decode_companies,
    decode_robots,
    decode_structured,
)


class TestDecodeStructured:

    def test_native_value_passes_through(self):
        value = [{"companyId": "x"}]
        result = decode_companies(value)
        assert result.decoded
        assert result.value is value

    def test_json_text_is_decoded(self):
        result = decode_robots('{"index": true}')
        assert result.decoded
        assert result.value == {"index": True}

    def test_bytes_are_decoded(self):
        result = decode_companies(b"[]")
        assert result.value == []
        assert not result.fell_back

    def test_companies_fallback_is_empty_list(self):
        result = decode_companies("not json")
        assert result.fell_back
        assert result.value == []
        assert result.error

    def test_robots_fallback_is_empty_dict(self):
        result = decode_robots("")
        assert result.fell_back
        assert result.value == {}

    def test_fallback_builds_fresh_default(self):
        first = decode_structured("nope", list, "companies")
        second = decode_structured("nope", list, "companies")
        first.value.append(1)
        assert second.value == []
