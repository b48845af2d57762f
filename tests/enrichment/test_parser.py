"""
Tests for structured response parsing.
"""

import json

import pytest

from osint_enrich.core.errors import MalformedResponse
from osint_enrich.core.models import Category
from osint_enrich.pipeline.enrichment.parser import (
    extract_json_object,
    parse_category,
    parse_json_payload,
    parse_structured_analysis,
)


def analysis(**overrides):
    payload = {
        "title": "X",
        "category": "cyber",
        "magnitude": 5.0,
        "tags": [],
        "key_facts": [],
        "implications": "",
        "confidence_notes": "",
    }
    payload.update(overrides)
    return json.dumps(payload)


class TestExtractJsonObject:
    """Tests for the brace-matching extractor."""

    def test_noise_around_object(self):
        text = 'Sure! Here you go: {"a": 1} hope this helps {"b": 2}'
        assert extract_json_object(text) == '{"a": 1}'

    def test_markdown_fence(self):
        text = '```json\n{"a": {"b": [1, 2]}}\n```'
        assert extract_json_object(text) == '{"a": {"b": [1, 2]}}'

    def test_braces_inside_strings(self):
        text = 'prefix {"a": "}{ not a brace", "b": "quote \\" }"} suffix'
        assert json.loads(extract_json_object(text)) == {"a": "}{ not a brace", "b": 'quote " }'}

    def test_no_object(self):
        with pytest.raises(MalformedResponse):
            extract_json_object("no json here")

    def test_empty(self):
        with pytest.raises(MalformedResponse):
            extract_json_object("")

    def test_unbalanced(self):
        with pytest.raises(MalformedResponse):
            extract_json_object('{"a": {"b": 1}')

    def test_array_allowed(self):
        assert extract_json_object('result: [{"a": 1}] done', allow_array=True) == '[{"a": 1}]'

    def test_array_ignored_by_default(self):
        assert extract_json_object('[1, 2] then {"a": 1}') == '{"a": 1}'


class TestParseJsonPayload:

    def test_invalid_json(self):
        with pytest.raises(MalformedResponse):
            parse_json_payload("{'single': 'quotes'}")

    @pytest.mark.parametrize("text", ['{"a": NaN}', '{"a": Infinity}', '{"a": -Infinity}', '{"a": 1e999}'])
    def test_non_finite_numbers_rejected(self, text):
        with pytest.raises(MalformedResponse):
            parse_json_payload(text)


class TestParseStructuredAnalysis:
    """Tests for parse_structured_analysis."""

    def test_trailing_noise_and_magnitude_clamp(self):
        text = 'noise ' + analysis(magnitude=12.5) + ' trailing'
        parsed = parse_structured_analysis(text)

        assert parsed.title == "X"
        assert parsed.category == Category.CYBER
        assert parsed.magnitude == 10.0

    def test_negative_magnitude(self):
        assert parse_structured_analysis(analysis(magnitude=-2)).magnitude == 0.0

    def test_nan_magnitude_rejected(self):
        with pytest.raises(MalformedResponse):
            parse_structured_analysis(analysis(magnitude=float("nan")))

    def test_nan_string_magnitude_rejected(self):
        with pytest.raises(MalformedResponse):
            parse_structured_analysis(analysis(magnitude="nan"))

    def test_missing_required_field(self):
        payload = json.loads(analysis())
        del payload["key_facts"]
        with pytest.raises(MalformedResponse) as exc:
            parse_structured_analysis(json.dumps(payload))
        assert "key_facts" in str(exc.value)

    def test_wrong_type(self):
        with pytest.raises(MalformedResponse):
            parse_structured_analysis(analysis(tags="not-a-list"))

    def test_unknown_category(self):
        assert parse_structured_analysis(analysis(category="sports")).category == Category.OTHER

    def test_location_accepted(self):
        parsed = parse_structured_analysis(analysis(location={"country": "Ukraine", "city": "Odesa"}))
        assert parsed.location.country == "Ukraine"
        assert parsed.location.city == "Odesa"

    @pytest.mark.parametrize("country", ["", "Unknown", "N/A", "global", "none", "Not Specified"])
    def test_placeholder_country_dropped(self, country):
        parsed = parse_structured_analysis(analysis(location={"country": country, "city": "Somewhere"}))
        assert parsed.location is None

    def test_null_location(self):
        assert parse_structured_analysis(analysis(location=None)).location is None

    def test_not_an_object(self):
        with pytest.raises(MalformedResponse):
            parse_structured_analysis("[1, 2, 3]")


class TestParseCategory:

    def test_case_insensitive(self):
        assert parse_category(" Military ") == Category.MILITARY
