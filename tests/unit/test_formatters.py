"""
Tests for JSON and XML formatters
"""

import json
from datetime import datetime, timedelta, timezone
from xml.dom import minidom

import pytest

from approval_export.formatters import (
    JSONFormatter,
    NodeKind,
    XMLFormatter,
    canonical_timestamp,
    classify,
    escape_xml,
    humanize_key,
    tag_name,
)


@pytest.mark.unit
class TestHelpers:
    """Tests for formatting helpers"""

    def test_canonical_timestamp(self):
        moment = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert canonical_timestamp(moment) == "2024-03-01T09:30:00.000Z"

    def test_canonical_timestamp_converts_offsets(self):
        moment = datetime(2024, 3, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
        assert canonical_timestamp(moment) == "2024-03-01T09:30:00.000Z"

    def test_naive_timestamp_treated_as_utc(self):
        assert canonical_timestamp(datetime(2024, 3, 1)) == "2024-03-01T00:00:00.000Z"

    def test_escape_xml(self):
        assert escape_xml("A & B < C") == "A &amp; B &lt; C"
        assert escape_xml('say "hi" it\'s >') == "say &quot;hi&quot; it&#39;s &gt;"
        assert escape_xml(None) == ""

    def test_escape_xml_drops_control_characters(self):
        assert escape_xml("bell\x07here\ttab\nline") == "bellhere\ttab\nline"
        assert escape_xml("\x00\x1f") == ""

    @pytest.mark.parametrize("key,expected", [
        ("totalRequests", "totalRequests"),
        ("cost center", "cost_center"),
        ("a/b<c>", "a_b_c_"),
        ("2024", "_2024"),
        ("-rate", "_-rate"),
        ("", "_"),
    ])
    def test_tag_name(self, key, expected):
        assert tag_name(key) == expected

    @pytest.mark.parametrize("key,expected", [
        ("totalRequests", "Total Requests"),
        ("avgApprovalTime", "Avg Approval Time"),
        ("status", "Status"),
    ])
    def test_humanize_key(self, key, expected):
        assert humanize_key(key) == expected


@pytest.mark.unit
class TestJSONFormatter:
    """Tests for JSON formatting"""

    def test_datetimes_serialized_canonically(self):
        content = JSONFormatter().format({"at": datetime(2024, 1, 2, tzinfo=timezone.utc)})
        assert json.loads(content) == {"at": "2024-01-02T00:00:00.000Z"}

    def test_indent(self):
        assert JSONFormatter(indent=4).format({"a": 1}) == '{\n    "a": 1\n}'

    def test_non_ascii_kept(self):
        assert "Zoë" in JSONFormatter().format({"name": "Zoë"})


@pytest.mark.unit
class TestXMLFormatter:
    """Tests for the markup walk"""

    def test_classify(self):
        assert classify(None) is NodeKind.NULL
        assert classify({"a": 1}) is NodeKind.MAPPING
        assert classify([1]) is NodeKind.SEQUENCE
        assert classify("x") is NodeKind.SCALAR
        assert classify(0) is NodeKind.SCALAR

    def test_nested_mapping_and_sequence(self):
        xml = XMLFormatter().element("request", {"id": "R1", "tags": ["a", "b"], "meta": {"level": 2}})
        assert xml == (
            "<request><id>R1</id><tags><item>a</item><item>b</item></tags>"
            "<meta><level>2</level></meta></request>"
        )

    def test_null_is_self_closing(self):
        assert XMLFormatter().element("completedAt", None) == "<completedAt/>"

    def test_scalars(self):
        formatter = XMLFormatter()
        assert formatter.element("flag", True) == "<flag>true</flag>"
        assert formatter.element("at", datetime(2024, 1, 1, tzinfo=timezone.utc)) == (
            "<at>2024-01-01T00:00:00.000Z</at>"
        )

    def test_text_escaped(self):
        assert XMLFormatter().element("subject", "A & B < C") == "<subject>A &amp; B &lt; C</subject>"

    def test_mapping_keys_become_valid_tags(self):
        xml = XMLFormatter().element("data", {"cost center": 12, "2024": "q1", "note": "ok\x0b"})

        assert xml == "<data><cost_center>12</cost_center><_2024>q1</_2024><note>ok</note></data>"
        assert minidom.parseString(xml).documentElement.tagName == "data"

    def test_document(self):
        document = XMLFormatter().document("requests", "request", [{"id": "R1"}])
        assert document.splitlines() == [
            '<?xml version="1.0" encoding="UTF-8"?>',
            "<requests>",
            "<request><id>R1</id></request>",
            "</requests>",
        ]

    def test_empty_document(self):
        document = XMLFormatter().document("comments", "comment", [])
        assert document.endswith("<comments>\n</comments>")
