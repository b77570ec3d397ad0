"""Tests for inbound response inspection."""

import pytest

from aitriage.privacy.inbound import (
    InboundInspection,
    has_inline_scripts,
    has_javascript_urls,
    has_tracking_params,
    inspect_response_body,
    strip_tracking_params,
)


class TestScanners:
    @pytest.mark.parametrize(
        ("html", "expected"),
        [
            ("<script>x()</script>", True),
            ("<SCRIPT src='a.js'></SCRIPT>", True),
            ('<img src="a" onerror="x()">', True),
            ("<p>no scripts here</p>", False),
            ("<script>unterminated", False),
        ],
    )
    def test_inline_scripts(self, html, expected):
        assert has_inline_scripts(html) is expected

    @pytest.mark.parametrize(
        ("html", "expected"),
        [
            ('<a href="javascript:void(0)">x</a>', True),
            ("<a href='javascript:alert(1)'>x</a>", True),
            ('<a href="https://example.com">x</a>', False),
        ],
    )
    def test_javascript_urls(self, html, expected):
        assert has_javascript_urls(html) is expected

    def test_tracking_params(self):
        assert has_tracking_params("see https://x.test/?utm_source=ai")
        assert has_tracking_params("https://x.test/?GCLID=abc")
        assert not has_tracking_params("https://x.test/?q=utm")

    def test_strip_tracking_params(self):
        text = "https://x.test/p?utm_source=ai&id=7 and https://y.test/?fbclid=zz"
        assert strip_tracking_params(text) == "https://x.test/p?&id=7 and https://y.test/?"


class TestInspectResponseBody:
    def test_html_with_script_is_malicious(self):
        body = '<p onclick="x()">hello</p><script>steal()</script>'

        inspection = inspect_response_body(body, "text/html; charset=utf-8")

        assert inspection == InboundInspection(malicious=True, sanitized="<p>hello</p>")

    def test_html_with_javascript_link(self):
        inspection = inspect_response_body('<a href="javascript:x()">go</a>', "text/html")
        assert inspection.malicious is True
        assert inspection.sanitized == "go"

    def test_clean_html(self):
        inspection = inspect_response_body("<b>fine</b>", "text/html")
        assert inspection == InboundInspection(malicious=False, sanitized="<b>fine</b>")

    def test_json_with_tracking_params(self):
        body = '{"link": "https://x.test/?utm_campaign=a&q=1"}'

        inspection = inspect_response_body(body, "application/json")

        assert inspection.malicious is True
        assert inspection.sanitized == '{"link": "https://x.test/?&q=1"}'

    def test_plain_text_passes(self):
        inspection = inspect_response_body("just words", "text/plain")
        assert inspection == InboundInspection(malicious=False, sanitized="just words")

    def test_scripts_in_json_are_not_flagged(self):
        inspection = inspect_response_body('{"a": "<script>x</script>"}', "application/json")
        assert inspection.malicious is False

    @pytest.mark.parametrize(
        ("body", "content_type"),
        [("", "text/html"), ("data", "image/png"), ("data", ""), ("data", None)],
    )
    def test_not_scannable(self, body, content_type):
        assert inspect_response_body(body, content_type) is None

    def test_oversized_body_is_not_scanned(self):
        inspection = inspect_response_body("<script>x</script>" * 10, "text/html", max_chars=50)
        assert inspection == InboundInspection(malicious=False, sanitized=None, scanned=False)

    def test_to_dict(self):
        inspection = InboundInspection(malicious=True, sanitized="x")
        assert inspection.to_dict() == {"malicious": True, "sanitized": "x", "scanned": True}
