"""Tests for traffic models and URL helpers."""

import pytest
from pydantic import ValidationError

from aitriage.traffic.models import NetworkEvent, bucket_key, url_hostname, url_origin


class TestUrlHelpers:
    def test_origin(self):
        assert url_origin("https://Example.COM/path?q=1") == "https://example.com"
        assert url_origin("http://localhost:8080/x") == "http://localhost:8080"

    @pytest.mark.parametrize(
        "url", ["", "not a url", "ftp://files.example.com/a", "chrome-extension://abc/x"]
    )
    def test_non_http_origin(self, url):
        assert url_origin(url) is None

    def test_hostname(self):
        assert url_hostname("https://API.OpenAI.com/v1") == "api.openai.com"
        assert url_hostname("") == ""

    def test_bucket_key(self):
        assert bucket_key("https://api.openai.com/v1/chat/completions") == (
            "https://api.openai.com/v1"
        )
        assert bucket_key("https://example.com") == "https://example.com/"
        assert bucket_key("https://example.com//a/b") == "https://example.com/a"


class TestNetworkEvent:
    def test_defaults(self):
        event = NetworkEvent(url="https://example.com/")
        assert event.method == "GET"
        assert event.resource_type == "other"
        assert event.phase == "request"
        assert event.context_id is None
        assert not event.is_mutating

    def test_normalization(self):
        event = NetworkEvent(
            method="post",
            url="https://example.com/",
            resource_type=" XMLHttpRequest ",
            request_headers={"Content-Type": "application/json", "X-Empty": None},
        )
        assert event.method == "POST"
        assert event.is_mutating
        assert event.resource_type == "xmlhttprequest"
        assert event.request_headers == {"content-type": "application/json", "x-empty": ""}

    def test_header_list(self):
        event = NetworkEvent.model_validate(
            {
                "url": "https://example.com/",
                "request_headers": [
                    {"name": "Authorization", "value": "Bearer t"},
                    {"name": "", "value": "dropped"},
                    "garbage",
                ],
            }
        )
        assert event.request_headers == {"authorization": "Bearer t"}

    def test_body_size(self):
        assert NetworkEvent(url="https://e.com/", request_body_size=10).body_size == 10
        event = NetworkEvent(url="https://e.com/", request_headers={"Content-Length": "4096"})
        assert event.body_size == 4096
        assert NetworkEvent(url="https://e.com/").body_size is None
        event = NetworkEvent(url="https://e.com/", request_headers={"content-length": "abc"})
        assert event.body_size is None

    def test_invalid(self):
        with pytest.raises(ValidationError):
            NetworkEvent.model_validate({"method": "GET"})
        with pytest.raises(ValidationError):
            NetworkEvent(url="https://e.com/", request_body_size=-1)
        with pytest.raises(ValidationError):
            NetworkEvent(url="https://e.com/", phase="completed")
