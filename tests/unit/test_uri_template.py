"""Unit tests for URI template matching and expansion."""

import pytest

from mac_engine.registry import UriTemplate


def test_simple_variable_match():
    template = UriTemplate("weather://{city}/current")

    assert template.variables == ["city"]
    assert template.match("weather://austin/current") == {"city": "austin"}


def test_simple_variable_does_not_cross_segments():
    template = UriTemplate("weather://{city}/current")
    assert template.match("weather://austin/tx/current") is None


def test_reserved_variable_spans_segments():
    template = UriTemplate("file:///{+path}")
    assert template.match("file:///docs/readme.md") == {"path": "docs/readme.md"}


def test_values_are_percent_decoded():
    template = UriTemplate("notes://{title}")
    assert template.match("notes://hello%20world") == {"title": "hello world"}


def test_non_matching_uri():
    assert UriTemplate("users://{id}").match("groups://1") is None


def test_expand():
    assert UriTemplate("notes://{title}").expand(title="a b") == "notes://a%20b"
    assert UriTemplate("file:///{+path}").expand(path="a/b c") == "file:///a/b%20c"


def test_expand_missing_variable():
    with pytest.raises(KeyError):
        UriTemplate("users://{id}").expand()


def test_duplicate_variable_rejected():
    with pytest.raises(ValueError):
        UriTemplate("x://{a}/{a}")


def test_unsupported_expression_rejected():
    with pytest.raises(ValueError):
        UriTemplate("x://{?query}")
