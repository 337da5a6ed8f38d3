from __future__ import annotations

import pytest

from queries import service


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 20),
        ("", 20),
        ("abc", 20),
        ("nan", 20),
        ("1", 1),
        ("100", 100),
        ("101", 100),
        ("inf", 100),
        ("0", 1),
        ("-5", 1),
        ("0.5", 1),
        (" 42 ", 42),
        ("1e1", 10),
    ],
)
def test_clamp_limit(raw, expected):
    assert service.clamp_limit(raw) == expected


def test_parse_create_request_groups_errors_by_field():
    with pytest.raises(service.QueryLogError) as excinfo:
        service.parse_create_request({"text": "", "meta": 3})

    err = excinfo.value
    assert err.status_code == 400
    body = err.to_dict()
    assert body["error"] == "Invalid payload"
    assert set(body["details"]["fieldErrors"]) == {"text", "meta"}
    assert body["details"]["formErrors"] == []


def test_parse_create_request_accepts_arbitrary_meta_values():
    payload = service.parse_create_request({"text": "hi", "meta": {"a": [1, {"b": None}], "c": True}})

    assert payload.text == "hi"
    assert payload.meta == {"a": [1, {"b": None}], "c": True}
