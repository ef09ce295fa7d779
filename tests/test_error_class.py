from datetime import timedelta

import pytest

from codex_relay.error_class import (
    ErrorKind,
    classify,
    classify_with_body,
    quota_backoff,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (200, ErrorKind.CLIENT),
        (401, ErrorKind.AUTH),
        (402, ErrorKind.AUTH),
        (403, ErrorKind.AUTH),
        (404, ErrorKind.NOT_FOUND),
        (408, ErrorKind.TRANSIENT),
        (425, ErrorKind.TRANSIENT),
        (429, ErrorKind.QUOTA),
        (500, ErrorKind.TRANSIENT),
        (502, ErrorKind.TRANSIENT),
        (503, ErrorKind.TRANSIENT),
        (504, ErrorKind.TRANSIENT),
        (400, ErrorKind.CLIENT),
        (422, ErrorKind.CLIENT),
        (None, ErrorKind.NETWORK),
    ],
)
def test_classify_known_codes(status, expected):
    assert classify(status) is expected


def test_labels():
    assert ErrorKind.AUTH.label() == "auth"
    assert ErrorKind.QUOTA.label() == "quota"
    assert ErrorKind.NOT_FOUND.label() == "not_found"
    assert ErrorKind.TRANSIENT.label() == "transient"
    assert ErrorKind.NETWORK.label() == "network"
    assert ErrorKind.CLIENT.label() == "client"


def test_quota_backoff_progression():
    d0, l1 = quota_backoff(0)
    assert d0 == timedelta(seconds=1)
    assert l1 == 1
    d1, l2 = quota_backoff(l1)
    assert d1 == timedelta(seconds=2)
    assert l2 == 2
    d2, l3 = quota_backoff(l2)
    assert d2 == timedelta(seconds=4)
    assert l3 == 3


def test_quota_backoff_caps_at_30min():
    d, lv_next = quota_backoff(60)
    assert d == timedelta(seconds=30 * 60)
    assert lv_next == 60


def test_quota_backoff_negative_level_treated_as_zero():
    d, lv_next = quota_backoff(-5)
    assert d == timedelta(seconds=1)
    assert lv_next == 1


@pytest.mark.parametrize(
    "body",
    [
        "{\"detail\":\"model 'gpt-X' is not supported\"}",
        "model not_supported in this plan",
        "the requested model does not exist",
    ],
)
def test_classify_with_body_model_404_stays_not_found(body):
    assert classify_with_body(404, body) is ErrorKind.NOT_FOUND


@pytest.mark.parametrize(
    "body",
    ["{\"detail\":\"Not Found\"}", "<html>404 not found</html>", ""],
)
def test_classify_with_body_generic_404_is_transient(body):
    assert classify_with_body(404, body) is ErrorKind.TRANSIENT


def test_classify_with_body_other_codes_unchanged():
    assert classify_with_body(429, "anything") is ErrorKind.QUOTA
    assert classify_with_body(401, "model anything") is ErrorKind.AUTH
    assert classify_with_body(500, "model not_supported") is ErrorKind.TRANSIENT
    assert classify_with_body(None, "anything") is ErrorKind.NETWORK