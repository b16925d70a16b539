"""Tests for the sweep endpoint's credential policy."""

import pytest

from norseman_booking.core.dependencies import is_cron_request_authorized

SECRET = "s3cret"


@pytest.mark.parametrize(
    "headers, query",
    [
        ({"x-vercel-cron": "1"}, {}),
        ({"authorization": f"Bearer {SECRET}"}, {}),
        ({"x-cron-secret": SECRET}, {}),
        ({}, {"secret": SECRET}),
        ({"x-cron-secret": "wrong", "authorization": f"Bearer {SECRET}"}, {}),
    ],
)
def test_any_accepted_credential_is_enough(headers, query):
    assert is_cron_request_authorized(headers, query, SECRET) is True


@pytest.mark.parametrize(
    "headers, query",
    [
        ({}, {}),
        ({"authorization": "Bearer nope"}, {}),
        ({"authorization": SECRET}, {}),
        ({"x-cron-secret": "s3cre"}, {}),
        ({}, {"secret": ""}),
        ({"x-vercel-cron": "true"}, {}),
    ],
)
def test_wrong_or_missing_credentials_are_refused(headers, query):
    assert is_cron_request_authorized(headers, query, SECRET) is False


def test_without_secret_only_trusted_header_works():
    assert is_cron_request_authorized({"x-vercel-cron": "1"}, {}, None) is True
    assert is_cron_request_authorized({"authorization": "Bearer "}, {}, None) is False
    assert is_cron_request_authorized({}, {"secret": ""}, "") is False


def test_custom_trusted_header():
    headers = {"x-scheduler": "1"}

    assert is_cron_request_authorized(headers, {}, None, trusted_header="x-scheduler") is True
    assert is_cron_request_authorized(headers, {}, None) is False
