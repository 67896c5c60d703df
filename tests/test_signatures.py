"""Tests for HMAC webhook signature helpers."""

import pytest

from badge_core.security import compute_signature, verify_signature

BODY = b'{"action": "opened"}'


def test_compute_signature_format():
    signature = compute_signature(BODY, "secret")
    assert signature.startswith("sha256=")
    assert len(signature) == len("sha256=") + 64


def test_valid_signature_verifies():
    assert verify_signature(BODY, compute_signature(BODY, "secret"), "secret")


@pytest.mark.parametrize(
    "signature,secret",
    [
        (None, "secret"),
        ("", "secret"),
        ("sha1=abc", "secret"),
        ("sha256=" + "0" * 64, "secret"),
    ],
)
def test_invalid_signatures_rejected(signature, secret):
    assert not verify_signature(BODY, signature, secret)


@pytest.mark.parametrize("secret", [None, ""])
def test_no_secret_never_verifies(secret):
    assert not verify_signature(BODY, compute_signature(BODY, "secret"), secret)


def test_wrong_secret_rejected():
    assert not verify_signature(BODY, compute_signature(BODY, "other"), "secret")


def test_body_change_rejected():
    signature = compute_signature(BODY, "secret")
    assert not verify_signature(BODY + b" ", signature, "secret")
