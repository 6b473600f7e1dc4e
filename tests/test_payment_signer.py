"""Tests for DOKU request signing."""

import base64
import hashlib
import hmac
import re
from datetime import datetime, timezone

import pytest

from services.payment_signer import CHECKOUT_ENDPOINT, PaymentSigner, canonical_json

REQUEST_ID = "cc682442-6c22-493e-8121-b9ef6b3fa728"
TIMESTAMP = "2020-08-11T08:45:42Z"


@pytest.fixture
def signer() -> PaymentSigner:
    return PaymentSigner("MCH-0008-1296507211213", "SK-hCJ42G8L9rL2Kk1fj4nB")


def _expected_signature(secret: str, base: str) -> str:
    mac = hmac.new(secret.encode(), base.encode(), hashlib.sha256).digest()
    return "HMACSHA256=" + base64.b64encode(mac).decode()


class TestCanonicalJson:
    def test_compact_and_ordered(self):
        body = {"order": {"amount": 8000, "invoice_number": "INV-1"}, "customer": {"name": "Alice"}}
        assert canonical_json(body) == '{"order":{"amount":8000,"invoice_number":"INV-1"},"customer":{"name":"Alice"}}'

    def test_non_ascii_kept(self):
        assert canonical_json({"name": "Siti Nurhalizá"}) == '{"name":"Siti Nurhalizá"}'


class TestDigest:
    def test_sha256_base64_of_utf8_body(self):
        body = {"order": {"amount": 8000}}
        expected = base64.b64encode(hashlib.sha256(b'{"order":{"amount":8000}}').digest()).decode()
        assert PaymentSigner.generate_digest(body) == expected

    def test_string_body_hashed_as_is(self):
        text = '{"a": 1}'
        expected = base64.b64encode(hashlib.sha256(text.encode()).digest()).decode()
        assert PaymentSigner.generate_digest(text) == expected


class TestSignature:
    def test_signature_base_layout(self, signer):
        base = signer.build_signature_base(REQUEST_ID, TIMESTAMP, "DIGEST==")
        assert base == (
            "Client-Id:MCH-0008-1296507211213\n"
            f"Request-Id:{REQUEST_ID}\n"
            f"Request-Timestamp:{TIMESTAMP}\n"
            f"Request-Target:{CHECKOUT_ENDPOINT}\n"
            "Digest:DIGEST=="
        )

    def test_hmac_over_base(self, signer):
        base = signer.build_signature_base(REQUEST_ID, TIMESTAMP, "DIGEST==")
        assert signer.generate_signature(REQUEST_ID, TIMESTAMP, "DIGEST==") == _expected_signature(
            "SK-hCJ42G8L9rL2Kk1fj4nB", base
        )

    def test_deterministic(self, signer):
        first = signer.generate_signature(REQUEST_ID, TIMESTAMP, "DIGEST==")
        second = PaymentSigner(signer.client_id, signer.secret_key).generate_signature(
            REQUEST_ID, TIMESTAMP, "DIGEST=="
        )
        assert first == second

    @pytest.mark.parametrize(
        "client_id, secret, endpoint, request_id, timestamp, digest",
        [
            ("other-client", "SK-hCJ42G8L9rL2Kk1fj4nB", CHECKOUT_ENDPOINT, REQUEST_ID, TIMESTAMP, "DIGEST=="),
            ("MCH-0008-1296507211213", "other-secret", CHECKOUT_ENDPOINT, REQUEST_ID, TIMESTAMP, "DIGEST=="),
            ("MCH-0008-1296507211213", "SK-hCJ42G8L9rL2Kk1fj4nB", "/other", REQUEST_ID, TIMESTAMP, "DIGEST=="),
            ("MCH-0008-1296507211213", "SK-hCJ42G8L9rL2Kk1fj4nB", CHECKOUT_ENDPOINT, "other-id", TIMESTAMP, "DIGEST=="),
            ("MCH-0008-1296507211213", "SK-hCJ42G8L9rL2Kk1fj4nB", CHECKOUT_ENDPOINT, REQUEST_ID,
             "2020-08-11T08:45:43Z", "DIGEST=="),
            ("MCH-0008-1296507211213", "SK-hCJ42G8L9rL2Kk1fj4nB", CHECKOUT_ENDPOINT, REQUEST_ID, TIMESTAMP, "OTHER=="),
        ],
    )
    def test_any_input_change_changes_signature(self, signer, client_id, secret, endpoint, request_id,
                                                timestamp, digest):
        baseline = signer.generate_signature(REQUEST_ID, TIMESTAMP, "DIGEST==")
        changed = PaymentSigner(client_id, secret, endpoint).generate_signature(request_id, timestamp, digest)
        assert changed != baseline


class TestSign:
    def test_timestamp_format_is_utc_seconds(self):
        now = datetime(2020, 8, 11, 15, 45, 42, 123456, tzinfo=timezone.utc)
        assert PaymentSigner.generate_timestamp(now) == "2020-08-11T15:45:42Z"

    def test_fresh_request_id_and_matching_digest(self, signer):
        body = {"order": {"amount": 8000, "invoice_number": "INV-20251122-0001"}}

        first = signer.sign(body)
        second = signer.sign(body)

        assert first.request_id != second.request_id
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", first.timestamp)
        assert first.body == canonical_json(body)
        assert first.digest == PaymentSigner.generate_digest(first.body)
        assert first.signature == signer.generate_signature(first.request_id, first.timestamp, first.digest)

    def test_headers(self, signer):
        signed = signer.sign({"a": 1})
        assert signed.headers(signer.client_id) == {
            "Content-Type": "application/json",
            "Client-Id": "MCH-0008-1296507211213",
            "Request-Id": signed.request_id,
            "Request-Timestamp": signed.timestamp,
            "Signature": signed.signature,
        }
