# services/payment_signer.py
"""
Request signing for the DOKU Checkout API.

    Digest    = base64(sha256(body))
    Signature = "HMACSHA256=" + base64(hmac_sha256(secret, component_string))

where component_string is, joined by "\\n":

    Client-Id:<client id>
    Request-Id:<uuid4>
    Request-Timestamp:<yyyy-mm-ddTHH:MM:SSZ, UTC>
    Request-Target:/checkout/v1/payment
    Digest:<digest>

The body that is hashed must be byte-for-byte the body that is sent.
"""
import base64
import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CHECKOUT_ENDPOINT = "/checkout/v1/payment"


def canonical_json(body: Any) -> str:
    # compact, key order preserved, non-ASCII left as-is
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class SignedRequest:
    body: str
    request_id: str
    timestamp: str
    digest: str
    signature: str

    def headers(self, client_id: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Client-Id": client_id,
            "Request-Id": self.request_id,
            "Request-Timestamp": self.timestamp,
            "Signature": self.signature,
        }


class PaymentSigner:
    def __init__(self, client_id: str, secret_key: str, endpoint: str = CHECKOUT_ENDPOINT):
        self.client_id = client_id
        self.secret_key = secret_key
        self.endpoint = endpoint

    @staticmethod
    def generate_request_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def generate_timestamp(now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.strftime("%Y-%m-%dT%H:%M:%SZ")

    @staticmethod
    def generate_digest(body: Any) -> str:
        text = body if isinstance(body, str) else canonical_json(body)
        return base64.b64encode(hashlib.sha256(text.encode("utf-8")).digest()).decode("ascii")

    def build_signature_base(self, request_id: str, timestamp: str, digest: str) -> str:
        return "\n".join(
            [
                f"Client-Id:{self.client_id}",
                f"Request-Id:{request_id}",
                f"Request-Timestamp:{timestamp}",
                f"Request-Target:{self.endpoint}",
                f"Digest:{digest}",
            ]
        )

    def generate_signature(self, request_id: str, timestamp: str, digest: str) -> str:
        base = self.build_signature_base(request_id, timestamp, digest)
        mac = hmac.new(self.secret_key.encode("utf-8"), base.encode("utf-8"), hashlib.sha256).digest()
        return "HMACSHA256=" + base64.b64encode(mac).decode("ascii")

    def sign(self, body: Any) -> SignedRequest:
        """
        Sign a request body with a fresh request id and timestamp.
        """
        text = body if isinstance(body, str) else canonical_json(body)
        request_id = self.generate_request_id()
        timestamp = self.generate_timestamp()
        digest = self.generate_digest(text)
        return SignedRequest(
            body=text,
            request_id=request_id,
            timestamp=timestamp,
            digest=digest,
            signature=self.generate_signature(request_id, timestamp, digest),
        )
