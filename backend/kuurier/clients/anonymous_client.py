# kuurier/clients/anonymous_client.py

import base64
from typing import Optional

import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

# =========================
# CONFIGURATION
# =========================

TOR_PROXY = {
    'http': 'socks5h://127.0.0.1:9050',
    'https': 'socks5h://127.0.0.1:9050'
}

SERVER_URL = "http://127.0.0.1:8000"  # change to .onion for Tor backend
API_PREFIX = "/api/v1"
REQUEST_TIMEOUT = 30

# =========================
# TOR SESSION
# =========================


def create_tor_session():
    """Create a requests session that routes through Tor"""
    session = requests.Session()
    session.proxies = TOR_PROXY
    return session


class ClientError(Exception):
    def __init__(self, status_code: int, body: dict):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{status_code}: {body.get('error', body)}")


# =========================
# ANONYMOUS CLIENT
# =========================

class AnonymousClient:
    """
    Reference client for the key-based login flow.

    Holds an Ed25519 identity key, registers or logs in with it, signs the
    returned challenge and keeps the bearer token for later calls.
    """

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None, server_url: str = SERVER_URL,
                 use_tor=False, session: Optional[requests.Session] = None):
        self.private_key = private_key or Ed25519PrivateKey.generate()
        self.server_url = server_url.rstrip("/")
        self.session = session or (create_tor_session() if use_tor else requests.Session())
        self.user_id: Optional[str] = None
        self.token: Optional[str] = None
        self.trust_score: Optional[int] = None

    @property
    def public_key_b64(self) -> str:
        raw = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
        return base64.b64encode(raw).decode()

    def sign(self, challenge: str) -> str:
        return base64.b64encode(self.private_key.sign(challenge.encode("utf-8"))).decode()

    def _url(self, path: str) -> str:
        return f"{self.server_url}{API_PREFIX}{path}"

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = self.session.request(method, self._url(path), headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        body = resp.json() if resp.content else {}
        if resp.status_code >= 400:
            raise ClientError(resp.status_code, body)
        return body

    def register(self, invite_code: Optional[str] = None) -> dict:
        """Register with an invite code (or log in if already known) and return the challenge."""
        payload = {"public_key": self.public_key_b64}
        if invite_code:
            payload["invite_code"] = invite_code
        body = self._request("POST", "/auth/register", json=payload)
        self.user_id = body["user_id"]
        self.trust_score = body["trust_score"]
        return body

    def request_challenge(self) -> dict:
        body = self._request("POST", "/auth/challenge", json={"public_key": self.public_key_b64})
        self.user_id = body["user_id"]
        return body

    def verify(self, challenge: str) -> str:
        body = self._request("POST", "/auth/verify", json={
            "user_id": self.user_id,
            "challenge": challenge,
            "signature": self.sign(challenge),
        })
        self.token = body["token"]
        return self.token

    def login(self, invite_code: Optional[str] = None) -> str:
        """Full register/login -> sign -> verify round trip."""
        body = self.register(invite_code)
        return self.verify(body["challenge"])

    def me(self) -> dict:
        return self._request("GET", "/me")

    def vouch(self, user_id: str) -> dict:
        return self._request("POST", f"/vouch/{user_id}")

    def generate_invite(self) -> dict:
        return self._request("POST", "/invites")

    def list_invites(self) -> dict:
        return self._request("GET", "/invites")


# =========================
# DEMO USAGE
# =========================

if __name__ == "__main__":
    import sys

    client = AnonymousClient()
    client.login(sys.argv[1] if len(sys.argv) > 1 else None)
    print(client.me())
