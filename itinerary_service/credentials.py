"""Service-account assertion exchange for short-lived bearer tokens."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

import httpx
import jwt

from .errors import ConfigurationError, CredentialError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class ServiceAccount:
    client_email: str
    private_key: str
    project_id: str
    token_uri: str = DEFAULT_TOKEN_URI

    @classmethod
    def from_json(cls, raw: str | None) -> ServiceAccount:
        if not raw:
            raise ConfigurationError("FIREBASE_SERVICE_ACCOUNT is not set")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"FIREBASE_SERVICE_ACCOUNT is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("FIREBASE_SERVICE_ACCOUNT must be a JSON object")

        missing = [key for key in ("client_email", "private_key", "project_id") if not payload.get(key)]
        if missing:
            raise ConfigurationError(f"Service account is missing: {', '.join(missing)}")

        return cls(
            client_email=payload["client_email"],
            # keys pasted into env vars often carry literal "\n"
            private_key=payload["private_key"].replace("\\n", "\n"),
            project_id=payload["project_id"],
            token_uri=payload.get("token_uri") or DEFAULT_TOKEN_URI,
        )

    def __repr__(self) -> str:
        return f"ServiceAccount(client_email={self.client_email!r}, project_id={self.project_id!r})"


def build_assertion(account: ServiceAccount, now: int | None = None) -> str:
    issued_at = int(time.time()) if now is None else int(now)
    claims = {
        "iss": account.client_email,
        "sub": account.client_email,
        "aud": account.token_uri,
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME_SECONDS,
        "scope": DATASTORE_SCOPE,
    }
    try:
        return jwt.encode(claims, account.private_key, algorithm="RS256", headers={"typ": "JWT"})
    except (ValueError, TypeError, jwt.PyJWTError) as exc:
        raise CredentialError(f"Unable to sign service-account assertion: {exc}") from exc


def fetch_access_token(account: ServiceAccount, client: httpx.Client) -> str:
    assertion = build_assertion(account)
    try:
        response = client.post(
            account.token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
        )
    except httpx.HTTPError as exc:
        logger.warning("Token exchange failed for %s: %s", account.client_email, exc)
        raise CredentialError(f"Token exchange failed: {exc}") from exc

    if response.status_code != 200:
        logger.warning("Token endpoint returned %s for %s", response.status_code, account.client_email)
        raise CredentialError(f"Token endpoint returned {response.status_code}: {response.text}")

    try:
        token = response.json().get("access_token")
    except (ValueError, AttributeError) as exc:
        raise CredentialError("Token endpoint returned a non-JSON body") from exc
    if not token:
        raise CredentialError("Token endpoint response has no access_token")
    return token
