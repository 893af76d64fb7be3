from __future__ import annotations

import base64
import json
import unittest

import httpx
import jwt

from itinerary_service.credentials import (
    DATASTORE_SCOPE,
    JWT_BEARER_GRANT,
    ServiceAccount,
    build_assertion,
    fetch_access_token,
)
from itinerary_service.errors import ConfigurationError, CredentialError
from tests.fakes import ACCESS_TOKEN, CLIENT_EMAIL, PUBLIC_KEY, FakeFirestore, service_account_json


def _segment(token: str, index: int) -> dict:
    part = token.split(".")[index]
    return json.loads(base64.urlsafe_b64decode(part + "=" * (-len(part) % 4)))


class ServiceAccountTest(unittest.TestCase):
    def test_from_json(self) -> None:
        account = ServiceAccount.from_json(service_account_json())
        self.assertEqual(account.client_email, CLIENT_EMAIL)
        self.assertEqual(account.token_uri, "https://oauth2.googleapis.com/token")
        self.assertNotIn("PRIVATE KEY", repr(account))

    def test_escaped_newlines_in_key(self) -> None:
        raw = json.loads(service_account_json())
        raw["private_key"] = raw["private_key"].replace("\n", "\\n")
        account = ServiceAccount.from_json(json.dumps(raw))
        self.assertIn("\n", account.private_key)

    def test_missing_or_invalid(self) -> None:
        for raw in (None, "", "not json", "[]", service_account_json(private_key="")):
            with self.subTest(raw=raw), self.assertRaises(ConfigurationError):
                ServiceAccount.from_json(raw)


class AssertionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.account = ServiceAccount.from_json(service_account_json())

    def test_header_and_claims(self) -> None:
        token = build_assertion(self.account, now=1_700_000_000)
        self.assertEqual(_segment(token, 0), {"alg": "RS256", "typ": "JWT"})
        self.assertNotIn("=", token)

        claims = jwt.decode(
            token,
            PUBLIC_KEY,
            algorithms=["RS256"],
            audience="https://oauth2.googleapis.com/token",
            options={"verify_exp": False, "verify_iat": False},
        )
        self.assertEqual(claims["iss"], CLIENT_EMAIL)
        self.assertEqual(claims["sub"], CLIENT_EMAIL)
        self.assertEqual(claims["iat"], 1_700_000_000)
        self.assertEqual(claims["exp"], 1_700_000_000 + 3600)
        self.assertEqual(claims["scope"], DATASTORE_SCOPE)

    def test_bad_key_is_credential_error(self) -> None:
        account = ServiceAccount(client_email=CLIENT_EMAIL, private_key="garbage", project_id="p")
        with self.assertRaises(CredentialError):
            build_assertion(account)


class TokenExchangeTest(unittest.TestCase):
    def setUp(self) -> None:
        self.account = ServiceAccount.from_json(service_account_json())
        self.store = FakeFirestore()

    def test_exchange_posts_jwt_bearer_grant(self) -> None:
        with self.store.client() as client:
            token = fetch_access_token(self.account, client)

        self.assertEqual(token, ACCESS_TOKEN)
        self.assertEqual(len(self.store.token_requests), 1)
        form = self.store.token_requests[0]
        self.assertEqual(form["grant_type"], [JWT_BEARER_GRANT])
        self.assertEqual(_segment(form["assertion"][0], 1)["iss"], CLIENT_EMAIL)

    def test_rejected_exchange(self) -> None:
        self.store.token_status = 400
        with self.store.client() as client, self.assertRaises(CredentialError) as ctx:
            fetch_access_token(self.account, client)
        self.assertIn("invalid_grant", str(ctx.exception))

    def test_missing_access_token(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"token_type": "Bearer"}))
        with httpx.Client(transport=transport) as client, self.assertRaises(CredentialError):
            fetch_access_token(self.account, client)

    def test_network_failure(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with httpx.Client(transport=httpx.MockTransport(refuse)) as client, self.assertRaises(CredentialError):
            fetch_access_token(self.account, client)


if __name__ == "__main__":
    unittest.main()
