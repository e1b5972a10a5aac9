"""OAuth 1.0a request signing for the Magento REST API."""

from __future__ import annotations

from typing import Generator

import httpx
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA256, Client


class OAuth1Auth(httpx.Auth):
    """Signs each request with the integration's consumer and access tokens.

    Magento integrations authenticate with HMAC-SHA256 signatures carried in
    the ``Authorization`` header; oauthlib builds and signs them.
    """

    def __init__(self, consumer_key: str, consumer_secret: str, token: str, token_secret: str) -> None:
        self.client = Client(
            consumer_key,
            client_secret=consumer_secret,
            resource_owner_key=token,
            resource_owner_secret=token_secret,
            signature_method=SIGNATURE_HMAC_SHA256,
        )

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        _, headers, _ = self.client.sign(str(request.url), request.method)
        request.headers["Authorization"] = headers["Authorization"]
        yield request
