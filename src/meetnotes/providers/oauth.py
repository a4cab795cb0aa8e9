from __future__ import annotations

from typing import Any

import httpx

from ..errors import ProviderError


GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
MICROSOFT_SCOPE = "https://graph.microsoft.com/.default offline_access"


def _exchange(client: httpx.Client, url: str, data: dict[str, str], provider: str) -> str:
    try:
        r = client.post(url, data=data)
    except httpx.HTTPError as e:
        raise ProviderError(f"Failed to reach {provider} token endpoint: {e}") from e

    if r.status_code != 200:
        raise ProviderError(f"{provider} token refresh failed {r.status_code}: {r.text}", status_code=r.status_code)

    body: dict[str, Any] = r.json()
    token = body.get("access_token")
    if not isinstance(token, str):
        raise ProviderError(f"Unexpected {provider} token response: {body}")
    return token


def refresh_google_token(client: httpx.Client, *, client_id: str, client_secret: str, refresh_token: str) -> str:
    return _exchange(
        client,
        GOOGLE_TOKEN_URL,
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        },
        "Google",
    )


def refresh_microsoft_token(
    client: httpx.Client,
    *,
    client_id: str,
    client_secret: str,
    tenant_id: str,
    refresh_token: str,
) -> str:
    return _exchange(
        client,
        MICROSOFT_TOKEN_URL.format(tenant=tenant_id or "common"),
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "scope": MICROSOFT_SCOPE,
        },
        "Microsoft",
    )
