from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..config import AppConfig, GoogleCredentials, MicrosoftCredentials
from ..errors import CredentialsMissingError, ProviderError
from .oauth import refresh_google_token, refresh_microsoft_token


logger = logging.getLogger(__name__)


class OAuthSession(ABC):
    """Bearer-token JSON client; the access token is fetched on first use.

    Use as a context manager so the underlying `httpx.Client` is closed.
    """

    provider = "provider"

    def __init__(self, *, timeout_s: float = 30.0, transport: httpx.BaseTransport | None = None):
        self.timeout_s = float(timeout_s)
        self._client = httpx.Client(timeout=self.timeout_s, transport=transport)
        self._token: str | None = None

    @abstractmethod
    def _refresh(self) -> str:
        ...

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if self._token is None:
            self._token = self._refresh()
            logger.debug("Obtained %s access token", self.provider)

        try:
            r = self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to connect to {self.provider}: {e}") from e

        if r.status_code >= 300:
            raise ProviderError(f"{self.provider} error {r.status_code}: {r.text}", status_code=r.status_code)
        if not r.content:
            return {}
        return r.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SessionProvider:
    """Base for providers that own an `OAuthSession`; closing one closes the session."""

    session: OAuthSession

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class GoogleSession(OAuthSession):
    provider = "Google"

    def __init__(self, credentials: GoogleCredentials, **kwargs: Any):
        super().__init__(**kwargs)
        self.credentials = credentials

    def _refresh(self) -> str:
        c = self.credentials
        return refresh_google_token(
            self._client,
            client_id=c.client_id,
            client_secret=c.client_secret,
            refresh_token=c.refresh_token,
        )


class MicrosoftSession(OAuthSession):
    provider = "Microsoft"

    def __init__(self, credentials: MicrosoftCredentials, **kwargs: Any):
        super().__init__(**kwargs)
        self.credentials = credentials

    def _refresh(self) -> str:
        c = self.credentials
        return refresh_microsoft_token(
            self._client,
            client_id=c.client_id,
            client_secret=c.client_secret,
            tenant_id=c.tenant_id,
            refresh_token=c.refresh_token,
        )


def google_session(config: AppConfig, **kwargs: Any) -> GoogleSession:
    if config.credentials.google is None:
        raise CredentialsMissingError("Google credentials not configured. Run: meetnotes config google")
    return GoogleSession(config.credentials.google, **kwargs)


def microsoft_session(config: AppConfig, **kwargs: Any) -> MicrosoftSession:
    if config.credentials.microsoft is None:
        raise CredentialsMissingError("Microsoft credentials not configured. Run: meetnotes config microsoft")
    return MicrosoftSession(config.credentials.microsoft, **kwargs)
