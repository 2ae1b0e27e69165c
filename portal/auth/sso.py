"""Single sign-on identity providers.

A provider turns an authorization code into an :class:`SSOProfile`. The OAuth
provider talks to a real token/userinfo endpoint pair configured through
``SSO_ENDPOINTS``; without one, the simulated provider fabricates a stable
profile from the code so the sign-in flow can run locally.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
import httpx

from portal.config import settings
from portal.errors import InvalidCredential, NotFound, ProviderUnavailable

logger = logging.getLogger(__name__)

PROVIDERS = {
    "google": ("Google", "gmail.com"),
    "microsoft": ("Microsoft", "outlook.com"),
    "github": ("GitHub", "users.noreply.github.com"),
}


@dataclass(frozen=True)
class SSOProfile:
    provider: str
    provider_id: str
    email: str
    name: str
    picture: str | None = None


class IdentityProvider(ABC):
    def __init__(self, provider: str):
        self.provider = provider

    @abstractmethod
    async def exchange_code(self, code: str) -> SSOProfile:
        """Trade an authorization code for the signed-in profile."""


class SimulatedIdentityProvider(IdentityProvider):
    async def exchange_code(self, code: str) -> SSOProfile:
        label, domain = PROVIDERS[self.provider]
        subject = code.strip()
        return SSOProfile(
            provider=self.provider,
            provider_id=f"{self.provider}_{subject}",
            email=f"user{subject}@{domain}".lower(),
            name=f"{label} User",
        )


class OAuthIdentityProvider(IdentityProvider):
    def __init__(self, provider: str, config: dict, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(provider)
        self.token_url = config["token_url"]
        self.userinfo_url = config["userinfo_url"]
        self.client_id = config.get("client_id", "")
        self.client_secret = config.get("client_secret", "")
        self.redirect_uri = config.get("redirect_uri", "")
        self.transport = transport

    async def _fetch_profile(self, client: httpx.AsyncClient, code: str) -> dict:
        r = await client.post(
            self.token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        r.raise_for_status()
        access_token = r.json().get("access_token")
        if not access_token:
            raise InvalidCredential("Authorization code rejected")

        r = await client.get(self.userinfo_url, headers={"Authorization": f"Bearer {access_token}"})
        r.raise_for_status()
        return r.json()

    async def exchange_code(self, code: str) -> SSOProfile:
        async with httpx.AsyncClient(timeout=15, transport=self.transport) as client:
            try:
                info = await self._fetch_profile(client, code)
            except httpx.HTTPStatusError as e:
                logger.warning(f"{self.provider} rejected code exchange: {e.response.status_code}")
                if e.response.status_code < 500:
                    raise InvalidCredential("Authorization code rejected") from e
                raise ProviderUnavailable() from e
            except httpx.HTTPError as e:
                logger.error(f"{self.provider} unreachable: {e.__class__.__name__}")
                raise ProviderUnavailable() from e

        subject = info.get("sub") or info.get("id")
        email = info.get("email")
        if not subject or not email:
            raise InvalidCredential("Provider profile has no verified email")
        return SSOProfile(
            provider=self.provider,
            provider_id=str(subject),
            email=email.lower(),
            name=info.get("name") or info.get("login") or email.split("@")[0],
            picture=info.get("picture") or info.get("avatar_url"),
        )


def provider_enabled(provider: str) -> bool:
    return provider in settings.sso_endpoints or settings.sso_simulated


def get_identity_provider(provider: str) -> IdentityProvider:
    if provider not in PROVIDERS:
        raise NotFound(f"Unknown sign-in provider '{provider}'")
    if provider in settings.sso_endpoints:
        return OAuthIdentityProvider(provider, settings.sso_endpoints[provider])
    if settings.sso_simulated:
        return SimulatedIdentityProvider(provider)
    raise NotFound(f"Sign-in provider '{provider}' is not enabled")
