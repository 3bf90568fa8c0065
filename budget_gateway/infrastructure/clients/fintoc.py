"""Fintoc HTTP client for listing accounts and movements under a link"""

import httpx
from typing import Any, List, Optional
from budget_gateway.domain.models import Account, RawMovement
from budget_gateway.domain.exceptions import ConfigMissing, SourceUnavailable
from budget_gateway.config import settings


class FintocClient:
    """Movement source backed by the Fintoc REST API"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.fintoc_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.fintoc_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise ConfigMissing("FINTOC_API_KEY is not set")
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": self.api_key},
            transport=self.transport,
        )

    async def _get_all(self, path: str) -> List[Any]:
        """GET a list endpoint, following Link: rel="next" pagination"""
        items: List[Any] = []
        async with self._client() as client:
            url: str | None = path
            try:
                while url:
                    response = await client.get(url)
                    response.raise_for_status()
                    page = response.json()
                    if not isinstance(page, list):
                        raise ValueError(f"expected a JSON array from {path}")
                    items.extend(page)
                    url = response.links.get("next", {}).get("url")

            except httpx.TimeoutException as e:
                raise SourceUnavailable(f"Fintoc timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise SourceUnavailable(f"Fintoc API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise SourceUnavailable(f"Fintoc request failed: {e}") from e
            except ValueError as e:
                raise SourceUnavailable(f"Invalid response from Fintoc: {e}") from e
        return items

    async def list_accounts(self, link_token: str) -> List[Account]:
        """
        List the accounts reachable under a link.

        Raises:
            SourceUnavailable: On timeout, HTTP errors, or invalid response
            ConfigMissing: When no API key is configured
        """
        data = await self._get_all(f"/links/{link_token}/accounts")
        try:
            return [Account(account_id=str(a["id"]), name=a.get("name")) for a in data]
        except (KeyError, TypeError, AttributeError) as e:
            raise SourceUnavailable(f"Invalid account data from Fintoc: {e}") from e

    async def list_movements(self, link_token: str, account_id: str) -> List[RawMovement]:
        """
        List every movement of one account.

        Raises:
            SourceUnavailable: On timeout, HTTP errors, or invalid response
            ConfigMissing: When no API key is configured
        """
        data = await self._get_all(f"/links/{link_token}/accounts/{account_id}/movements")
        try:
            return [
                RawMovement(
                    external_id=str(m["id"]),
                    description=m.get("description"),
                    amount=int(m["amount"]),
                    posted_at=m.get("post_date"),
                )
                for m in data
            ]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise SourceUnavailable(f"Invalid movement data from Fintoc: {e}") from e

    async def create_link_intent(self, webhook_url: str) -> str:
        """
        Start a bank connection and return the widget token for the frontend.

        Fintoc later posts the resulting link token to ``webhook_url``.
        """
        async with self._client() as client:
            try:
                response = await client.post(
                    "/link_intents",
                    json={
                        "product": "movements",
                        "country": "cl",
                        "holder_type": "individual",
                        "webhook_url": webhook_url,
                    },
                )
                response.raise_for_status()
                return response.json()["widget_token"]

            except httpx.TimeoutException as e:
                raise SourceUnavailable(f"Fintoc timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise SourceUnavailable(f"Fintoc API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise SourceUnavailable(f"Fintoc request failed: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise SourceUnavailable(f"Invalid link intent response: {e}") from e
