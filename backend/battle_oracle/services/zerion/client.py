from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from battle_oracle.settlement.models import ParticipantSnapshot, TokenHolding

from .config import ZerionConfig
from .exceptions import (
    ZerionAPIError,
    ZerionAuthError,
    ZerionNotFoundError,
    ZerionRateLimitError,
    ZerionSchemaError,
)
from .models import (
    FungibleResponse,
    FungiblesResponse,
    PortfolioResponse,
    Position,
    PositionsResponse,
    TokenPrice,
    TopToken,
)

logger = logging.getLogger(__name__)


class ZerionClient:
    def __init__(
        self,
        api_key: str,
        config: ZerionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.config = config or ZerionConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not api_key:
            logger.warning("Zerion API key not set - requests will be rejected")
        logger.info(f"Initialized ZerionClient (chain={self.config.chain_id})")

    async def __aenter__(self) -> ZerionClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            limits=limits,
            auth=httpx.BasicAuth(self.api_key, ""),
            headers={"accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed ZerionClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ZerionClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.request(method=method, url=endpoint, params=params)

                if response.status_code == 401:
                    raise ZerionAuthError("Authentication failed", status_code=401)
                elif response.status_code == 404:
                    raise ZerionNotFoundError(
                        f"Resource not found: {endpoint}", status_code=404
                    )
                elif response.status_code == 429:
                    last_error = ZerionRateLimitError("Rate limit exceeded", status_code=429)
                    wait_time = self.config.backoff_base_seconds * 2**retry_count
                    logger.warning(f"Rate limited, waiting {wait_time}s...")
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    last_error = ZerionAPIError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    wait_time = self.config.backoff_base_seconds * 2**retry_count
                    logger.warning(
                        f"Server error {response.status_code}, retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 400:
                    raise ZerionAPIError(
                        f"Request to {endpoint} rejected: {response.text}",
                        status_code=response.status_code,
                    )

                try:
                    return response.json()
                except ValueError as e:
                    raise ZerionSchemaError(
                        f"Non-JSON response from {endpoint}: {response.text[:200]}"
                    ) from e

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(self.config.backoff_base_seconds)

            except httpx.RequestError as e:
                logger.error(f"Network error: {e}")
                raise ZerionAPIError(f"Network error calling {endpoint}: {e}") from e

        if isinstance(last_error, ZerionAPIError):
            raise last_error
        raise ZerionAPIError(f"Request failed after {retry_count} retries: {last_error}")

    @staticmethod
    def _parse(model: type[BaseModel], data: dict[str, Any], what: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ZerionSchemaError(f"Malformed {what} payload: {e}") from e

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def get_positions(self, address: str) -> list[Position]:
        params = {
            "filter[positions]": "only_simple",
            "currency": self.config.currency,
            "filter[chain_ids]": self.config.chain_id,
            "sort": "value",
        }
        data = await self._request("GET", f"wallets/{address}/positions/", params=params)
        return self._parse(PositionsResponse, data, "positions").data

    async def get_portfolio_change_pct(self, address: str) -> float:
        data = await self._request(
            "GET", f"wallets/{address}/portfolio/", params={"currency": self.config.currency}
        )
        portfolio = self._parse(PortfolioResponse, data, "portfolio").data
        changes = portfolio.attributes.changes
        if changes is None or changes.percent_1d is None:
            raise ZerionSchemaError(f"Portfolio for {address} has no 24h percent change")
        return changes.percent_1d

    async def fetch_snapshot(self, address: str) -> ParticipantSnapshot | None:
        """Build a performance snapshot for a wallet.

        Returns None when the wallet has no token positions on the configured
        chain (or is unknown to Zerion).
        """
        try:
            positions = await self.get_positions(address)
        except ZerionNotFoundError:
            logger.info(f"Wallet {address} not found on Zerion")
            return None

        tokens = _holdings_from_positions(positions)
        if not tokens:
            logger.info(f"No tokens found for {address} on Zerion")
            return None

        priced = [p.attributes.value for p in positions if p.attributes.value is not None]
        if len(priced) < len(positions):
            logger.debug(f"{len(positions) - len(priced)} unpriced positions for {address}")

        performance_pct = await self.get_portfolio_change_pct(address)

        return ParticipantSnapshot(
            participant=address,
            performance_pct=performance_pct,
            observed_at=datetime.now(timezone.utc),
            total_value=sum(priced),
            tokens=tokens,
        )

    # ------------------------------------------------------------------
    # Fungibles
    # ------------------------------------------------------------------

    async def search_fungibles(self, query: str) -> FungiblesResponse:
        params = {"currency": self.config.currency, "filter[search_query]": query}
        data = await self._request("GET", "fungibles/", params=params)
        return self._parse(FungiblesResponse, data, "fungibles")

    async def get_fungible(self, fungible_id: str) -> FungibleResponse:
        data = await self._request(
            "GET", f"fungibles/{fungible_id}", params={"currency": self.config.currency}
        )
        return self._parse(FungibleResponse, data, "fungible")

    async def top_tokens(self) -> list[TopToken]:
        """Most valuable configured-chain tokens among the configured symbols."""
        by_symbol: dict[str, TopToken] = {}

        for term in self.config.top_token_symbols:
            try:
                results = await self.search_fungibles(term)
            except ZerionAPIError as e:
                logger.warning(f"Search failed for {term}: {e}")
                continue

            for fungible in results.data:
                attrs = fungible.attributes
                chain_id = attrs.implementations[0].chain_id if attrs.implementations else None
                price = attrs.price
                if chain_id != self.config.chain_id or price is None or price <= 0:
                    continue
                if not attrs.symbol or attrs.symbol.upper() != term.upper():
                    continue

                token = TopToken(
                    id=fungible.id,
                    symbol=attrs.symbol,
                    name=attrs.name or attrs.symbol,
                    price=price,
                    change_24h=attrs.change_24h,
                    market_cap=attrs.market_cap,
                    icon=attrs.icon.url if attrs.icon else None,
                )
                key = token.symbol.upper()
                current = by_symbol.get(key)
                if current is None or _market_cap_key(token) > _market_cap_key(current):
                    by_symbol[key] = token

        return sorted(by_symbol.values(), key=_market_cap_key, reverse=True)

    async def token_prices(self, fungible_ids: list[str]) -> list[TokenPrice]:
        """Current price per fungible id; failed lookups carry ``price=None``."""
        results = await asyncio.gather(
            *(self.get_fungible(fid) for fid in fungible_ids),
            return_exceptions=True,
        )

        prices: list[TokenPrice] = []
        for fid, result in zip(fungible_ids, results):
            if isinstance(result, ZerionAPIError):
                logger.warning(f"Price lookup failed for {fid}: {result}")
                prices.append(TokenPrice(id=fid, symbol=fid))
            elif isinstance(result, BaseException):
                raise result
            else:
                attrs = result.data.attributes
                prices.append(
                    TokenPrice(
                        id=fid,
                        symbol=attrs.symbol or fid,
                        price=attrs.price,
                        change_24h=attrs.change_24h,
                    )
                )
        return prices


def _market_cap_key(token: TopToken) -> float:
    return token.market_cap if token.market_cap is not None else float("-inf")


def _holdings_from_positions(positions: list[Position]) -> list[TokenHolding]:
    holdings: list[TokenHolding] = []
    for position in positions:
        attrs = position.attributes
        info = attrs.fungible_info
        fungible_id = position.fungible_id
        if info is None or fungible_id is None:
            continue
        if not info.symbol or attrs.quantity is None or attrs.quantity.float_ is None:
            logger.debug(f"Skipping incomplete position {position.id}")
            continue

        holdings.append(
            TokenHolding(
                symbol=info.symbol,
                name=info.name or info.symbol,
                address=fungible_id,
                balance=attrs.quantity.float_,
                value_usd=attrs.value,
                price_change_24h=attrs.changes.percent_1d if attrs.changes else None,
            )
        )
    return holdings


def create_zerion_client(api_key: str, config: ZerionConfig | None = None) -> ZerionClient:
    return ZerionClient(api_key=api_key, config=config or ZerionConfig())
