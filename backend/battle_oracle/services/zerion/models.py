"""Schema models for Zerion API payloads.

Only the fields the oracle reads are declared. Numeric fields that Zerion may
omit are Optional so callers must decide what a missing value means instead
of silently reading it as zero.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _ZerionModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)


class Quantity(_ZerionModel):
    float_: float | None = Field(default=None, alias="float")
    numeric: str | None = None


class Changes(_ZerionModel):
    absolute_1d: float | None = None
    percent_1d: float | None = None


class FungibleInfo(_ZerionModel):
    name: str | None = None
    symbol: str | None = None


class ResourceRef(_ZerionModel):
    id: str
    type: str | None = None


class Relationship(_ZerionModel):
    data: ResourceRef | None = None


class PositionRelationships(_ZerionModel):
    fungible: Relationship | None = None
    chain: Relationship | None = None


class PositionAttributes(_ZerionModel):
    quantity: Quantity | None = None
    value: float | None = None
    price: float | None = None
    changes: Changes | None = None
    fungible_info: FungibleInfo | None = None


class Position(_ZerionModel):
    id: str
    attributes: PositionAttributes
    relationships: PositionRelationships = Field(default_factory=PositionRelationships)

    @property
    def fungible_id(self) -> str | None:
        fungible = self.relationships.fungible
        return fungible.data.id if fungible and fungible.data else None


class PositionsResponse(_ZerionModel):
    data: list[Position]


class PortfolioTotal(_ZerionModel):
    positions: float | None = None


class PortfolioAttributes(_ZerionModel):
    total: PortfolioTotal | None = None
    changes: Changes | None = None


class Portfolio(_ZerionModel):
    id: str | None = None
    attributes: PortfolioAttributes


class PortfolioResponse(_ZerionModel):
    data: Portfolio


class Icon(_ZerionModel):
    url: str | None = None


class Implementation(_ZerionModel):
    chain_id: str
    address: str | None = None
    decimals: int | None = None


class MarketData(_ZerionModel):
    price: float | None = None
    market_cap: float | None = None
    changes: Changes | None = None


class FungibleAttributes(_ZerionModel):
    name: str | None = None
    symbol: str | None = None
    icon: Icon | None = None
    implementations: list[Implementation] = Field(default_factory=list)
    market_data: MarketData | None = None

    @property
    def price(self) -> float | None:
        return self.market_data.price if self.market_data else None

    @property
    def market_cap(self) -> float | None:
        return self.market_data.market_cap if self.market_data else None

    @property
    def change_24h(self) -> float | None:
        if self.market_data and self.market_data.changes:
            return self.market_data.changes.percent_1d
        return None


class Fungible(_ZerionModel):
    id: str
    attributes: FungibleAttributes


class FungiblesResponse(_ZerionModel):
    data: list[Fungible]


class FungibleResponse(_ZerionModel):
    data: Fungible


# ============================================================================
# Client outputs
# ============================================================================


class TopToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    symbol: str
    name: str
    price: float
    change_24h: float | None = Field(default=None, alias="change24h")
    market_cap: float | None = Field(default=None, alias="marketCap")
    icon: str | None = None


class TokenPrice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    symbol: str
    price: float | None = None
    change_24h: float | None = Field(default=None, alias="change24h")
