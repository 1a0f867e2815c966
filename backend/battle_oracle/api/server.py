"""FastAPI server exposing battle settlement and payout proofs."""

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from battle_oracle import __version__
from battle_oracle.config import Settings, get_settings
from battle_oracle.service_factory import (
    create_content_store,
    create_submitter,
    create_wallet_provider,
)
from battle_oracle.services.solana import KeypairError, SolanaRPCError
from battle_oracle.services.zerion import TokenPrice, TopToken, ZerionAPIError, ZerionClient
from battle_oracle.settlement import (
    BattleResult,
    Bet,
    ChainSubmitter,
    ContentStore,
    InvalidBattleResultError,
    MAX_AMOUNT,
    LeafNotFoundError,
    NoParticipantsError,
    ParticipantSnapshot,
    PayoutProof,
    SettlementOrchestrator,
    SettlementRecord,
    WalletDataProvider,
    build_payout_proof,
    verify_proof,
)
from battle_oracle.storage import ContentNotFoundError, StorageError

logger = logging.getLogger(__name__)


# ============================================================================
# Request / response models
# ============================================================================


class SettleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    players: list[str] = Field(min_length=1)
    bets: list[Bet]
    prize_pool: int = Field(
        gt=0,
        le=MAX_AMOUNT,
        validation_alias=AliasChoices("prizePool", "battlePrizePool", "prize_pool"),
    )

    @model_validator(mode="after")
    def check_bet_pool(self) -> "SettleRequest":
        if sum(bet.amount for bet in self.bets) > MAX_AMOUNT:
            raise ValueError(f"Total stake exceeds the maximum payout amount {MAX_AMOUNT}")
        return self


class SettleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    merkle_root: str = Field(alias="merkleRoot")
    content_handle: str = Field(alias="contentHandle")
    transaction_signature: str | None = Field(default=None, alias="transactionSignature")


class ProofRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    battle_result: BattleResult = Field(alias="battleResult")
    player: str = Field(min_length=1)
    amount: int = Field(ge=0, le=MAX_AMOUNT)


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    root: str
    leaf_hash: str = Field(alias="leafHash")
    proof: list[str]


class VerifyResponse(BaseModel):
    valid: bool


class TokenPricesRequest(BaseModel):
    tokens: list[str] = Field(min_length=1)


# ============================================================================
# Dependencies
# ============================================================================


def get_app_settings() -> Settings:
    return get_settings()


async def get_zerion_client(
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[ZerionClient]:
    async with create_wallet_provider(settings) as client:
        yield client


async def get_wallet_provider(
    client: ZerionClient = Depends(get_zerion_client),
) -> WalletDataProvider:
    return client


async def get_content_store(
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[ContentStore]:
    async with create_content_store(settings) as store:
        yield store


async def get_root_submitter(
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[ChainSubmitter | None]:
    try:
        submitter = create_submitter(settings)
    except KeypairError as e:
        logger.error(f"Admin keypair unusable: {e}")
        raise HTTPException(status_code=503, detail=f"Root submission unavailable: {e}")
    if submitter is None:
        yield None
        return
    async with submitter:
        yield submitter


# ============================================================================
# App
# ============================================================================


app = FastAPI(title="Battle Oracle API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().server.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400)."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/health")
async def health():
    return {"status": "ok", "service": "battle-oracle"}


@app.get("/api/wallet/{address}/snapshot", response_model=ParticipantSnapshot)
async def get_wallet_snapshot(
    address: str,
    wallet_data: WalletDataProvider = Depends(get_wallet_provider),
):
    """Current performance snapshot for a single wallet."""
    try:
        snapshot = await wallet_data.fetch_snapshot(address)
    except ZerionAPIError as e:
        logger.error(f"Snapshot fetch failed for {address}: {e}")
        raise HTTPException(status_code=502, detail=f"Wallet data unavailable: {e}")

    if snapshot is None:
        raise HTTPException(status_code=404, detail="Wallet snapshot not found")
    return snapshot


@app.post("/api/battle/{battle_id}/settle", response_model=SettleResponse)
async def settle_battle(
    battle_id: str,
    body: SettleRequest,
    settings: Settings = Depends(get_app_settings),
    wallet_data: WalletDataProvider = Depends(get_wallet_provider),
    content_store: ContentStore = Depends(get_content_store),
    submitter: ChainSubmitter | None = Depends(get_root_submitter),
):
    """Settle a battle, persist its record, and publish the root when a signer is set."""
    orchestrator = SettlementOrchestrator(
        wallet_data,
        content_store,
        max_concurrent_fetches=settings.settlement.max_concurrent_fetches,
    )

    try:
        outcome = await orchestrator.settle(battle_id, body.players, body.bets, body.prize_pool)
    except NoParticipantsError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InvalidBattleResultError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        logger.error(f"Failed to persist settlement for {battle_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Settlement storage failed: {e}")

    transaction_signature = None
    if submitter is not None:
        try:
            transaction_signature = await submitter.submit_root(bytes.fromhex(outcome.merkle_root))
        except SolanaRPCError as e:
            logger.error(f"Root submission failed for {battle_id}: {e}")
            raise HTTPException(
                status_code=502,
                detail=(
                    f"Root submission failed: {e} "
                    f"(record stored as {outcome.content_handle})"
                ),
            )

    return SettleResponse(
        merkle_root=outcome.merkle_root,
        content_handle=outcome.content_handle,
        transaction_signature=transaction_signature,
    )


@app.get("/api/battle/{battle_id}/snapshot/{content_handle}")
async def get_battle_snapshot(
    battle_id: str,
    content_handle: str,
    content_store: ContentStore = Depends(get_content_store),
):
    """Stored settlement record for a battle."""
    try:
        data = await content_store.get(content_handle)
    except ContentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Record {content_handle} not found")
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Settlement storage failed: {e}")

    try:
        record = SettlementRecord.model_validate_json(data)
    except ValidationError:
        raise HTTPException(
            status_code=502, detail=f"Content {content_handle} is not a settlement record"
        )

    if record.battle_id != battle_id:
        raise HTTPException(
            status_code=404,
            detail=f"Record {content_handle} does not belong to battle {battle_id}",
        )
    return record.model_dump(mode="json", by_alias=True)


@app.post("/api/merkle/proof", response_model=PayoutProof)
async def get_merkle_proof(body: ProofRequest):
    """Inclusion proof for one (player, amount) payout of a battle result."""
    try:
        return build_payout_proof(body.battle_result, body.player, body.amount)
    except LeafNotFoundError:
        raise HTTPException(status_code=404, detail="Player payout not found in battle result")
    except InvalidBattleResultError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/merkle/verify", response_model=VerifyResponse)
async def verify_merkle_proof(body: VerifyRequest):
    try:
        valid = verify_proof(body.root, body.leaf_hash, body.proof)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Malformed hash: {e}")
    return VerifyResponse(valid=valid)


@app.get("/api/tokens/top", response_model=list[TopToken])
async def get_top_tokens(zerion: ZerionClient = Depends(get_zerion_client)):
    try:
        return await zerion.top_tokens()
    except ZerionAPIError as e:
        raise HTTPException(status_code=502, detail=f"Token data unavailable: {e}")


@app.post("/api/tokens/prices", response_model=list[TokenPrice])
async def get_token_prices(
    body: TokenPricesRequest,
    zerion: ZerionClient = Depends(get_zerion_client),
):
    return await zerion.token_prices(body.tokens)
