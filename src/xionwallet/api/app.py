"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from xionwallet import __version__
from xionwallet.chain.client import ChainClient
from xionwallet.config import Settings, get_settings
from xionwallet.crypto import SecretCipher
from xionwallet.services.gateway import ContractGateway
from xionwallet.services.wallet_service import WalletService
from xionwallet.tx.builder import TransactionBuilder
from xionwallet.utils.locks import AddressLocks
from xionwallet.wallet.derivation import XionKeyDerivation

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown
    await app.state.chain_client.aclose()
    logger.info("Chain client closed")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 without echoing submitted secrets."""
    errors = [
        {key: value for key, value in error.items() if key not in ("input", "ctx")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": "InvalidRequest", "detail": jsonable_encoder(errors)}},
    )


def create_app(
    settings: Optional[Settings] = None,
    chain_client: Optional[ChainClient] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment settings)
        chain_client: Pre-built chain client (tests inject one backed by a mock node)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="XION Wallet API",
        description="Wallet key management and CosmWasm contract execution for XION",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Components are built here rather than in the lifespan so the app is usable
    # under transports that do not run lifespan events
    derivation = XionKeyDerivation(prefix=settings.bech32_prefix)
    cipher = None
    if settings.master_key:
        cipher = SecretCipher.from_master_key(settings.master_key, settings.kdf_salt)
    else:
        logger.warning("MASTER_KEY not set - wallet creation endpoints will fail")

    chain_client = chain_client or ChainClient.from_settings(settings)

    app.state.settings = settings
    app.state.chain_client = chain_client
    app.state.wallet_service = WalletService(derivation=derivation, cipher=cipher)
    app.state.gateway = ContractGateway(
        chain_client=chain_client,
        builder=TransactionBuilder.from_settings(settings),
        derivation=derivation,
        cipher=cipher,
        locks=AddressLocks(timeout=settings.signer_lock_timeout),
        gas_adjustment=settings.gas_adjustment,
    )

    # Register routes
    from xionwallet.api.routers import contracts, health, wallet

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallet.router)
    app.include_router(contracts.router)

    return app
