"""Wallet API endpoints: creation, recovery and balances."""

import logging

from fastapi import APIRouter, Depends

from xionwallet.api.deps import get_gateway, get_wallet_service, http_error
from xionwallet.api.schemas import (
    BalanceResponse,
    PrivateKeyRequest,
    RecoverWalletRequest,
    RecoverWalletResponse,
    WalletResponse,
)
from xionwallet.errors import WalletError
from xionwallet.services.gateway import ContractGateway
from xionwallet.services.wallet_service import WalletService
from xionwallet.wallet.base import WalletRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Wallet"])


def _wallet_response(record: WalletRecord) -> WalletResponse:
    return WalletResponse(
        address=record.address,
        encrypted_private_key=record.encrypted_private_key,
        iv=record.iv,
        public_key=record.public_key,
    )


@router.post("/generate-wallet", response_model=WalletResponse)
async def generate_wallet(
    service: WalletService = Depends(get_wallet_service),
) -> WalletResponse:
    """Generate a new wallet and return it with the private key encrypted."""
    try:
        record = service.generate_wallet()
    except WalletError as e:
        raise http_error(e)
    return _wallet_response(record)


@router.post("/generate-wallet-service", response_model=WalletResponse)
async def generate_wallet_from_key(
    request: PrivateKeyRequest,
    service: WalletService = Depends(get_wallet_service),
) -> WalletResponse:
    """Create a wallet record for a caller-supplied private key."""
    try:
        record = service.import_private_key(request.private_key.get_secret_value())
    except WalletError as e:
        raise http_error(e)
    return _wallet_response(record)


@router.post("/recover-wallet", response_model=RecoverWalletResponse)
async def recover_wallet(
    request: RecoverWalletRequest,
    service: WalletService = Depends(get_wallet_service),
) -> RecoverWalletResponse:
    """Derive the address for a mnemonic."""
    try:
        address = service.recover_address(request.mnemonic.get_secret_value())
    except WalletError as e:
        raise http_error(e)
    return RecoverWalletResponse(address=address)


@router.get("/get-balance/{address}", response_model=BalanceResponse)
async def get_balance(
    address: str,
    gateway: ContractGateway = Depends(get_gateway),
) -> BalanceResponse:
    """Get the uxion balance of an address. Unfunded accounts report 0."""
    try:
        coin = await gateway.get_balance(address)
    except WalletError as e:
        raise http_error(e)
    return BalanceResponse(address=address, balance=str(coin))
