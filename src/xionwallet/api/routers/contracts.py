"""Smart contract API endpoints: query, execute and transaction status."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from xionwallet.api.deps import get_gateway, http_error
from xionwallet.api.schemas import ExecuteRequest, QueryRequest, TransactionResponse
from xionwallet.crypto import EncryptedSecret
from xionwallet.errors import InvalidRequest, WalletError
from xionwallet.services.gateway import ContractGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contracts"])


@router.post("/contracts/{address}/query", response_model=TransactionResponse)
async def query_contract(
    address: str,
    request: QueryRequest,
    gateway: ContractGateway = Depends(get_gateway),
) -> TransactionResponse:
    """Run a read-only smart query against a contract."""
    try:
        result = await gateway.query(address, request.msg)
    except WalletError as e:
        raise http_error(e)
    return TransactionResponse(**result.to_dict())


@router.post("/contracts/{address}/execute", response_model=TransactionResponse)
async def execute_contract(
    address: str,
    request: ExecuteRequest,
    gateway: ContractGateway = Depends(get_gateway),
) -> TransactionResponse:
    """Sign and broadcast an execute message.

    A 504 response means the transaction was submitted but not confirmed in
    time; re-query /transactions/{txhash} before resubmitting.
    """
    try:
        encrypted_secret = None
        if request.encrypted_private_key is not None or request.iv is not None:
            if not request.encrypted_private_key or not request.iv:
                raise InvalidRequest("encryptedPrivateKey and iv must be provided together")
            encrypted_secret = EncryptedSecret(
                ciphertext=request.encrypted_private_key,
                iv=request.iv,
            )

        sender_mnemonic = None
        if request.sender_mnemonic is not None:
            sender_mnemonic = request.sender_mnemonic.get_secret_value()

        result = await gateway.execute(
            address,
            request.msg,
            sender_mnemonic=sender_mnemonic,
            encrypted_secret=encrypted_secret,
            gas_limit=request.gas_limit,
            gas_price=request.gas_price,
            memo=request.memo,
        )
    except WalletError as e:
        raise http_error(e)
    return TransactionResponse(**result.to_dict())


@router.get("/transactions/{txhash}", response_model=TransactionResponse)
async def get_transaction(
    txhash: str,
    gateway: ContractGateway = Depends(get_gateway),
) -> TransactionResponse:
    """Look up a transaction by hash."""
    try:
        result = await gateway.get_transaction(txhash)
    except WalletError as e:
        raise http_error(e)

    if not result.success and result.result.get("status") == "not_found":
        raise HTTPException(
            status_code=404,
            detail={"error": "TransactionNotFound", "detail": f"Transaction {txhash} not found"},
        )
    return TransactionResponse(**result.to_dict())
