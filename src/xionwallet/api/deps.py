"""FastAPI dependencies and error translation."""

from fastapi import HTTPException, Request

from xionwallet.errors import WalletError
from xionwallet.services.gateway import ContractGateway
from xionwallet.services.wallet_service import WalletService


def get_gateway(request: Request) -> ContractGateway:
    return request.app.state.gateway


def get_wallet_service(request: Request) -> WalletService:
    return request.app.state.wallet_service


def http_error(e: WalletError) -> HTTPException:
    """Translate a classified wallet error into an HTTP error."""
    return HTTPException(status_code=e.status_code, detail=e.to_dict())
