"""Service layer: wallet lifecycle and contract gateway."""

from xionwallet.services.gateway import ContractGateway, RequestState
from xionwallet.services.wallet_service import WalletService

__all__ = ["ContractGateway", "RequestState", "WalletService"]
