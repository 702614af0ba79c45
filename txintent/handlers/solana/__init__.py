from .spl import SplCreateHandler
from .transfer import SolanaTransferHandler

__all__ = ["SolanaTransferHandler", "SplCreateHandler"]
