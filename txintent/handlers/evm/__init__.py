from .transfer import EvmTransferHandler

__all__ = ["EvmTransferHandler"]
