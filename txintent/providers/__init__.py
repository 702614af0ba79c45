"""
External collaborators: chain state providers and quote APIs.
"""
from .base import (
    EvmStateProvider,
    SolanaStateProvider,
    QuoteProvider,
    FeeEstimate,
    call_with_policy,
)
from .registry import ProviderRegistry

__all__ = [
    "EvmStateProvider",
    "SolanaStateProvider",
    "QuoteProvider",
    "FeeEstimate",
    "call_with_policy",
    "ProviderRegistry",
]
