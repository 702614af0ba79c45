"""
Protocol handlers and the machinery they share.
"""
from .base import Handler, parse_payload
from .assembler import (
    ApprovalRequirement,
    BalanceRequirement,
    CallSpec,
    EvmAssembler,
    SolanaAssembler,
    gather,
    needs_approval,
)
from .registry import HandlerRegistry, build_default_registry

__all__ = [
    "Handler",
    "parse_payload",
    "ApprovalRequirement",
    "BalanceRequirement",
    "CallSpec",
    "EvmAssembler",
    "SolanaAssembler",
    "gather",
    "needs_approval",
    "HandlerRegistry",
    "build_default_registry",
]
