"""
Data models for txintent.
"""
from enum import Enum
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_TTL_SECONDS = 3600


class EnvelopeEncoding(str, Enum):
    """Serialization format of an unsigned transaction"""
    HEX = "hex"
    LEGACY_BINARY = "legacy-binary"
    VERSIONED_BINARY = "versioned-binary"


# Wire "type" tag for each binary encoding; hex envelopes carry no tag
_WIRE_TYPES = {
    EnvelopeEncoding.LEGACY_BINARY: "legacy",
    EnvelopeEncoding.VERSIONED_BINARY: "versioned",
}
_RESERVED_WIRE_KEYS = {"type", "hex", "base64"}


class Intent(BaseModel):
    """A persisted, validated description of a desired onchain action"""
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    chain: str
    data: Dict[str, Any]
    created_at: float
    expires_at: float
    completion_hash: Optional[str] = None

    @model_validator(mode="after")
    def _check_window(self) -> "Intent":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    @property
    def is_completed(self) -> bool:
        return self.completion_hash is not None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TransactionEnvelope(BaseModel):
    """A fully assembled, unsigned, serialized transaction"""
    model_config = ConfigDict(frozen=True)

    encoding: EnvelopeEncoding
    payload: str
    auxiliary: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        """
        Render the envelope in its transport shape.

        Exactly one of ``hex``/``base64`` is set. Hex envelopes carry no
        ``type`` tag. Auxiliary values are merged in alongside.
        """
        wire: Dict[str, Any] = dict(self.auxiliary or {})
        if self.encoding == EnvelopeEncoding.HEX:
            wire["hex"] = self.payload
        else:
            wire["type"] = _WIRE_TYPES[self.encoding]
            wire["base64"] = self.payload
        return wire

    @classmethod
    def from_wire(cls, wire: Dict[str, Any]) -> "TransactionEnvelope":
        """Parse a transport-shaped envelope back into the model"""
        has_hex = bool(wire.get("hex"))
        has_b64 = bool(wire.get("base64"))
        if has_hex == has_b64:
            raise ValueError("Envelope must carry exactly one of 'hex' or 'base64'")

        if has_hex:
            if wire.get("type") is not None:
                raise ValueError("Hex envelopes must not carry a 'type' tag")
            encoding = EnvelopeEncoding.HEX
            payload = wire["hex"]
        else:
            tag = wire.get("type", "legacy")
            if tag == "versioned":
                encoding = EnvelopeEncoding.VERSIONED_BINARY
            elif tag == "legacy":
                encoding = EnvelopeEncoding.LEGACY_BINARY
            else:
                raise ValueError(f"Unknown envelope type: {tag}")
            payload = wire["base64"]

        auxiliary = {k: v for k, v in wire.items() if k not in _RESERVED_WIRE_KEYS}
        return cls(encoding=encoding, payload=payload, auxiliary=auxiliary or None)


class CreateResult(BaseModel):
    """What a handler returns from ``create``"""
    chain: str
    data: Dict[str, Any]
    extras: Dict[str, Any] = Field(default_factory=dict)


class BuildResult(BaseModel):
    """What a handler returns from ``build``"""
    transactions: List[TransactionEnvelope]
    auxiliary: Dict[str, Any] = Field(default_factory=dict)


class CreateResponse(BaseModel):
    """Result of creating an intent"""
    intent_id: str
    chain: str
    expires_at: float
    extras: Dict[str, Any] = Field(default_factory=dict)


class IntentView(BaseModel):
    """Read-only view of a pending intent"""
    type: str
    chain: str
    data: Dict[str, Any]
    expires_at: float


class BuildResponse(BaseModel):
    """Result of building an intent into unsigned transactions"""
    chain: str
    transactions: List[TransactionEnvelope]
    auxiliary: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = dict(self.auxiliary)
        wire["chain"] = self.chain
        wire["transactions"] = [tx.to_wire() for tx in self.transactions]
        return wire


class CompletionAck(BaseModel):
    """Acknowledgement of a recorded completion"""
    intent_id: str
    txn_hash: str
