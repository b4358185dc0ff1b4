"""
Signed Tree Head model for the CT STH Monitor.

A Signed Tree Head (STH) is a Log's signed commitment to the current state
of its Merkle tree. This module defines the immutable model used throughout
the monitor and the parser for the RFC 6962 ``get-sth`` JSON body.

Example:
    >>> from ct_sth_monitor.models import SignedTreeHead
    >>>
    >>> sth = SignedTreeHead.from_json(response_body)
    >>> print(f"Tree size {sth.tree_size} at {sth.timestamp}")
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ct_sth_monitor.utils.time import ms_to_datetime


class SignedTreeHead(BaseModel):
    """Signed Tree Head as published by a CT Log.

    Instances are frozen: once parsed, an STH is never mutated. Two STHs
    are the same STH when all four fields match.

    Attributes:
        tree_size: Number of leaves committed to by the root hash
        timestamp: Milliseconds since the epoch, as asserted by the Log
        root_hash: Merkle tree root hash
        signature: TLS-encoded DigitallySigned struct over the tree head

    Example:
        >>> sth = SignedTreeHead(
        ...     tree_size=100,
        ...     timestamp=1700000000000,
        ...     root_hash=b"\\x00" * 32,
        ...     signature=b"\\x04\\x03\\x00\\x00",
        ... )
        >>> sth.identity
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # No range check here: a negative size is a Log misbehaviour that the
    # validator reports, not a parse failure.
    tree_size: int = Field(..., description="Number of entries in the tree")
    timestamp: int = Field(..., description="Issue time (ms since epoch)")
    root_hash: bytes = Field(..., description="Merkle tree root hash")
    signature: bytes = Field(..., description="DigitallySigned tree head signature")

    @field_validator("root_hash", "signature", mode="before")
    @classmethod
    def decode_base64(cls, v: Any) -> Any:
        """Accept base64 text for the binary fields."""
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except binascii.Error as e:
                raise ValueError(f"invalid base64: {e}") from e
        return v

    @property
    def identity(self) -> tuple[int, int, bytes, bytes]:
        """Tuple that uniquely identifies this STH."""
        return (self.tree_size, self.timestamp, self.root_hash, self.signature)

    @property
    def issued_at(self) -> datetime:
        """Timestamp as a UTC datetime."""
        return ms_to_datetime(self.timestamp)

    @classmethod
    def from_json(cls, body: bytes | str) -> SignedTreeHead:
        """Parse an RFC 6962 ``get-sth`` response body.

        Args:
            body: Raw JSON body returned by ``/ct/v1/get-sth``

        Returns:
            Parsed SignedTreeHead

        Raises:
            ValueError: If the body is not valid JSON or misses fields
        """
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("get-sth response is not a JSON object")

        return cls(
            tree_size=data.get("tree_size"),
            timestamp=data.get("timestamp"),
            root_hash=data.get("sha256_root_hash"),
            signature=data.get("tree_head_signature"),
        )

    def to_json_dict(self) -> dict[str, Any]:
        """Convert back to the ``get-sth`` wire shape."""
        return {
            "tree_size": self.tree_size,
            "timestamp": self.timestamp,
            "sha256_root_hash": base64.b64encode(self.root_hash).decode("ascii"),
            "tree_head_signature": base64.b64encode(self.signature).decode("ascii"),
        }

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for SQLite insertion."""
        return {
            "tree_size": self.tree_size,
            "timestamp": self.timestamp,
            "root_hash": self.root_hash.hex(),
            "signature": self.signature.hex(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> SignedTreeHead:
        """Create a SignedTreeHead from a database row."""
        return cls(
            tree_size=row["tree_size"],
            timestamp=row["timestamp"],
            root_hash=bytes.fromhex(row["root_hash"]),
            signature=bytes.fromhex(row["signature"]),
        )

    def __str__(self) -> str:
        return (
            f"STH(size={self.tree_size}, timestamp={self.timestamp}, "
            f"root_hash={self.root_hash.hex()[:16]}...)"
        )
