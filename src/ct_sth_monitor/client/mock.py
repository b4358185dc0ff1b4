"""
Mock Log client for demos and testing.

MockLogClient behaves like a healthy CT Log without any network: each
``get_sth`` call grows the tree and returns a freshly signed STH, wrapped
in a RawResponse shaped exactly like a real ``get-sth`` reply.

Example:
    >>> from ct_sth_monitor.client import MockLogClient
    >>>
    >>> client = MockLogClient(tree_size=100, growth=10, seed=42)
    >>> result = await client.get_sth()
    >>> validator = STHValidator(client.public_key_der)
    >>> validator.validate(result.sth).accepted
    True
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ct_sth_monitor.client.protocol import STHResponse
from ct_sth_monitor.models import RawResponse, SignedTreeHead
from ct_sth_monitor.utils.time import now_ms, utcnow
from ct_sth_monitor.validation.signature import (
    DigitallySigned,
    HashAlgorithm,
    SignatureAlgorithm,
    tree_head_signature_input,
)

# Order of the P-256 group; private scalars must lie in [1, n - 1]
_P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551


def derive_log_key(seed: int) -> ec.EllipticCurvePrivateKey:
    """Deterministic P-256 signing key for a seed."""
    digest = hashlib.sha256(f"ct-sth-monitor-mock-log:{seed}".encode()).digest()
    scalar = int.from_bytes(digest, "big") % (_P256_ORDER - 1) + 1
    return ec.derive_private_key(scalar, ec.SECP256R1())


def sign_tree_head(
    private_key: ec.EllipticCurvePrivateKey,
    tree_size: int,
    timestamp: int,
    root_hash: bytes,
) -> bytes:
    """Produce a TLS DigitallySigned signature over a tree head."""
    data = tree_head_signature_input(tree_size, timestamp, root_hash)
    signature = private_key.sign(data, ec.ECDSA(hashes.SHA256()))
    return DigitallySigned(HashAlgorithm.SHA256, SignatureAlgorithm.ECDSA, signature).to_bytes()


class MockLogClient:
    """In-process CT Log that always answers with a valid, signed STH.

    Attributes:
        log_url: Always starts with "mock://"
        tree_size: Size of the next STH to be served
        growth: Entries added between consecutive calls
        calls: Number of get_sth calls served
    """

    def __init__(
        self,
        tree_size: int = 0,
        *,
        growth: int = 1,
        seed: int = 0,
        name: str = "mock",
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the mock Log.

        Args:
            tree_size: Size of the first STH served
            growth: Entries added per call
            seed: Seed for the signing key and root hashes
            name: Used to build the ``mock://`` URL
            clock: Millisecond clock used for STH timestamps
        """
        self.tree_size = tree_size
        self.growth = growth
        self.seed = seed
        self.calls = 0
        self._log_url = f"mock://{name}/"
        self._clock = clock
        self._key = derive_log_key(seed)

    @property
    def log_url(self) -> str:
        return self._log_url

    @property
    def public_key_der(self) -> bytes:
        """DER SubjectPublicKeyInfo of the Log's key."""
        return self._key.public_key().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def make_sth(self, tree_size: int, timestamp: int) -> SignedTreeHead:
        """Build a correctly signed STH for the given size and time."""
        if tree_size == 0:
            root_hash = hashlib.sha256(b"").digest()
        else:
            root_hash = hashlib.sha256(f"{self.seed}:{tree_size}".encode()).digest()
        return SignedTreeHead(
            tree_size=tree_size,
            timestamp=timestamp,
            root_hash=root_hash,
            signature=sign_tree_head(self._key, tree_size, timestamp, root_hash),
        )

    async def get_sth(self) -> STHResponse:
        """Serve the next STH and grow the tree."""
        started_at = utcnow()
        sth = self.make_sth(self.tree_size, self._clock())
        self.tree_size += self.growth
        self.calls += 1

        response = RawResponse(
            status_code=200,
            body=json.dumps(sth.to_json_dict()).encode("utf-8"),
            headers={"content-type": "application/json"},
            started_at=started_at,
            finished_at=utcnow(),
        )
        return STHResponse(sth=sth, response=response)

    def __repr__(self) -> str:
        return f"MockLogClient(log_url={self._log_url!r}, tree_size={self.tree_size})"
