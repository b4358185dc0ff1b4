"""
RFC 6962 tree head signature handling.

A Log signs the TLS encoding of::

    digitally-signed struct {
        Version version;                    // v1(0)
        SignatureType signature_type;       // tree_hash(1)
        uint64 timestamp;
        uint64 tree_size;
        opaque sha256_root_hash[32];
    } TreeHeadSignature;

and publishes the result as a ``DigitallySigned`` struct::

    struct {
        HashAlgorithm hash;                 // 1 byte, sha256(4)
        SignatureAlgorithm signature;       // 1 byte, rsa(1) / ecdsa(3)
        opaque signature<0..2^16-1>;
    } DigitallySigned;

Verification uses the Log's public key (DER ``SubjectPublicKeyInfo``).

Example:
    >>> key = load_public_key(log_settings.public_key)
    >>> verify_tree_head_signature(key, sth)
"""

from __future__ import annotations

import base64
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

if TYPE_CHECKING:
    from ct_sth_monitor.models.sth import SignedTreeHead

LogPublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey]

CT_VERSION_V1 = 0
SIGNATURE_TYPE_TREE_HASH = 1


class HashAlgorithm(IntEnum):
    """TLS HashAlgorithm registry values used by CT."""

    NONE = 0
    MD5 = 1
    SHA1 = 2
    SHA224 = 3
    SHA256 = 4
    SHA384 = 5
    SHA512 = 6


class SignatureAlgorithm(IntEnum):
    """TLS SignatureAlgorithm registry values used by CT."""

    ANONYMOUS = 0
    RSA = 1
    DSA = 2
    ECDSA = 3


_HASHES: dict[HashAlgorithm, type[hashes.HashAlgorithm]] = {
    HashAlgorithm.SHA224: hashes.SHA224,
    HashAlgorithm.SHA256: hashes.SHA256,
    HashAlgorithm.SHA384: hashes.SHA384,
    HashAlgorithm.SHA512: hashes.SHA512,
}

_HASH_NAMES: dict[str, HashAlgorithm] = {
    "sha224": HashAlgorithm.SHA224,
    "sha256": HashAlgorithm.SHA256,
    "sha384": HashAlgorithm.SHA384,
    "sha512": HashAlgorithm.SHA512,
}


class SignatureFormatError(ValueError):
    """The DigitallySigned structure could not be decoded."""


@dataclass(frozen=True)
class DigitallySigned:
    """Decoded TLS DigitallySigned struct."""

    hash_algorithm: HashAlgorithm
    signature_algorithm: SignatureAlgorithm
    signature: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> DigitallySigned:
        """Decode a TLS-encoded DigitallySigned struct.

        Raises:
            SignatureFormatError: If the encoding is truncated, has
                trailing data, or names an unknown algorithm
        """
        if len(data) < 4:
            raise SignatureFormatError(f"signature too short ({len(data)} bytes)")

        hash_byte, sig_byte, length = struct.unpack(">BBH", data[:4])
        body = data[4:]
        if len(body) != length:
            raise SignatureFormatError(
                f"signature length prefix {length} does not match {len(body)} bytes"
            )

        try:
            hash_algorithm = HashAlgorithm(hash_byte)
            signature_algorithm = SignatureAlgorithm(sig_byte)
        except ValueError as e:
            raise SignatureFormatError(str(e)) from e

        return cls(hash_algorithm, signature_algorithm, body)

    def to_bytes(self) -> bytes:
        """TLS-encode this struct."""
        return (
            struct.pack(">BBH", self.hash_algorithm, self.signature_algorithm, len(self.signature))
            + self.signature
        )


def hash_algorithm_from_name(name: str) -> HashAlgorithm:
    """Map a configured hash name (e.g. "sha256") to its TLS value.

    Raises:
        ValueError: If the name is not a supported algorithm
    """
    try:
        return _HASH_NAMES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported hash algorithm '{name}'. Available: {', '.join(_HASH_NAMES)}"
        ) from None


def digest_size(algorithm: HashAlgorithm) -> int:
    """Size in bytes of a digest produced by ``algorithm``."""
    return _HASHES[algorithm].digest_size


def empty_tree_hash(algorithm: HashAlgorithm) -> bytes:
    """Root hash of an empty tree: the hash of the empty string."""
    digest = hashes.Hash(_HASHES[algorithm]())
    return digest.finalize()


def tree_head_signature_input(tree_size: int, timestamp: int, root_hash: bytes) -> bytes:
    """Canonical TLS encoding of a TreeHeadSignature.

    Args:
        tree_size: Number of leaves (uint64)
        timestamp: Issue time in ms (uint64)
        root_hash: Merkle root hash

    Raises:
        ValueError: If a value does not fit in a uint64
    """
    try:
        header = struct.pack(
            ">BBQQ", CT_VERSION_V1, SIGNATURE_TYPE_TREE_HASH, timestamp, tree_size
        )
    except struct.error as e:
        raise ValueError(f"tree head field out of range: {e}") from e
    return header + root_hash


def load_public_key(key: bytes | str) -> LogPublicKey:
    """Load a Log public key.

    Accepts DER bytes, base64 DER (the form used in CT log lists), or a PEM
    block.

    Raises:
        ValueError: If the key cannot be parsed or is not EC/RSA
    """
    if isinstance(key, str):
        text = key.strip()
        if text.startswith("-----BEGIN"):
            loaded = serialization.load_pem_public_key(text.encode("ascii"))
        else:
            loaded = serialization.load_der_public_key(base64.b64decode(text, validate=True))
    else:
        loaded = serialization.load_der_public_key(key)

    if not isinstance(loaded, (ec.EllipticCurvePublicKey, rsa.RSAPublicKey)):
        raise ValueError(f"Unsupported Log key type: {type(loaded).__name__}")
    return loaded


def key_signature_algorithm(key: LogPublicKey) -> SignatureAlgorithm:
    """SignatureAlgorithm a Log using ``key`` must declare."""
    if isinstance(key, ec.EllipticCurvePublicKey):
        return SignatureAlgorithm.ECDSA
    return SignatureAlgorithm.RSA


def verify_signature(
    key: LogPublicKey,
    signed: DigitallySigned,
    data: bytes,
) -> bool:
    """Check a DigitallySigned struct over ``data``.

    Returns:
        True if the signature verifies, False otherwise

    Raises:
        SignatureFormatError: If the declared algorithms cannot be used
            with ``key``
    """
    if signed.signature_algorithm != key_signature_algorithm(key):
        raise SignatureFormatError(
            f"signature algorithm {signed.signature_algorithm.name} "
            f"does not match {type(key).__name__}"
        )
    hash_cls = _HASHES.get(signed.hash_algorithm)
    if hash_cls is None:
        raise SignatureFormatError(f"unsupported hash algorithm {signed.hash_algorithm.name}")

    try:
        if isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signed.signature, data, ec.ECDSA(hash_cls()))
        else:
            key.verify(signed.signature, data, padding.PKCS1v15(), hash_cls())
    except InvalidSignature:
        return False
    return True


def verify_tree_head_signature(key: LogPublicKey, sth: SignedTreeHead) -> bool:
    """Verify an STH's signature under the Log's key.

    Raises:
        SignatureFormatError: If the signature struct is malformed
        ValueError: If the STH fields cannot be encoded
    """
    signed = DigitallySigned.from_bytes(sth.signature)
    data = tree_head_signature_input(sth.tree_size, sth.timestamp, sth.root_hash)
    return verify_signature(key, signed, data)
