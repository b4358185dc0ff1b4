"""
Tests for RFC 6962 tree head signature handling.
"""

from __future__ import annotations

import base64
import hashlib
import struct

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from ct_sth_monitor.models import SignedTreeHead
from ct_sth_monitor.validation.signature import (
    DigitallySigned,
    HashAlgorithm,
    SignatureAlgorithm,
    SignatureFormatError,
    digest_size,
    empty_tree_hash,
    hash_algorithm_from_name,
    load_public_key,
    tree_head_signature_input,
    verify_signature,
    verify_tree_head_signature,
)

ROOT = hashlib.sha256(b"root").digest()


def der(public_key) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class TestDigitallySigned:
    """Tests for the DigitallySigned codec."""

    def test_decode(self):
        """Test decoding hash, signature algorithm and body."""
        signed = DigitallySigned.from_bytes(b"\x04\x03\x00\x03abc")

        assert signed.hash_algorithm is HashAlgorithm.SHA256
        assert signed.signature_algorithm is SignatureAlgorithm.ECDSA
        assert signed.signature == b"abc"

    def test_encode(self):
        signed = DigitallySigned(HashAlgorithm.SHA256, SignatureAlgorithm.RSA, b"xy")
        assert signed.to_bytes() == b"\x04\x01\x00\x02xy"

    def test_too_short(self):
        with pytest.raises(SignatureFormatError, match="too short"):
            DigitallySigned.from_bytes(b"\x04\x03")

    def test_length_mismatch(self):
        """Test truncated and over-long bodies are rejected."""
        with pytest.raises(SignatureFormatError):
            DigitallySigned.from_bytes(b"\x04\x03\x00\x05abc")
        with pytest.raises(SignatureFormatError):
            DigitallySigned.from_bytes(b"\x04\x03\x00\x01abc")

    def test_unknown_algorithm(self):
        with pytest.raises(SignatureFormatError):
            DigitallySigned.from_bytes(b"\x09\x03\x00\x00")

    def test_is_value_error(self):
        """Test format errors can be handled as ValueError."""
        assert issubclass(SignatureFormatError, ValueError)


class TestTreeHeadSignatureInput:
    """Tests for the canonical TreeHeadSignature encoding."""

    def test_layout(self):
        """Test version, type, timestamp, size and root hash order."""
        data = tree_head_signature_input(tree_size=7, timestamp=1234, root_hash=ROOT)

        version, sig_type, timestamp, tree_size = struct.unpack(">BBQQ", data[:18])
        assert (version, sig_type, timestamp, tree_size) == (0, 1, 1234, 7)
        assert data[18:] == ROOT
        assert len(data) == 18 + 32

    def test_negative_size_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            tree_head_signature_input(tree_size=-1, timestamp=0, root_hash=ROOT)


class TestHashAlgorithms:
    """Tests for hash algorithm helpers."""

    def test_from_name(self):
        assert hash_algorithm_from_name("SHA256") is HashAlgorithm.SHA256
        assert hash_algorithm_from_name("sha384") is HashAlgorithm.SHA384

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            hash_algorithm_from_name("md5")

    def test_digest_size(self):
        assert digest_size(HashAlgorithm.SHA256) == 32
        assert digest_size(HashAlgorithm.SHA512) == 64

    def test_empty_tree_hash(self):
        """Test the empty tree root is the hash of the empty string."""
        assert empty_tree_hash(HashAlgorithm.SHA256) == hashlib.sha256(b"").digest()


class TestLoadPublicKey:
    """Tests for Log key loading."""

    def test_der_bytes(self, sth_factory):
        key = load_public_key(sth_factory.public_key_der())
        assert isinstance(key, ec.EllipticCurvePublicKey)

    def test_base64(self, sth_factory):
        """Test the base64 form used by CT log lists."""
        encoded = base64.b64encode(sth_factory.public_key_der()).decode()
        assert isinstance(load_public_key(encoded), ec.EllipticCurvePublicKey)

    def test_pem(self, sth_factory):
        pem = sth_factory.private_key().public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        assert isinstance(load_public_key(pem.decode()), ec.EllipticCurvePublicKey)

    def test_garbage(self):
        with pytest.raises(ValueError):
            load_public_key(b"not a key")


class TestVerify:
    """Tests for signature verification."""

    def test_valid_ecdsa(self, sth_factory):
        sth = sth_factory.create(tree_size=10)
        key = load_public_key(sth_factory.public_key_der())
        assert verify_tree_head_signature(key, sth)

    def test_tampered_ecdsa(self, sth_factory):
        """Test a signature does not verify for a different tree size."""
        sth = sth_factory.create(tree_size=10)
        forged = SignedTreeHead(
            tree_size=11,
            timestamp=sth.timestamp,
            root_hash=sth.root_hash,
            signature=sth.signature,
        )
        key = load_public_key(sth_factory.public_key_der())
        assert not verify_tree_head_signature(key, forged)

    def test_wrong_key(self, sth_factory):
        sth = sth_factory.create(tree_size=10)
        other = ec.generate_private_key(ec.SECP256R1()).public_key()
        assert not verify_tree_head_signature(other, sth)

    def test_rsa(self):
        """Test PKCS#1 v1.5 RSA signatures verify."""
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        data = tree_head_signature_input(5, 1000, ROOT)
        raw = private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        signed = DigitallySigned(HashAlgorithm.SHA256, SignatureAlgorithm.RSA, raw)

        key = load_public_key(der(private_key.public_key()))

        assert verify_signature(key, signed, data)
        assert not verify_signature(key, signed, data + b"x")

    def test_algorithm_mismatch(self, sth_factory):
        """Test an RSA-labelled signature cannot be checked with an EC key."""
        key = load_public_key(sth_factory.public_key_der())
        signed = DigitallySigned(HashAlgorithm.SHA256, SignatureAlgorithm.RSA, b"sig")

        with pytest.raises(SignatureFormatError, match="does not match"):
            verify_signature(key, signed, b"data")
