"""
Tests for STH validation.

Every check has its own reject reason; checks run in a fixed order and the
first failure wins.
"""

from __future__ import annotations

import base64
import hashlib

import pytest

from ct_sth_monitor.client.mock import derive_log_key, sign_tree_head
from ct_sth_monitor.models import SignedTreeHead
from ct_sth_monitor.validation import RejectReason, STHValidator, ValidationResult
from ct_sth_monitor.validation.signature import DigitallySigned, HashAlgorithm, SignatureAlgorithm
from tests.fixtures.factories import FIXED_NOW_MS, PLACEHOLDER_SIGNATURE


def validate(validator, sth, last_accepted=None):
    return validator.validate(sth, last_accepted, now_ms=FIXED_NOW_MS)


class TestAccept:
    """Tests for STHs that pass every check."""

    def test_valid_sth(self, validator, sth_factory):
        result = validate(validator, sth_factory.create(tree_size=100))

        assert result.accepted
        assert result.reason is None

    def test_empty_tree(self, validator, sth_factory):
        """Test a size-0 tree with the empty-string root hash is accepted."""
        result = validate(validator, sth_factory.create(tree_size=0))
        assert result.accepted

    def test_same_timestamp_as_last_accepted(self, validator, sth_factory):
        """Test equal timestamps are allowed (non-decreasing time)."""
        previous = sth_factory.create(tree_size=10, timestamp=FIXED_NOW_MS - 1000)
        current = sth_factory.create(tree_size=10, timestamp=FIXED_NOW_MS - 1000)

        assert validate(validator, current, previous).accepted

    def test_within_clock_skew(self, sth_factory):
        validator = STHValidator(sth_factory.public_key_der(), max_clock_skew_ms=10_000)
        sth = sth_factory.create(timestamp=FIXED_NOW_MS + 9_999)

        assert validate(validator, sth).accepted

    def test_key_as_base64(self, sth_factory):
        validator = STHValidator(base64.b64encode(sth_factory.public_key_der()).decode())
        assert validate(validator, sth_factory.create()).accepted

    def test_does_not_mutate_inputs(self, validator, sth_factory):
        previous = sth_factory.create(tree_size=5, timestamp=FIXED_NOW_MS - 5000)
        sth = sth_factory.create(tree_size=6)
        before = (sth.identity, previous.identity)

        validate(validator, sth, previous)

        assert (sth.identity, previous.identity) == before

    def test_deterministic(self, validator, sth_factory):
        sth = sth_factory.create(tree_size=6)
        assert validate(validator, sth) == validate(validator, sth)


class TestNegativeTreeSize:
    """A negative size is rejected regardless of the other fields."""

    @pytest.mark.parametrize("tree_size", [-1, -100, -(2**63)])
    def test_negative(self, validator, tree_size):
        sth = SignedTreeHead(
            tree_size=tree_size,
            timestamp=FIXED_NOW_MS,
            root_hash=hashlib.sha256(b"x").digest(),
            signature=PLACEHOLDER_SIGNATURE,
        )
        result = validate(validator, sth)

        assert result.reason is RejectReason.NEGATIVE_TREE_SIZE

    @pytest.mark.parametrize(
        "timestamp,root_hash,signature",
        [
            (FIXED_NOW_MS + 10**9, b"short", b""),
            (-5, b"", b"\xff"),
            (0, hashlib.sha256(b"").digest(), PLACEHOLDER_SIGNATURE),
        ],
    )
    def test_wins_over_other_failures(self, validator, sth_factory, timestamp, root_hash, signature):
        """Test the size reason is reported even when other fields are broken."""
        last = sth_factory.create(timestamp=FIXED_NOW_MS)
        sth = SignedTreeHead(
            tree_size=-1,
            timestamp=timestamp,
            root_hash=root_hash,
            signature=signature,
        )

        assert validate(validator, sth, last).reason is RejectReason.NEGATIVE_TREE_SIZE


class TestFieldRanges:
    """Tree size and timestamp must fit the uint64 fields of a tree head."""

    @pytest.mark.parametrize("tree_size", [2**64, 2**64 + 1, 2**70])
    def test_tree_size_too_large(self, validator, sth_factory, tree_size):
        sth = SignedTreeHead(
            tree_size=tree_size,
            timestamp=FIXED_NOW_MS,
            root_hash=sth_factory.root_hash_for(1),
            signature=PLACEHOLDER_SIGNATURE,
        )
        result = validate(validator, sth)

        assert result.reason is RejectReason.TREE_SIZE_TOO_LARGE
        assert "uint64" in result.detail

    def test_largest_tree_size_is_accepted(self, validator, sth_factory):
        sth = sth_factory.create(tree_size=2**64 - 1)
        assert validate(validator, sth).accepted

    @pytest.mark.parametrize("timestamp", [-5, -1, 2**64])
    def test_timestamp_out_of_range(self, validator, sth_factory, timestamp):
        """Test an unencodable timestamp is not blamed on the signature."""
        sth = SignedTreeHead(
            tree_size=10,
            timestamp=timestamp,
            root_hash=sth_factory.root_hash_for(10),
            signature=PLACEHOLDER_SIGNATURE,
        )
        result = validate(validator, sth)

        assert result.reason is RejectReason.TIMESTAMP_OUT_OF_RANGE
        assert result.reason is not RejectReason.MALFORMED_SIGNATURE

    def test_epoch_timestamp_is_in_range(self, validator, sth_factory):
        sth = sth_factory.create(tree_size=10, timestamp=0)
        assert validate(validator, sth).accepted


class TestRootHash:
    """Tests for root hash checks."""

    @pytest.mark.parametrize("length", [0, 20, 31, 33, 64])
    def test_wrong_length(self, validator, sth_factory, length):
        sth = sth_factory.create(root_hash=b"\x01" * length)
        result = validate(validator, sth)

        assert result.reason is RejectReason.ROOT_HASH_LENGTH
        assert str(length) in result.detail

    def test_length_follows_configured_algorithm(self, sth_factory):
        """Test a SHA-384 Log expects 48-byte roots."""
        validator = STHValidator(sth_factory.public_key_der(), hash_algorithm="sha384")
        result = validate(validator, sth_factory.create())

        assert result.reason is RejectReason.ROOT_HASH_LENGTH

    def test_empty_tree_wrong_root(self, validator, sth_factory):
        sth = sth_factory.create(tree_size=0, root_hash=hashlib.sha256(b"not empty").digest())
        assert validate(validator, sth).reason is RejectReason.EMPTY_TREE_ROOT_HASH


class TestTimestamps:
    """Tests for timestamp checks."""

    def test_future_timestamp(self, validator, sth_factory):
        sth = sth_factory.create(timestamp=FIXED_NOW_MS + validator.max_clock_skew_ms + 1)
        result = validate(validator, sth)

        assert result.reason is RejectReason.FUTURE_TIMESTAMP

    def test_zero_skew(self, sth_factory):
        validator = STHValidator(sth_factory.public_key_der(), max_clock_skew_ms=0)

        assert validate(validator, sth_factory.create(timestamp=FIXED_NOW_MS)).accepted
        result = validate(validator, sth_factory.create(timestamp=FIXED_NOW_MS + 1))
        assert result.reason is RejectReason.FUTURE_TIMESTAMP

    def test_negative_skew_rejected(self, sth_factory):
        with pytest.raises(ValueError):
            STHValidator(sth_factory.public_key_der(), max_clock_skew_ms=-1)

    def test_non_monotonic(self, validator, sth_factory):
        """Test an STH older than the last accepted one is rejected."""
        previous = sth_factory.create(tree_size=10, timestamp=FIXED_NOW_MS - 1000)
        older = sth_factory.create(tree_size=11, timestamp=FIXED_NOW_MS - 1001)

        result = validate(validator, older, previous)

        assert result.reason is RejectReason.NON_MONOTONIC_TIMESTAMP
        assert str(previous.timestamp) in result.detail

    def test_accepted_sequence_is_monotonic(self, validator, sth_factory):
        """Test that feeding a shuffled stream only ever accepts later timestamps."""
        stream = [
            sth_factory.create(tree_size=n, timestamp=FIXED_NOW_MS - ts)
            for n, ts in [(1, 9000), (2, 7000), (3, 8000), (4, 3000), (5, 5000), (6, 1000)]
        ]
        last = None
        accepted = []
        for sth in stream:
            if validate(validator, sth, last).accepted:
                accepted.append(sth)
                last = sth

        timestamps = [s.timestamp for s in accepted]
        assert timestamps == sorted(timestamps)
        assert [s.tree_size for s in accepted] == [1, 2, 4, 6]


class TestSignature:
    """Tests for signature checks."""

    def test_invalid_signature(self, validator, sth_factory):
        """Test a signature made for other data is rejected."""
        good = sth_factory.create(tree_size=50)
        forged = SignedTreeHead(
            tree_size=51,
            timestamp=good.timestamp,
            root_hash=good.root_hash,
            signature=good.signature,
        )

        assert validate(validator, forged).reason is RejectReason.INVALID_SIGNATURE

    def test_signed_by_other_key(self, validator, sth_factory):
        sth = sth_factory.create(tree_size=50)
        other_sig = sign_tree_head(derive_log_key(999), 50, sth.timestamp, sth.root_hash)
        other = sth_factory.create(tree_size=50, timestamp=sth.timestamp, signature=other_sig)

        assert validate(validator, other).reason is RejectReason.INVALID_SIGNATURE

    @pytest.mark.parametrize(
        "signature",
        [b"", b"\x04\x03", b"\x04\x03\x00\x10abc", b"\x63\x03\x00\x00"],
    )
    def test_malformed_signature(self, validator, sth_factory, signature):
        sth = sth_factory.create(signature=signature)
        assert validate(validator, sth).reason is RejectReason.MALFORMED_SIGNATURE

    def test_wrong_signature_algorithm(self, validator, sth_factory):
        """Test an RSA-labelled signature from an ECDSA Log is malformed."""
        good = sth_factory.create()
        signed = DigitallySigned.from_bytes(good.signature)
        relabelled = DigitallySigned(signed.hash_algorithm, SignatureAlgorithm.RSA, signed.signature)
        sth = sth_factory.create(timestamp=good.timestamp, signature=relabelled.to_bytes())

        assert validate(validator, sth).reason is RejectReason.MALFORMED_SIGNATURE

    def test_wrong_hash_algorithm(self, validator, sth_factory):
        good = sth_factory.create()
        signed = DigitallySigned.from_bytes(good.signature)
        relabelled = DigitallySigned(HashAlgorithm.SHA384, signed.signature_algorithm, signed.signature)
        sth = sth_factory.create(timestamp=good.timestamp, signature=relabelled.to_bytes())

        assert validate(validator, sth).reason is RejectReason.MALFORMED_SIGNATURE


class TestValidationResult:
    """Tests for ValidationResult."""

    def test_reasons_are_distinct(self):
        values = [reason.value for reason in RejectReason]
        assert len(values) == len(set(values)) == 9

    def test_reject(self):
        result = ValidationResult.reject(RejectReason.FUTURE_TIMESTAMP, "too new")

        assert not result.accepted
        assert result.detail == "too new"

    def test_accept(self):
        assert ValidationResult.accept().accepted

    def test_unknown_hash_algorithm(self, sth_factory):
        with pytest.raises(ValueError):
            STHValidator(sth_factory.public_key_der(), hash_algorithm="md5")
