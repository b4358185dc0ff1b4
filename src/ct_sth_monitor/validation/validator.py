"""
Per-STH validation for the CT STH Monitor.

The validator decides whether a freshly fetched STH meets the requirements
a well-behaved Log must satisfy. It is pure: no I/O, no state, and the same
inputs always give the same result. The caller supplies the last accepted
STH and the current time.

Checks, in order (the first failure wins):

1. tree size is not negative
2. tree size fits in a uint64
3. root hash has the digest length of the configured hash algorithm
4. an empty tree carries the hash of the empty string as its root
5. timestamp fits in a uint64
6. timestamp is not further in the future than the allowed clock skew
7. timestamp is not earlier than the last accepted STH's timestamp
8. signature decodes and uses the configured algorithms
9. signature verifies under the Log's public key

Example:
    >>> validator = STHValidator(public_key, max_clock_skew_ms=300_000)
    >>> result = validator.validate(sth, last_accepted=previous, now_ms=now)
    >>> if not result.accepted:
    ...     print(result.reason.value, result.detail)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ct_sth_monitor.models.sth import SignedTreeHead
from ct_sth_monitor.utils.time import now_ms as current_ms
from ct_sth_monitor.validation.signature import (
    DigitallySigned,
    LogPublicKey,
    SignatureFormatError,
    digest_size,
    empty_tree_hash,
    hash_algorithm_from_name,
    load_public_key,
    tree_head_signature_input,
    verify_signature,
)

DEFAULT_MAX_CLOCK_SKEW_MS = 5 * 60 * 1000
UINT64_LIMIT = 1 << 64


class RejectReason(str, Enum):
    """Why an STH was rejected. One value per check."""

    NEGATIVE_TREE_SIZE = "negative_tree_size"
    TREE_SIZE_TOO_LARGE = "tree_size_too_large"
    ROOT_HASH_LENGTH = "root_hash_length"
    EMPTY_TREE_ROOT_HASH = "empty_tree_root_hash"
    TIMESTAMP_OUT_OF_RANGE = "timestamp_out_of_range"
    FUTURE_TIMESTAMP = "future_timestamp"
    NON_MONOTONIC_TIMESTAMP = "non_monotonic_timestamp"
    MALFORMED_SIGNATURE = "malformed_signature"
    INVALID_SIGNATURE = "invalid_signature"


@dataclass(frozen=True)
class ValidationResult:
    """Accept, or Reject with a reason and human-readable detail."""

    reason: RejectReason | None = None
    detail: str = ""

    @property
    def accepted(self) -> bool:
        return self.reason is None

    @classmethod
    def accept(cls) -> ValidationResult:
        return cls()

    @classmethod
    def reject(cls, reason: RejectReason, detail: str) -> ValidationResult:
        return cls(reason=reason, detail=detail)


ACCEPT = ValidationResult.accept()


class STHValidator:
    """Checks STHs against the per-STH rules of RFC 6962.

    Attributes:
        public_key: The Log's signing key
        hash_algorithm: Hash algorithm the Log uses for its tree and signatures
        max_clock_skew_ms: How far in the future a timestamp may be
    """

    def __init__(
        self,
        public_key: LogPublicKey | bytes | str,
        *,
        hash_algorithm: str = "sha256",
        max_clock_skew_ms: int = DEFAULT_MAX_CLOCK_SKEW_MS,
    ):
        """Initialize the validator.

        Args:
            public_key: Loaded key, DER bytes, base64 DER or PEM text
            hash_algorithm: Configured hash name (e.g. "sha256")
            max_clock_skew_ms: Tolerance for timestamps ahead of local time

        Raises:
            ValueError: If the key or algorithm is unusable, or the skew
                is negative
        """
        if isinstance(public_key, (bytes, str)):
            public_key = load_public_key(public_key)
        if max_clock_skew_ms < 0:
            raise ValueError("max_clock_skew_ms must be >= 0")

        self.public_key = public_key
        self.hash_algorithm = hash_algorithm_from_name(hash_algorithm)
        self.max_clock_skew_ms = max_clock_skew_ms
        self._digest_size = digest_size(self.hash_algorithm)
        self._empty_root = empty_tree_hash(self.hash_algorithm)

    def validate(
        self,
        sth: SignedTreeHead,
        last_accepted: SignedTreeHead | None = None,
        now_ms: int | None = None,
    ) -> ValidationResult:
        """Validate a single STH.

        Args:
            sth: STH to check
            last_accepted: Most recent STH accepted for the same Log
            now_ms: Current time in ms (defaults to the system clock)

        Returns:
            ValidationResult; ``accepted`` is True only if every check passed
        """
        if now_ms is None:
            now_ms = current_ms()

        if sth.tree_size < 0:
            return ValidationResult.reject(
                RejectReason.NEGATIVE_TREE_SIZE,
                f"tree size {sth.tree_size} is negative",
            )

        if sth.tree_size >= UINT64_LIMIT:
            return ValidationResult.reject(
                RejectReason.TREE_SIZE_TOO_LARGE,
                f"tree size {sth.tree_size} does not fit in a uint64",
            )

        if len(sth.root_hash) != self._digest_size:
            return ValidationResult.reject(
                RejectReason.ROOT_HASH_LENGTH,
                f"root hash is {len(sth.root_hash)} bytes, "
                f"expected {self._digest_size} for {self.hash_algorithm.name}",
            )

        if sth.tree_size == 0 and sth.root_hash != self._empty_root:
            return ValidationResult.reject(
                RejectReason.EMPTY_TREE_ROOT_HASH,
                f"empty tree has root hash {sth.root_hash.hex()}, "
                f"expected {self._empty_root.hex()}",
            )

        if not 0 <= sth.timestamp < UINT64_LIMIT:
            return ValidationResult.reject(
                RejectReason.TIMESTAMP_OUT_OF_RANGE,
                f"timestamp {sth.timestamp} is not a uint64",
            )

        if sth.timestamp > now_ms + self.max_clock_skew_ms:
            return ValidationResult.reject(
                RejectReason.FUTURE_TIMESTAMP,
                f"timestamp {sth.timestamp} is {sth.timestamp - now_ms}ms ahead of "
                f"local time (tolerance {self.max_clock_skew_ms}ms)",
            )

        if last_accepted is not None and sth.timestamp < last_accepted.timestamp:
            return ValidationResult.reject(
                RejectReason.NON_MONOTONIC_TIMESTAMP,
                f"timestamp {sth.timestamp} is earlier than last accepted "
                f"timestamp {last_accepted.timestamp}",
            )

        return self._check_signature(sth)

    def _check_signature(self, sth: SignedTreeHead) -> ValidationResult:
        try:
            signed = DigitallySigned.from_bytes(sth.signature)
            if signed.hash_algorithm != self.hash_algorithm:
                raise SignatureFormatError(
                    f"signature uses {signed.hash_algorithm.name}, "
                    f"Log is configured for {self.hash_algorithm.name}"
                )
            data = tree_head_signature_input(sth.tree_size, sth.timestamp, sth.root_hash)
            valid = verify_signature(self.public_key, signed, data)
        except ValueError as e:
            return ValidationResult.reject(RejectReason.MALFORMED_SIGNATURE, str(e))

        if not valid:
            return ValidationResult.reject(
                RejectReason.INVALID_SIGNATURE,
                "signature does not verify under the Log's public key",
            )
        return ACCEPT
