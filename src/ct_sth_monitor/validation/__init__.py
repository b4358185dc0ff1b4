"""
STH validation for the CT STH Monitor.

- STHValidator: pure per-STH checks (size, hash length, time, signature)
- ValidationResult / RejectReason: Accept or Reject(reason)
- signature: RFC 6962 TreeHeadSignature encoding and verification
"""

from ct_sth_monitor.validation.signature import (
    DigitallySigned,
    HashAlgorithm,
    SignatureAlgorithm,
    load_public_key,
    tree_head_signature_input,
    verify_tree_head_signature,
)
from ct_sth_monitor.validation.validator import (
    DEFAULT_MAX_CLOCK_SKEW_MS,
    RejectReason,
    STHValidator,
    ValidationResult,
)

__all__ = [
    "DEFAULT_MAX_CLOCK_SKEW_MS",
    "DigitallySigned",
    "HashAlgorithm",
    "RejectReason",
    "STHValidator",
    "SignatureAlgorithm",
    "ValidationResult",
    "load_public_key",
    "tree_head_signature_input",
    "verify_tree_head_signature",
]
