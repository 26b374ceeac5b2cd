"""
Payment verification with pluggable strategies and chain adapters.
"""
from .base import (
    ChainAdapter,
    ChainKind,
    PaymentMethod,
    PaymentProof,
    PaymentRequirement,
    ProofKind,
    Strategy,
    VerificationReason,
    VerificationResult,
)
from .methods import ChainAdapterFactory, build_payment_methods, build_requirement, resolve_method
from .verifier import PaymentVerifier

__all__ = [
    "ChainAdapter",
    "ChainKind",
    "PaymentMethod",
    "PaymentProof",
    "PaymentRequirement",
    "ProofKind",
    "Strategy",
    "VerificationReason",
    "VerificationResult",
    "ChainAdapterFactory",
    "build_payment_methods",
    "build_requirement",
    "resolve_method",
    "PaymentVerifier",
]
