"""
Base classes and types for payment verification.
Used by methods, strategies, the verifier and both chain adapters (evm, solana).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ChainKind(str, Enum):
    EVM = "evm"
    SOLANA = "solana"


class Strategy(str, Enum):
    """How a payment proof is checked."""

    BALANCE = "balance"  # wallet holds >= amount right now (solvency, not payment)
    TRANSACTION = "transaction"  # a specific transaction paid the receiver
    TESTING = "testing"  # always verified; only registered when testing mode is on


class ProofKind(str, Enum):
    WALLET = "wallet"
    TRANSACTION = "transaction"


class VerificationReason(str, Enum):
    VERIFIED = "verified"
    INSUFFICIENT_AMOUNT = "insufficient_amount"  # not (yet) paid enough
    NOT_FOUND = "not_found"  # transaction unknown to the chain (maybe not mined yet)
    ONCHAIN_FAILURE = "onchain_failure"  # transaction reverted / failed
    PROOF_REUSED = "proof_reused"
    MALFORMED_PROOF = "malformed_proof"
    MALFORMED_RESPONSE = "malformed_response"
    CHAIN_UNREACHABLE = "chain_unreachable"
    TESTING_MODE = "testing_mode"


@dataclass(frozen=True)
class PaymentMethod:
    """One closed variant: chain + token + decimals + receiver + strategy."""

    tag: str
    chain: str  # adapter name, e.g. "base", "solana"
    chain_kind: ChainKind
    token: str  # symbol
    token_address: str  # ERC-20 contract or SPL mint
    decimals: int
    receiver: str
    strategy: Strategy

    @property
    def proof_kind(self) -> ProofKind:
        if self.strategy == Strategy.TRANSACTION:
            return ProofKind.TRANSACTION
        return ProofKind.WALLET


@dataclass(frozen=True)
class PaymentRequirement:
    chain: str
    token: str
    token_address: str
    receiver: str
    amount_required: int  # minor units
    decimals: int
    amount_human: str

    def descriptor(self, method_tag: str) -> dict[str, Any]:
        """Wire payment descriptor (402 body / unlock-request)."""
        return {
            "paymentMethod": method_tag,
            "chain": self.chain,
            "currency": self.token,
            "tokenAddress": self.token_address,
            "receiver": self.receiver,
            "requiredAmount": self.amount_human,
            "requiredAmountMinor": str(self.amount_required),
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class PaymentProof:
    kind: ProofKind
    value: str


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    reason: VerificationReason
    message: str = ""
    observed_amount: int | None = None

    @classmethod
    def ok(cls, reason: VerificationReason = VerificationReason.VERIFIED, observed: int | None = None,
           message: str = "") -> "VerificationResult":
        return cls(verified=True, reason=reason, message=message, observed_amount=observed)

    @classmethod
    def fail(cls, reason: VerificationReason, message: str, observed: int | None = None) -> "VerificationResult":
        return cls(verified=False, reason=reason, message=message, observed_amount=observed)


# ----- Chain errors (adapters raise, strategies turn them into failed results) -----


class ChainError(Exception):
    """Base for chain lookups that cannot produce a decision."""

    reason = VerificationReason.CHAIN_UNREACHABLE


class ChainUnavailable(ChainError):
    """RPC unreachable, timed out, rate limited or circuit open."""

    reason = VerificationReason.CHAIN_UNREACHABLE


class MalformedRpcResponse(ChainError):
    reason = VerificationReason.MALFORMED_RESPONSE


class TransactionNotFound(ChainError):
    reason = VerificationReason.NOT_FOUND


class OnChainFailure(ChainError):
    reason = VerificationReason.ONCHAIN_FAILURE


class MalformedProof(ChainError):
    reason = VerificationReason.MALFORMED_PROOF


@dataclass(frozen=True)
class TransferSummary:
    """Total paid to the receiver in one transaction, in minor units."""

    tx_id: str
    amount: int
    matched_transfers: int


class ChainAdapter(ABC):
    """Base class for chain adapters."""

    name: str = ""
    kind: ChainKind

    @abstractmethod
    def normalize_tx_id(self, tx_id: str) -> str:
        """Canonical form of a transaction id. Raises MalformedProof."""
        pass

    @abstractmethod
    def get_token_balance(self, wallet_address: str, token_address: str) -> int:
        """Current token balance in minor units. Raises ChainError."""
        pass

    @abstractmethod
    def get_transfer_total(self, tx_id: str, token_address: str, receiver: str) -> TransferSummary:
        """
        Sum of token transfers to receiver inside one successful transaction.
        Raises TransactionNotFound, OnChainFailure, MalformedRpcResponse or ChainUnavailable.
        """
        pass
