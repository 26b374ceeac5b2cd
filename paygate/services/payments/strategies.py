"""
Verification strategies: BalanceCheck, TransactionCheck, TestingMode.

Strategies never raise for chain problems: ChainError subclasses become failed
VerificationResults with a reason the client can act on.
"""
import logging
from abc import ABC, abstractmethod

from paygate.services.payments.base import (
    ChainAdapter,
    ChainError,
    PaymentProof,
    PaymentRequirement,
    ProofKind,
    Strategy,
    VerificationReason,
    VerificationResult,
)

logger = logging.getLogger(__name__)


class VerificationStrategy(ABC):
    @abstractmethod
    def check(
        self, adapter: ChainAdapter, proof: PaymentProof, requirement: PaymentRequirement
    ) -> VerificationResult:
        pass


def _compare(observed: int, requirement: PaymentRequirement) -> VerificationResult:
    if observed >= requirement.amount_required:
        return VerificationResult.ok(observed=observed)
    return VerificationResult.fail(
        VerificationReason.INSUFFICIENT_AMOUNT,
        f"Observed {observed} of {requirement.amount_required} required minor units",
        observed=observed,
    )


class BalanceCheck(VerificationStrategy):
    """
    Wallet's current token balance >= amount required.

    Proves present solvency only: a wallet passes without ever paying the receiver.
    Registered only when balance_check_enabled is set.
    """

    def check(
        self, adapter: ChainAdapter, proof: PaymentProof, requirement: PaymentRequirement
    ) -> VerificationResult:
        if proof.kind != ProofKind.WALLET or not proof.value:
            return VerificationResult.fail(VerificationReason.MALFORMED_PROOF, "Balance check needs a wallet address")
        logger.warning(
            "balance_check_used",
            extra={"chain": adapter.name, "wallet": proof.value, "reason": "proves_solvency_only"},
        )
        try:
            balance = adapter.get_token_balance(proof.value, requirement.token_address)
        except ChainError as e:
            return VerificationResult.fail(e.reason, str(e))
        return _compare(balance, requirement)


class TransactionCheck(VerificationStrategy):
    """Sum of transfers to the receiver inside one successful transaction >= amount required."""

    def check(
        self, adapter: ChainAdapter, proof: PaymentProof, requirement: PaymentRequirement
    ) -> VerificationResult:
        if proof.kind != ProofKind.TRANSACTION or not proof.value:
            return VerificationResult.fail(VerificationReason.MALFORMED_PROOF, "Transaction check needs a transaction id")
        try:
            summary = adapter.get_transfer_total(proof.value, requirement.token_address, requirement.receiver)
        except ChainError as e:
            return VerificationResult.fail(e.reason, str(e))
        if summary.matched_transfers == 0:
            return VerificationResult.fail(
                VerificationReason.INSUFFICIENT_AMOUNT,
                "Transaction contains no transfer of the token to the receiver",
                observed=0,
            )
        return _compare(summary.amount, requirement)


class TestingMode(VerificationStrategy):
    """Always verified. Registered only when testing mode is explicitly enabled."""

    __test__ = False  # not a pytest test class

    def check(
        self, adapter: ChainAdapter, proof: PaymentProof, requirement: PaymentRequirement
    ) -> VerificationResult:
        logger.warning("testing_mode_verification", extra={"chain": requirement.chain, "reason": "testing_mode"})
        return VerificationResult.ok(VerificationReason.TESTING_MODE, message="Testing mode: payment not checked")


STRATEGIES: dict[Strategy, VerificationStrategy] = {
    Strategy.BALANCE: BalanceCheck(),
    Strategy.TRANSACTION: TransactionCheck(),
    Strategy.TESTING: TestingMode(),
}
