"""
PaymentVerifier: one contract over every (strategy, chain) combination.

Replay guard for transaction proofs:
- before any RPC, a (chain, txId) already in UsedProofs fails with proof_reused
- after a positive decision, set-if-absent records it; losing that race also fails
Both steps are single store calls; nothing is held across the RPC.
"""
import json
import logging
import time

from paygate.core.config import settings
from paygate.services.payments.base import (
    ChainAdapter,
    ChainError,
    PaymentMethod,
    PaymentProof,
    PaymentRequirement,
    ProofKind,
    VerificationReason,
    VerificationResult,
)
from paygate.services.payments.strategies import STRATEGIES, VerificationStrategy
from paygate.services.store import KeyValueStore
from paygate.utils.metrics import payment_verifications_total

logger = logging.getLogger(__name__)


class PaymentVerifier:
    def __init__(
        self,
        adapters: dict[str, ChainAdapter],
        store: KeyValueStore,
        strategies: dict | None = None,
        used_proof_ttl_seconds: int | None = None,
    ) -> None:
        self.adapters = adapters
        self.store = store
        self.strategies = strategies or STRATEGIES
        self.used_proof_ttl_seconds = (
            used_proof_ttl_seconds if used_proof_ttl_seconds is not None else settings.used_proof_ttl_seconds
        )

    def _used_key(self, chain: str, tx_id: str) -> str:
        return f"used-proof:{chain}:{tx_id}"

    def verify(
        self,
        method: PaymentMethod,
        proof: PaymentProof,
        requirement: PaymentRequirement,
        context: dict | None = None,
    ) -> VerificationResult:
        """Never raises for chain or proof problems: failures come back as verified=False."""
        try:
            result = self._verify(method, proof, requirement, context or {})
        except Exception as e:
            logger.exception(
                "payment_verification_error",
                extra={"payment_method": method.tag, "error": type(e).__name__},
            )
            result = VerificationResult.fail(VerificationReason.MALFORMED_RESPONSE, "Verification could not complete")

        payment_verifications_total.labels(payment_method=method.tag, reason=result.reason.value).inc()
        log = logger.info if result.verified else logger.warning
        log(
            "payment_verified" if result.verified else "payment_not_verified",
            extra={
                "payment_method": method.tag,
                "chain": method.chain,
                "tx_id": proof.value if proof.kind == ProofKind.TRANSACTION else None,
                "reason": result.reason.value,
            },
        )
        return result

    def _verify(
        self,
        method: PaymentMethod,
        proof: PaymentProof,
        requirement: PaymentRequirement,
        context: dict,
    ) -> VerificationResult:
        strategy: VerificationStrategy = self.strategies[method.strategy]
        adapter = self.adapters.get(method.chain)
        if adapter is None:
            return VerificationResult.fail(VerificationReason.CHAIN_UNREACHABLE, f"No adapter for chain {method.chain}")

        if proof.kind != ProofKind.TRANSACTION:
            return strategy.check(adapter, proof, requirement)

        try:
            tx_id = adapter.normalize_tx_id(proof.value)
        except ChainError as e:
            return VerificationResult.fail(e.reason, str(e))

        used_key = self._used_key(method.chain, tx_id)
        if self.store.get(used_key) is not None:
            return VerificationResult.fail(VerificationReason.PROOF_REUSED, "Transaction already used for access")

        result = strategy.check(adapter, PaymentProof(kind=proof.kind, value=tx_id), requirement)
        if not result.verified:
            return result

        record = json.dumps({"usedAt": int(time.time()), "paymentMethod": method.tag, **context})
        if not self.store.set_if_absent(used_key, record, ttl_seconds=self.used_proof_ttl_seconds):
            return VerificationResult.fail(VerificationReason.PROOF_REUSED, "Transaction already used for access")
        return result
