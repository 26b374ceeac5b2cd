"""
Closed set of payment methods and the chain adapters they need.
Adding a chain means adding a variant here, not branching on strings in the verifier.
"""
import logging
from typing import Any

from paygate.core.errors import ValidationError
from paygate.services.circuit_breaker import get_circuit_breaker
from paygate.services.payments.amounts import format_minor_units, to_minor_units
from paygate.services.payments.base import (
    ChainAdapter,
    ChainKind,
    PaymentMethod,
    PaymentRequirement,
    Strategy,
)
from paygate.services.payments.chains.evm import EvmChainAdapter
from paygate.services.payments.chains.solana import SolanaChainAdapter
from paygate.services.payments.rpc import JsonRpcClient

logger = logging.getLogger(__name__)

USDC_BASE = "usdc-base"
USDC_BASE_BALANCE = "usdc-base-balance"
TSE_SOLANA = "tse-solana"
TSE_SOLANA_BALANCE = "tse-solana-balance"
TESTING = "testing"

DEFAULT_METHOD = USDC_BASE


def build_payment_methods(settings: Any) -> dict[str, PaymentMethod]:
    """Build the enabled payment methods from application settings."""
    methods: dict[str, PaymentMethod] = {}

    usdc = dict(
        chain="base",
        chain_kind=ChainKind.EVM,
        token="USDC",
        token_address=settings.base_usdc_contract.lower(),
        decimals=settings.base_usdc_decimals,
        receiver=settings.base_usdc_receiver.lower(),
    )
    methods[USDC_BASE] = PaymentMethod(tag=USDC_BASE, strategy=Strategy.TRANSACTION, **usdc)
    if settings.balance_check_enabled:
        methods[USDC_BASE_BALANCE] = PaymentMethod(tag=USDC_BASE_BALANCE, strategy=Strategy.BALANCE, **usdc)

    if settings.solana_enabled:
        tse = dict(
            chain="solana",
            chain_kind=ChainKind.SOLANA,
            token="TSE",
            token_address=settings.tse_mint,
            decimals=settings.tse_decimals,
            receiver=settings.tse_receiver,
        )
        methods[TSE_SOLANA] = PaymentMethod(tag=TSE_SOLANA, strategy=Strategy.TRANSACTION, **tse)
        if settings.balance_check_enabled:
            methods[TSE_SOLANA_BALANCE] = PaymentMethod(
                tag=TSE_SOLANA_BALANCE, strategy=Strategy.BALANCE, **tse
            )

    if settings.testing_mode_enabled:
        logger.warning("testing_payment_method_enabled", extra={"payment_method": TESTING})
        methods[TESTING] = PaymentMethod(tag=TESTING, strategy=Strategy.TESTING, **usdc)

    for method in methods.values():
        if method.strategy == Strategy.BALANCE:
            # Balance checks prove the wallet can pay, not that it paid the receiver
            logger.warning(
                "balance_check_method_enabled",
                extra={"payment_method": method.tag, "reason": "proves_solvency_only"},
            )
    return methods


def resolve_method(methods: dict[str, PaymentMethod], tag: str | None) -> PaymentMethod:
    method = methods.get((tag or DEFAULT_METHOD).strip().lower())
    if method is None:
        available = ", ".join(sorted(methods))
        raise ValidationError(f"Unknown payment method: {tag}. Available: {available}")
    return method


def build_requirement(method: PaymentMethod, amount_human: str) -> PaymentRequirement:
    """Price in minor units, with the human amount rendered back from them."""
    amount_required = to_minor_units(amount_human, method.decimals)
    return PaymentRequirement(
        chain=method.chain,
        token=method.token,
        token_address=method.token_address,
        receiver=method.receiver,
        amount_required=amount_required,
        decimals=method.decimals,
        amount_human=format_minor_units(amount_required, method.decimals),
    )


class ChainAdapterFactory:
    """Factory for chain adapters, one per chain name."""

    ADAPTERS = {
        ChainKind.EVM: EvmChainAdapter,
        ChainKind.SOLANA: SolanaChainAdapter,
    }

    @classmethod
    def create(cls, kind: ChainKind, name: str, rpc: JsonRpcClient, **options: Any) -> ChainAdapter:
        adapter_class = cls.ADAPTERS.get(kind)
        if adapter_class is None:
            raise ValueError(f"Unknown chain kind: {kind}")
        logger.info(f"Creating chain adapter: {name} ({kind.value})")
        return adapter_class(rpc, name=name, **options)

    @classmethod
    def create_from_settings(cls, settings: Any, methods: dict[str, PaymentMethod]) -> dict[str, ChainAdapter]:
        """One adapter per chain referenced by the enabled methods."""
        adapters: dict[str, ChainAdapter] = {}
        for method in methods.values():
            if method.chain in adapters:
                continue
            if method.chain_kind == ChainKind.EVM:
                url, options = settings.base_rpc_url, {}
            else:
                url, options = settings.solana_rpc_url, {"commitment": settings.solana_commitment}
            rpc = JsonRpcClient(
                chain=method.chain,
                url=url,
                timeout=settings.rpc_timeout_seconds,
                max_attempts=settings.rpc_max_attempts,
                backoff_seconds=settings.rpc_backoff_seconds,
                breaker=get_circuit_breaker(f"rpc:{method.chain}"),
            )
            adapters[method.chain] = cls.create(method.chain_kind, method.chain, rpc, **options)
        return adapters
