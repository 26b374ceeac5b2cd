"""Payment method registry and adapter factory."""
from types import SimpleNamespace

import pytest

from paygate.core.errors import ValidationError
from paygate.services.payments import (
    ChainAdapterFactory,
    ChainKind,
    Strategy,
    build_payment_methods,
    build_requirement,
    resolve_method,
)
from paygate.services.payments.chains.evm import EvmChainAdapter
from paygate.services.payments.chains.solana import SolanaChainAdapter


def make_settings(**overrides):
    values = dict(
        base_usdc_contract="0xD9aAEc86B65D86f6A7b5b1b0c42fff0905A1aA77",
        base_usdc_receiver="0x8469a3A136AE586356bAA89C61191D8E2d84B92f",
        base_usdc_decimals=6,
        balance_check_enabled=False,
        solana_enabled=False,
        tse_mint="",
        tse_receiver="",
        tse_decimals=9,
        testing_mode_enabled=False,
        base_rpc_url="https://base.test",
        solana_rpc_url="https://solana.test",
        solana_commitment="confirmed",
        rpc_timeout_seconds=1.0,
        rpc_max_attempts=1,
        rpc_backoff_seconds=0.0,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_default_registry_is_usdc_transaction_only():
    methods = build_payment_methods(make_settings())
    assert list(methods) == ["usdc-base"]
    usdc = methods["usdc-base"]
    assert usdc.strategy == Strategy.TRANSACTION
    assert usdc.token_address == "0xd9aaec86b65d86f6a7b5b1b0c42fff0905a1aa77"
    assert usdc.receiver == "0x8469a3a136ae586356baa89c61191d8e2d84b92f"


def test_optional_methods():
    methods = build_payment_methods(
        make_settings(
            balance_check_enabled=True,
            solana_enabled=True,
            tse_mint="TSEmint1111111111111111111111111111111111111",
            tse_receiver="Receiver111111111111111111111111111111111111",
            testing_mode_enabled=True,
        )
    )
    assert set(methods) == {"usdc-base", "usdc-base-balance", "tse-solana", "tse-solana-balance", "testing"}
    assert methods["tse-solana"].chain_kind == ChainKind.SOLANA
    assert methods["tse-solana"].decimals == 9
    assert methods["testing"].strategy == Strategy.TESTING


def test_resolve_method():
    methods = build_payment_methods(make_settings())
    assert resolve_method(methods, None).tag == "usdc-base"
    assert resolve_method(methods, " USDC-Base ").tag == "usdc-base"
    with pytest.raises(ValidationError):
        resolve_method(methods, "testing")


def test_build_requirement_uses_method_decimals():
    methods = build_payment_methods(
        make_settings(solana_enabled=True, tse_mint="Mint", tse_receiver="Recv")
    )
    usdc = build_requirement(methods["usdc-base"], "0.10")
    tse = build_requirement(methods["tse-solana"], "0.10")
    assert usdc.amount_required == 100_000
    assert tse.amount_required == 100_000_000
    assert usdc.descriptor("usdc-base")["requiredAmountMinor"] == "100000"


def test_factory_creates_one_adapter_per_chain():
    settings = make_settings(
        balance_check_enabled=True, solana_enabled=True, tse_mint="Mint", tse_receiver="Recv"
    )
    adapters = ChainAdapterFactory.create_from_settings(settings, build_payment_methods(settings))
    assert set(adapters) == {"base", "solana"}
    assert isinstance(adapters["base"], EvmChainAdapter)
    assert isinstance(adapters["solana"], SolanaChainAdapter)
    assert adapters["base"].rpc.url == "https://base.test"
    assert adapters["solana"].commitment == "confirmed"


def test_required_amount_is_rendered_from_minor_units():
    usdc = build_payment_methods(make_settings())["usdc-base"]
    assert build_requirement(usdc, "0.1").amount_human == "0.10"
    # digits beyond the token's decimals are not charged and not shown
    assert build_requirement(usdc, "1.0000009").amount_human == "1.00"
    assert build_requirement(usdc, "1.0000009").descriptor("usdc-base")["requiredAmount"] == "1.00"
