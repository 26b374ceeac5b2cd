"""
Tests for SolanaChainAdapter: pre/post token balance deltas.
"""
from unittest.mock import MagicMock

import pytest

from paygate.services.payments.base import (
    MalformedProof,
    MalformedRpcResponse,
    OnChainFailure,
    TransactionNotFound,
)
from paygate.services.payments.chains.solana import SolanaChainAdapter

MINT = "TSEmint1111111111111111111111111111111111111"
RECEIVER = "Receiver111111111111111111111111111111111111"
PAYER = "Payer11111111111111111111111111111111111111"
SIGNATURE = "5" * 88


def balance(index: int, amount: int, owner: str = RECEIVER, mint: str = MINT) -> dict:
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {"amount": str(amount), "decimals": 9, "uiAmount": amount / 1e9},
    }


def tx(pre, post, err=None) -> dict:
    return {"meta": {"err": err, "preTokenBalances": pre, "postTokenBalances": post}}


def adapter_returning(result):
    rpc = MagicMock()
    rpc.call.return_value = result
    return SolanaChainAdapter(rpc, commitment="finalized"), rpc


def test_receiver_delta_is_the_payment():
    adapter, rpc = adapter_returning(
        tx(
            pre=[balance(1, 1_000_000_000, owner=PAYER), balance(2, 250_000_000)],
            post=[balance(1, 500_000_000, owner=PAYER), balance(2, 750_000_000)],
        )
    )
    summary = adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)
    assert summary.amount == 500_000_000
    assert summary.matched_transfers == 1

    method, params = rpc.call.call_args.args
    assert method == "getTransaction"
    assert params[0] == SIGNATURE
    assert params[1]["commitment"] == "finalized"
    assert params[1]["maxSupportedTransactionVersion"] == 0


def test_account_created_in_transaction_counts_from_zero():
    adapter, _ = adapter_returning(tx(pre=[], post=[balance(3, 100_000_000)]))
    assert adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER).amount == 100_000_000


def test_other_mint_is_ignored():
    adapter, _ = adapter_returning(
        tx(pre=[balance(2, 0, mint="OtherMint")], post=[balance(2, 900, mint="OtherMint")])
    )
    summary = adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)
    assert summary.amount == 0
    assert summary.matched_transfers == 0


def test_failed_transaction():
    adapter, _ = adapter_returning(tx(pre=[], post=[balance(2, 1)], err={"InstructionError": [0, "Custom"]}))
    with pytest.raises(OnChainFailure):
        adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)


def test_unknown_transaction():
    adapter, _ = adapter_returning(None)
    with pytest.raises(TransactionNotFound):
        adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)


def test_missing_meta_is_malformed():
    adapter, _ = adapter_returning({"slot": 1})
    with pytest.raises(MalformedRpcResponse):
        adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)


@pytest.mark.parametrize("signature", ["", "0" * 88, "5" * 10, "l" * 88])
def test_malformed_signature(signature):
    adapter, rpc = adapter_returning(None)
    with pytest.raises(MalformedProof):
        adapter.get_transfer_total(signature, MINT, RECEIVER)
    rpc.call.assert_not_called()


def test_token_balance_sums_accounts():
    account = lambda amount: {"account": {"data": {"parsed": {"info": {"tokenAmount": {"amount": str(amount)}}}}}}  # noqa: E731
    adapter, rpc = adapter_returning({"value": [account(3), account(4)]})
    assert adapter.get_token_balance(PAYER, MINT) == 7
    method, params = rpc.call.call_args.args
    assert method == "getTokenAccountsByOwner"
    assert params[1] == {"mint": MINT}


def test_entry_without_owner_counts_for_the_mint():
    # Older RPC nodes omit owner; the mint filter alone then decides
    entry = balance(4, 200_000_000)
    del entry["owner"]
    adapter, _ = adapter_returning(tx(pre=[], post=[entry]))
    summary = adapter.get_transfer_total(SIGNATURE, MINT, RECEIVER)
    assert summary.amount == 200_000_000
    assert summary.matched_transfers == 1
