"""
Solana chain adapter. SPL token balances via getTokenAccountsByOwner; payments via
pre/post token balances of a confirmed transaction, correlated by (accountIndex, mint).
"""
import logging
from typing import Any

from paygate.services.payments.base import (
    ChainAdapter,
    ChainKind,
    MalformedProof,
    MalformedRpcResponse,
    OnChainFailure,
    TransactionNotFound,
    TransferSummary,
)
from paygate.services.payments.rpc import JsonRpcClient
from paygate.utils.addresses import SOLANA_SIGNATURE_RE

logger = logging.getLogger(__name__)


def _raw_amount(entry: dict[str, Any]) -> int:
    """uiTokenAmount.amount is the exact minor-unit string; uiAmount is a float and never used."""
    try:
        return int(entry["uiTokenAmount"]["amount"])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedRpcResponse("Token balance entry without integer amount") from e


def _index_balances(entries: Any, mint: str) -> dict[int, dict[str, Any]]:
    if entries is None:
        return {}
    if not isinstance(entries, list):
        raise MalformedRpcResponse("Token balances is not a list")
    indexed = {}
    for entry in entries:
        if not isinstance(entry, dict) or "accountIndex" not in entry:
            raise MalformedRpcResponse("Token balance entry without accountIndex")
        if entry.get("mint") != mint:
            continue
        indexed[int(entry["accountIndex"])] = entry
    return indexed


class SolanaChainAdapter(ChainAdapter):
    kind = ChainKind.SOLANA

    def __init__(self, rpc: JsonRpcClient, name: str = "solana", commitment: str = "confirmed") -> None:
        self.rpc = rpc
        self.name = name
        self.commitment = commitment

    def normalize_tx_id(self, tx_id: str) -> str:
        tx_id = (tx_id or "").strip()
        if not SOLANA_SIGNATURE_RE.match(tx_id):
            raise MalformedProof("Transaction signature must be base58, 64-88 characters")
        return tx_id

    def get_token_balance(self, wallet_address: str, token_address: str) -> int:
        result = self.rpc.call(
            "getTokenAccountsByOwner",
            [
                wallet_address.strip(),
                {"mint": token_address},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        if not isinstance(result, dict) or not isinstance(result.get("value"), list):
            raise MalformedRpcResponse("getTokenAccountsByOwner returned unexpected shape")
        total = 0
        for account in result["value"]:
            try:
                info = account["account"]["data"]["parsed"]["info"]
                total += int(info["tokenAmount"]["amount"])
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedRpcResponse("Token account without parsed amount") from e
        return total

    def get_transfer_total(self, tx_id: str, token_address: str, receiver: str) -> TransferSummary:
        signature = self.normalize_tx_id(tx_id)
        tx = self.rpc.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if tx is None:
            raise TransactionNotFound("Transaction not found (not confirmed yet?)")
        if not isinstance(tx, dict) or not isinstance(tx.get("meta"), dict):
            raise MalformedRpcResponse("Transaction has no meta")

        meta = tx["meta"]
        if meta.get("err") is not None:
            raise OnChainFailure("Transaction failed on-chain")

        pre = _index_balances(meta.get("preTokenBalances"), token_address)
        post = _index_balances(meta.get("postTokenBalances"), token_address)

        total = 0
        matched = 0
        for account_index, post_entry in post.items():
            owner = post_entry.get("owner")
            if owner is not None and owner != receiver:
                continue
            pre_entry = pre.get(account_index)
            # Token account created inside this transaction has no pre entry
            before = _raw_amount(pre_entry) if pre_entry is not None else 0
            delta = _raw_amount(post_entry) - before
            if delta > 0:
                total += delta
                matched += 1

        logger.info(
            "solana_transfers_summed",
            extra={"chain": self.name, "tx_id": signature, "reason": f"matched={matched}"},
        )
        return TransferSummary(tx_id=signature, amount=total, matched_transfers=matched)
