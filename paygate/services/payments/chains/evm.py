"""
EVM chain adapter (Base). Reads ERC-20 balances via eth_call and payments via
transaction receipts: Transfer logs of the token contract to the receiver.
"""
import logging

from paygate.services.payments.amounts import parse_hex_quantity
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
from paygate.utils.addresses import EVM_ADDRESS_RE, EVM_TX_HASH_RE, normalize_address

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
# balanceOf(address)
BALANCE_OF_SELECTOR = "0x70a08231"
RECEIPT_STATUS_SUCCESS = 1


def topic_to_address(topic: str) -> str:
    """Indexed address topics are 32 bytes, the address is the right-aligned 20."""
    if not isinstance(topic, str) or len(topic) != 66 or not topic.lower().startswith("0x"):
        raise MalformedRpcResponse("Malformed address topic in log")
    return "0x" + topic[-40:].lower()


class EvmChainAdapter(ChainAdapter):
    kind = ChainKind.EVM

    def __init__(self, rpc: JsonRpcClient, name: str = "base") -> None:
        self.rpc = rpc
        self.name = name

    def normalize_tx_id(self, tx_id: str) -> str:
        tx_id = (tx_id or "").strip()
        if not EVM_TX_HASH_RE.match(tx_id):
            raise MalformedProof("Transaction hash must be 0x followed by 64 hex characters")
        return tx_id.lower()

    def get_token_balance(self, wallet_address: str, token_address: str) -> int:
        wallet = normalize_address(wallet_address)
        if not EVM_ADDRESS_RE.match(wallet):
            raise MalformedProof("Wallet address must be a 0x-prefixed 20-byte address")
        data = BALANCE_OF_SELECTOR + wallet[2:].rjust(64, "0")
        result = self.rpc.call("eth_call", [{"to": normalize_address(token_address), "data": data}, "latest"])
        try:
            return parse_hex_quantity(result)
        except ValueError as e:
            raise MalformedRpcResponse("balanceOf returned a non-hex value") from e

    def get_transfer_total(self, tx_id: str, token_address: str, receiver: str) -> TransferSummary:
        tx_hash = self.normalize_tx_id(tx_id)
        receipt = self.rpc.call("eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            raise TransactionNotFound("Transaction receipt not found (not mined yet?)")
        if not isinstance(receipt, dict):
            raise MalformedRpcResponse("Receipt is not an object")

        try:
            status = parse_hex_quantity(receipt.get("status"))
        except ValueError as e:
            raise MalformedRpcResponse("Receipt has no status") from e
        if status != RECEIPT_STATUS_SUCCESS:
            raise OnChainFailure("Transaction failed on-chain")

        logs = receipt.get("logs")
        if not isinstance(logs, list):
            raise MalformedRpcResponse("Receipt has no logs array")

        token = normalize_address(token_address)
        expected_receiver = normalize_address(receiver)
        total = 0
        matched = 0
        for entry in logs:
            if not isinstance(entry, dict):
                raise MalformedRpcResponse("Log entry is not an object")
            if normalize_address(entry.get("address") or "") != token:
                continue
            topics = entry.get("topics") or []
            if len(topics) < 3 or str(topics[0]).lower() != TRANSFER_TOPIC:
                continue
            if topic_to_address(topics[2]) != expected_receiver:
                continue
            try:
                amount = parse_hex_quantity(entry.get("data"))
            except ValueError as e:
                raise MalformedRpcResponse("Transfer log data is not a hex amount") from e
            total += amount
            matched += 1

        logger.info(
            "evm_transfers_summed",
            extra={"chain": self.name, "tx_id": tx_hash, "reason": f"matched={matched}"},
        )
        return TransferSummary(tx_id=tx_hash, amount=total, matched_transfers=matched)
