"""JSON-RPC client for pearl-deployments library."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .exceptions import ConfirmationTimeoutError, RpcError

logger = logging.getLogger(__name__)


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


class JsonRpcClient:
    """Minimal Ethereum JSON-RPC client over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._request_id = 0

    def call(self, method: str, params: List[Any]) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_chainId")
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            RpcError: On network errors, non-200 responses or RPC error objects
        """
        self._request_id += 1
        try:
            response = self._session.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": params,
                    "id": self._request_id,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RpcError(f"Network error during RPC call {method}: {e}") from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise RpcError(f"RPC request {method} failed with status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise RpcError(f"RPC response to {method} is not JSON") from e

        # Check for RPC errors
        if "error" in result:
            error = result["error"]
            if isinstance(error, dict):
                raise RpcError(
                    f"RPC error in {method}: {error.get('message', error)}",
                    code=error.get("code"),
                )
            raise RpcError(f"RPC error in {method}: {error}")

        return result.get("result")

    def chain_id(self) -> int:
        return _to_int(self.call("eth_chainId", []))

    def get_transaction_count(self, address: str, block: str = "latest") -> int:
        """Transaction count (next nonce) of an account at "latest" or "pending"."""
        return _to_int(self.call("eth_getTransactionCount", [address, block]))

    def get_balance(self, address: str) -> int:
        return _to_int(self.call("eth_getBalance", [address, "latest"]))

    def gas_price(self) -> int:
        return _to_int(self.call("eth_gasPrice", []))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        params = {key: hex(value) if isinstance(value, int) else value for key, value in tx.items()}
        return _to_int(self.call("eth_estimateGas", [params]))

    def get_code(self, address: str) -> str:
        return self.call("eth_getCode", [address, "latest"]) or "0x"

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """Broadcast a signed transaction and return its hash."""
        return self.call("eth_sendRawTransaction", ["0x" + bytes(raw_transaction).hex()])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Get a transaction receipt.

        Returns:
            None while the transaction is pending, else a dict with
            "status" and "blockNumber" as ints, "contractAddress" and
            "transactionHash" as returned by the node
        """
        receipt = self.call("eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            return None
        return {
            "transactionHash": receipt.get("transactionHash", tx_hash),
            "status": _to_int(receipt.get("status")),
            "blockNumber": _to_int(receipt.get("blockNumber")),
            "contractAddress": receipt.get("contractAddress"),
        }


def wait_for_receipt(
    rpc,
    tx_hash: str,
    timeout: float,
    poll_interval: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Poll for a transaction receipt until it appears or the timeout expires.

    Args:
        rpc: Client exposing get_transaction_receipt()
        tx_hash: Hash of the broadcast transaction
        timeout: Seconds to wait
        poll_interval: Seconds between polls

    Returns:
        The receipt

    Raises:
        ConfirmationTimeoutError: If no receipt was seen within timeout
    """
    deadline = clock() + timeout
    while True:
        receipt = rpc.get_transaction_receipt(tx_hash)
        if receipt is not None:
            return receipt
        if clock() >= deadline:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} not confirmed within {timeout:g}s"
            )
        logger.debug("Waiting for %s", tx_hash)
        sleep(poll_interval)
