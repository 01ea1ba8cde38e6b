"""Node-backed protocol using web3.py.

Sends real transactions from the controller account. atomic() relies on the
evm_snapshot / evm_revert RPC methods, so batches are only all-or-nothing on
nodes that support them (anvil, hardhat, ganache forks).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from web3 import Web3
from web3.exceptions import Web3Exception

from controller.errors import ExternalCallFailed
from controller.models.types import normalize_address, to_identity

from .encoding import FACTORY_ABI, POOL_ABI, unpack_fee_protocol

logger = structlog.get_logger()


class RpcFactory:
    """UniswapV3Factory contract reached over RPC."""

    def __init__(self, protocol: RpcProtocol, address: str) -> None:
        self._protocol = protocol
        self._address = normalize_address(address)
        self._contract = protocol.w3.eth.contract(
            address=Web3.to_checksum_address(self._address), abi=FACTORY_ABI
        )

    @property
    def address(self) -> str:
        return self._address

    def owner(self) -> str:
        return normalize_address(self._protocol.read(self._contract.functions.owner()))

    def fee_amount_tick_spacing(self, fee: int) -> int:
        return int(self._protocol.read(self._contract.functions.feeAmountTickSpacing(fee)))

    def enable_fee_amount(self, fee: int, tick_spacing: int) -> None:
        self._protocol.transact(self._contract.functions.enableFeeAmount(fee, tick_spacing))

    def set_owner(self, new_owner: str) -> None:
        self._protocol.transact(
            self._contract.functions.setOwner(Web3.to_checksum_address(new_owner))
        )


class RpcPool:
    """UniswapV3Pool contract reached over RPC."""

    def __init__(self, protocol: RpcProtocol, address: str) -> None:
        self._protocol = protocol
        self._address = normalize_address(address)
        self._contract = protocol.w3.eth.contract(
            address=Web3.to_checksum_address(self._address), abi=POOL_ABI
        )

    @property
    def address(self) -> str:
        return self._address

    def fee_protocol(self) -> tuple[int, int]:
        # slot0 = (sqrtPriceX96, tick, observationIndex, observationCardinality,
        #          observationCardinalityNext, feeProtocol, unlocked)
        slot0 = self._protocol.read(self._contract.functions.slot0())
        return unpack_fee_protocol(int(slot0[5]))

    def set_fee_protocol(self, fee_protocol0: int, fee_protocol1: int) -> None:
        self._protocol.transact(
            self._contract.functions.setFeeProtocol(fee_protocol0, fee_protocol1)
        )

    def protocol_fees(self) -> tuple[int, int]:
        amount0, amount1 = self._protocol.read(self._contract.functions.protocolFees())
        return int(amount0), int(amount1)

    def collect_protocol(self, recipient: str, amount0: int, amount1: int) -> tuple[int, int]:
        function = self._contract.functions.collectProtocol(
            Web3.to_checksum_address(recipient), amount0, amount1
        )
        # The return value is only observable by simulating before sending
        sent0, sent1 = self._protocol.read(function)
        self._protocol.transact(function)
        return int(sent0), int(sent1)


class RpcProtocol:
    """Protocol backend talking to a node over HTTP.

    Args:
        rpc_url: HTTP RPC URL of the node
        account: Address transactions are sent from. The node must be able to
            sign for it (unlocked or impersonated account).
        w3: Pre-built Web3 instance (overrides rpc_url)
    """

    def __init__(
        self, rpc_url: str | None = None, account: str = "", w3: Web3 | None = None
    ) -> None:
        if w3 is None:
            if not rpc_url:
                raise ValueError("RpcProtocol needs rpc_url or w3")
            w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.w3 = w3
        self._account = to_identity(account, "account")

    @property
    def account(self) -> str:
        return self._account

    def factory(self, address: str) -> RpcFactory:
        return RpcFactory(self, address)

    def pool(self, address: str) -> RpcPool:
        return RpcPool(self, address)

    def call(self, target: str, value: int, data: bytes) -> bytes:
        """Raw transaction to target; returns the data of a simulated eth_call."""
        tx = {
            "from": Web3.to_checksum_address(self._account),
            "to": Web3.to_checksum_address(target),
            "value": value,
            "data": bytes(data),
        }
        result = self._guard("eth_call", lambda: bytes(self.w3.eth.call(tx)))
        self._send(lambda: self.w3.eth.send_transaction(tx), "raw_call")
        return result

    def read(self, function: Any) -> Any:
        """eth_call a bound contract function from the account."""
        return self._guard(
            function.fn_name,
            lambda: function.call({"from": Web3.to_checksum_address(self._account)}),
        )

    def transact(self, function: Any) -> None:
        """Send a bound contract function as a transaction and wait for success."""
        self._send(
            lambda: function.transact({"from": Web3.to_checksum_address(self._account)}),
            function.fn_name,
        )

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Revert the node to a snapshot if the block raises.

        On success the snapshot is left on the node: there is no RPC to
        release one. Reverting to any snapshot drops it and every later one,
        so leftovers from nested or committed blocks are discarded by the
        next outer revert. A long-running process against a node that never
        reverts accumulates them until the node restarts.
        """
        snapshot_id = self._rpc("evm_snapshot", [])
        try:
            yield
        except BaseException:
            self._rpc("evm_revert", [snapshot_id])
            logger.info("rpc_snapshot_reverted", snapshot_id=snapshot_id)
            raise

    def _send(self, send: Callable[[], Any], method: str) -> None:
        tx_hash = self._guard(method, send)
        receipt = self._guard(method, lambda: self.w3.eth.wait_for_transaction_receipt(tx_hash))
        if receipt["status"] != 1:
            raise ExternalCallFailed(f"{method} reverted in tx {Web3.to_hex(tx_hash)}")

    def _rpc(self, method: str, params: list[Any]) -> Any:
        response = self._guard(method, lambda: self.w3.provider.make_request(method, params))
        if "error" in response:
            raise ExternalCallFailed(f"{method} failed: {response['error']}")
        return response["result"]

    @staticmethod
    def _guard(method: str, request: Callable[[], Any]) -> Any:
        try:
            return request()
        except (Web3Exception, ValueError, OSError) as e:
            logger.warning("rpc_call_failed", method=method, error=str(e))
            raise ExternalCallFailed(f"{method} failed: {e}") from e


__all__ = ["RpcFactory", "RpcPool", "RpcProtocol"]
