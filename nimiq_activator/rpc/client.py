# MIT License
# Copyright (c) 2025 Hashborn

"""
JSON-RPC client for a Nimiq PoS node.

Every call posts a JSON-RPC 2.0 envelope and unwraps the node's
``{"data": ..., "metadata": ...}`` result payload.
"""

import itertools
import logging
from typing import Any, List, Optional

import requests
from pydantic import ValidationError

from ..observability import metrics
from ..protocol.config.params import DEFAULT_NODE_URL, DEFAULT_RPC_TIMEOUT_SEC
from ..protocol.types.common import NodeUnavailableError, RpcError
from ..protocol.types.validator import Account, Staker, ValidatorRecord

logger = logging.getLogger(__name__)


class NodeClient:
    """Stateless gateway to a single node endpoint."""

    def __init__(self,
                 node_url: str = DEFAULT_NODE_URL,
                 timeout: float = DEFAULT_RPC_TIMEOUT_SEC,
                 session: Optional[requests.Session] = None):
        self.node_url = node_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    def _query(self, method: str, *params: Any) -> Any:
        """
        Perform a single RPC call.

        Returns:
            The ``data`` field of the result payload (or the raw result if unwrapped)

        Raises:
            NodeUnavailableError: Transport failure or malformed response
            RpcError: The node returned an ``error`` payload
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": next(self._ids),
        }
        try:
            resp = self.session.post(self.node_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            metrics.record_rpc_error(method)
            raise NodeUnavailableError(method, e) from e

        if not isinstance(body, dict):
            metrics.record_rpc_error(method)
            raise NodeUnavailableError(method, ValueError(f"Unexpected response: {body!r}"))

        if body.get("error") is not None:
            metrics.record_rpc_error(method, "rpc")
            raise RpcError(method, body["error"])

        result = body.get("result")
        if isinstance(result, dict) and "data" in result:
            return result["data"]
        return result

    def _query_int(self, method: str, *params: Any) -> int:
        value = self._query(method, *params)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            metrics.record_rpc_error(method)
            raise NodeUnavailableError(method, e) from e

    def _empty_result(self, method: str, message: str) -> RpcError:
        metrics.record_rpc_error(method, "rpc")
        return RpcError(method, message)

    # --- Node state ---

    def is_consensus_established(self) -> bool:
        return bool(self._query("isConsensusEstablished"))

    def get_epoch_number(self) -> int:
        return self._query_int("getEpochNumber")

    def get_block_number(self) -> int:
        return self._query_int("getBlockNumber")

    def get_address(self) -> str:
        address = self._query("getAddress")
        if not address:
            metrics.record_rpc_error("getAddress")
            raise NodeUnavailableError("getAddress", ValueError("Node returned no address"))
        return address

    # --- Accounts & validators ---

    def get_account(self, address: str) -> Account:
        data = self._query("getAccountByAddress", address)
        try:
            return Account.model_validate(data or {})
        except ValidationError as e:
            metrics.record_rpc_error("getAccountByAddress")
            raise NodeUnavailableError("getAccountByAddress", e) from e

    def get_account_balance(self, address: str) -> int:
        """Account balance in luna."""
        return self.get_account(address).balance

    def get_validator_by_address(self, address: str) -> Optional[ValidatorRecord]:
        """
        Fetch the validator record for an address.

        Returns:
            The record, or None if the address is not a registered validator.
            The node reports unknown validators with an error payload, which
            is mapped to None here. Transport errors still propagate.
        """
        try:
            data = self._query("getValidatorByAddress", address)
        except RpcError as e:
            logger.debug(f"No validator record for {address}: {e.message}")
            return None

        if data is None:
            return None
        try:
            return ValidatorRecord.model_validate(data)
        except ValidationError as e:
            metrics.record_rpc_error("getValidatorByAddress")
            raise NodeUnavailableError("getValidatorByAddress", e) from e

    def get_stakers_by_validator_address(self, address: str) -> List[Staker]:
        data = self._query("getStakersByValidatorAddress", address) or []
        try:
            return [Staker.model_validate(item) for item in data]
        except (TypeError, ValidationError) as e:
            metrics.record_rpc_error("getStakersByValidatorAddress")
            raise NodeUnavailableError("getStakersByValidatorAddress", e) from e

    def get_total_stake(self, address: str) -> int:
        """Sum of all staker balances delegated to a validator, in luna."""
        return sum(s.balance for s in self.get_stakers_by_validator_address(address))

    # --- Wallet ---

    def import_raw_key(self, private_key: str, passphrase: str = "") -> str:
        imported = self._query("importRawKey", private_key, passphrase)
        if not imported:
            raise self._empty_result("importRawKey", "failed to import key, no address returned")
        return imported

    def unlock_account(self, address: str, passphrase: str = "", duration: int = 0) -> None:
        if not self._query("unlockAccount", address, passphrase, duration):
            raise self._empty_result("unlockAccount", "failed to unlock account")

    # --- Transactions ---

    def send_new_validator_transaction(self,
                                       sender_address: str,
                                       validator_address: str,
                                       signing_secret_key: str,
                                       voting_secret_key: str,
                                       reward_address: str,
                                       signal_data: str,
                                       fee: int,
                                       validity_start_height: str) -> str:
        """Returns the raw transaction produced by the node."""
        raw_tx = self._query(
            "sendNewValidatorTransaction",
            sender_address, validator_address, signing_secret_key, voting_secret_key,
            reward_address, signal_data, fee, validity_start_height,
        )
        if not raw_tx:
            raise self._empty_result("sendNewValidatorTransaction", "node returned no transaction")
        return raw_tx

    def send_reactivate_validator_transaction(self,
                                              sender_address: str,
                                              validator_address: str,
                                              signing_secret_key: str,
                                              fee: int,
                                              validity_start_height: str) -> str:
        """Returns the transaction hash."""
        tx_hash = self._query(
            "sendReactivateValidatorTransaction",
            sender_address, validator_address, signing_secret_key, fee, validity_start_height,
        )
        if not tx_hash:
            raise self._empty_result("sendReactivateValidatorTransaction", "node returned no transaction hash")
        return tx_hash

    def send_raw_transaction(self, raw_tx: str) -> str:
        """Returns the transaction hash."""
        tx_hash = self._query("sendRawTransaction", raw_tx)
        if not tx_hash:
            raise self._empty_result("sendRawTransaction", "node returned no transaction hash")
        return tx_hash
