# MIT License
# Copyright (c) 2025 Hashborn

"""
Validator lifecycle controller.

Each tick re-reads the validator from the node, classifies it into a
LifecycleSituation, takes at most one corrective action and republishes the
derived metrics. Nothing about the previous tick is remembered, so a missed
tick or a restart needs no recovery.
"""

import logging
import threading
import time
from typing import Optional, Tuple

from ..observability import metrics
from ..protocol.config.params import (
    NetworkConfig,
    NETWORKS,
    VALIDITY_START_NOW,
    POLL_INTERVAL_SEC,
    FUNDING_POLL_INTERVAL_SEC,
    JAIL_WINDOW_BLOCKS,
    DENOM,
    luna_to_nim,
)
from ..protocol.types.common import ActivatorError, KeyFileError, LifecycleSituation
from ..protocol.types.validator import ValidatorRecord
from ..rpc.client import NodeClient
from ..rpc.faucet import FaucetClient
from .keystore import KeyStore

logger = logging.getLogger(__name__)

REGISTERED_SITUATIONS = (
    LifecycleSituation.ACTIVE,
    LifecycleSituation.RETIRED,
    LifecycleSituation.JAILED,
)


def is_effectively_jailed(record: ValidatorRecord,
                          current_block: Optional[int],
                          jail_window: int = JAIL_WINDOW_BLOCKS) -> bool:
    """
    A jail marker only counts while its window is open. Without a block
    number the window cannot be shown to have elapsed, so the marker counts.
    """
    if record.jailed_from is None:
        return False
    if current_block is None:
        return True
    return record.is_jailed_at(current_block, jail_window)


def classify_situation(record: Optional[ValidatorRecord],
                       balance_sufficient: bool,
                       current_block: Optional[int] = None,
                       jail_window: int = JAIL_WINDOW_BLOCKS) -> LifecycleSituation:
    """
    Derive the lifecycle situation from one observation of the node.

    Retirement takes precedence over jailing: a retired validator needs a
    reactivation transaction whatever its jail marker says, while an elapsed
    jail window clears on-chain by itself.
    """
    if record is None:
        if balance_sufficient:
            return LifecycleSituation.UNREGISTERED
        return LifecycleSituation.INSUFFICIENT_BALANCE
    if record.retired:
        return LifecycleSituation.RETIRED
    if is_effectively_jailed(record, current_block, jail_window):
        return LifecycleSituation.JAILED
    return LifecycleSituation.ACTIVE


class ValidatorController:
    def __init__(self,
                 client: NodeClient,
                 keystore: KeyStore,
                 network: NetworkConfig = NETWORKS["testnet"],
                 faucet: Optional[FaucetClient] = None,
                 address: Optional[str] = None,
                 poll_interval: float = POLL_INTERVAL_SEC,
                 funding_interval: float = FUNDING_POLL_INTERVAL_SEC):
        self.client = client
        self.keystore = keystore
        self.network = network
        self.faucet = faucet
        self.address = address
        self.poll_interval = poll_interval
        self.funding_interval = funding_interval
        self._stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    # --- Start-up ---

    def discover_address(self) -> str:
        """Ask the node which address it validates for. Errors propagate."""
        self.address = self.client.get_address()
        metrics.init_validator_metrics(self.address)
        logger.info(f"Validator address: {self.address}")
        return self.address

    # --- Thread lifecycle ---

    def start(self):
        if not self.address:
            raise RuntimeError("Validator address unknown; call discover_address() first")
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._run_loop, name="validator-lifecycle", daemon=True)
        self.thread.start()
        logger.info(f"Lifecycle loop started (interval: {self.poll_interval}s). Address: {self.address}")

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout)
            self.thread = None
        logger.info("Lifecycle loop stopped.")

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self._stop_event.is_set()

    def _run_loop(self):
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                situation = self.tick()
                if situation == LifecycleSituation.INSUFFICIENT_BALANCE and self.await_funding():
                    # Funded or registered externally: evaluate again right away
                    continue
            except ActivatorError as e:
                logger.error(f"Lifecycle tick aborted: {e}")
            except Exception as e:
                logger.error(f"Error in lifecycle loop: {e}")

            if self._stop_event.wait(self.seconds_until_next_tick(started)):
                break

    def seconds_until_next_tick(self, started: float) -> float:
        """Ticks run at a fixed rate; a tick that overruns the interval is followed immediately."""
        return max(0.0, self.poll_interval - (time.monotonic() - started))

    # --- One tick ---

    def tick(self) -> LifecycleSituation:
        """
        Full evaluation: epoch, lifecycle situation (and its action), stake.

        Raises:
            ActivatorError: If the node could not be queried
        """
        self.update_epoch()
        situation = self.evaluate()
        if situation in REGISTERED_SITUATIONS:
            self.update_stake()
        return situation

    def update_epoch(self) -> Optional[int]:
        try:
            epoch = self.client.get_epoch_number()
        except ActivatorError as e:
            logger.error(f"Error fetching epoch number: {e}")
            return None
        metrics.epoch_number.set(epoch)
        return epoch

    def update_stake(self) -> Optional[int]:
        try:
            total_stake = self.client.get_total_stake(self.address)
        except ActivatorError as e:
            logger.error(f"Error fetching total stake: {e}")
            return None
        metrics.total_stake_luna.labels(address=self.address).set(total_stake)
        return total_stake

    def check_sufficient_balance(self) -> Tuple[bool, int]:
        """
        Fetch the account balance and publish it.

        Returns:
            (balance >= activation threshold, balance in luna)
        """
        balance = self.client.get_account_balance(self.address)
        metrics.account_balance_luna.labels(address=self.address).set(balance)
        return balance >= self.network.min_validator_stake, balance

    def evaluate(self) -> LifecycleSituation:
        """
        Classify the validator and perform the matching action, if any.

        Raises:
            ActivatorError: If a query needed for classification failed.
                Action failures are logged and do not raise.
        """
        address = self.address
        sufficient, balance = self.check_sufficient_balance()
        record = self.client.get_validator_by_address(address)

        current_block = None
        if record is not None and record.jailed_from is not None:
            current_block = self.client.get_block_number()
            metrics.block_number.set(current_block)

        situation = classify_situation(record, sufficient, current_block, self.network.jail_window_blocks)
        metrics.update_situation(address, situation)

        if record is None:
            metrics.set_activated(address, False)
            if situation == LifecycleSituation.UNREGISTERED:
                logger.info(f"Validator not registered. Balance {luna_to_nim(balance):.2f} {DENOM} is sufficient. Activating...")
                self.activate()
            else:
                self._log_missing_balance(balance)
            return situation

        metrics.update_validator_metrics(address, record)
        jailed = is_effectively_jailed(record, current_block, self.network.jail_window_blocks)
        metrics.update_jail_metrics(address, jailed, record.jailed_from)

        if situation == LifecycleSituation.RETIRED:
            logger.warning("Validator is retired. Needs reactivation.")
            self.reactivate()
        elif situation == LifecycleSituation.JAILED:
            if current_block is not None:
                remaining = self.network.jail_window_blocks - (current_block - record.jailed_from)
                logger.warning(f"Validator is jailed since block {record.jailed_from}. {remaining} blocks until the jail window ends.")
            else:
                logger.warning(f"Validator is jailed since block {record.jailed_from}.")
        else:
            if record.jailed_from is not None:
                logger.info(f"Jail window since block {record.jailed_from} has elapsed.")
            logger.info("Validator is active and in good standing.")

        return situation

    def _log_missing_balance(self, balance: int):
        required = luna_to_nim(self.network.min_validator_stake)
        current = luna_to_nim(balance)
        logger.info(f"Insufficient balance. {current:.0f}/{required:.0f} {DENOM}, missing {required - current:.0f} {DENOM}.")

    # --- Funding sub-loop ---

    def await_funding(self) -> bool:
        """
        Block until the account holds the activation stake or the address
        gets registered some other way. On non-production networks one
        faucet request is issued per unsuccessful check.

        Returns:
            True once funded/registered, False if the controller was stopped
        """
        logger.info(f"Waiting for funding (check interval: {self.funding_interval}s)")
        while not self._stop_event.is_set():
            try:
                sufficient, balance = self.check_sufficient_balance()
                registered = self.client.get_validator_by_address(self.address) is not None
            except ActivatorError as e:
                logger.error(f"Error checking funding status: {e}")
            else:
                if registered:
                    logger.info("Validator registered externally. Leaving funding loop.")
                    return True
                if sufficient:
                    logger.info(f"Sufficient balance detected: {luna_to_nim(balance):.0f} {DENOM}. Checking validator status...")
                    return True
                self._log_missing_balance(balance)
                if self.network.funding_enabled and self.faucet is not None:
                    self.faucet.request_funds(self.address)

            if self._stop_event.wait(self.funding_interval):
                break
        return False

    # --- Actions ---

    def activate(self) -> bool:
        """
        Register the address as a new validator.

        Any failing step aborts the whole action; the next tick starts over.
        """
        address = self.address
        try:
            keys = self.keystore.load_bundle()
        except KeyFileError as e:
            logger.error(f"Error loading validator keys: {e}")
            return False

        try:
            logger.info("Importing raw key.")
            self.client.import_raw_key(keys.address_key, "")

            logger.info("Unlocking account.")
            self.client.unlock_account(address, "", 0)

            logger.info("Creating new validator transaction.")
            raw_tx = self.client.send_new_validator_transaction(
                address, address, keys.signing_key, keys.vote_key, address, "",
                self.network.tx_fee, VALIDITY_START_NOW,
            )

            logger.info("Sending transaction.")
            tx_hash = self.client.send_raw_transaction(raw_tx)
        except ActivatorError as e:
            logger.error(f"Validator activation failed: {e}")
            return False

        logger.info(f"✅ Activation transaction sent. Hash: {tx_hash}")
        metrics.record_activation(address)
        return True

    def reactivate(self) -> bool:
        """Lift the retired status of a registered validator. Same failure rules as activate()."""
        address = self.address
        try:
            signing_key = self.keystore.signing_key()
            address_key = self.keystore.address_key()
        except KeyFileError as e:
            logger.error(f"Error loading validator keys: {e}")
            return False

        try:
            logger.info("Importing raw key.")
            self.client.import_raw_key(address_key, "")

            logger.info("Unlocking account.")
            self.client.unlock_account(address, "", 0)

            logger.info("Sending reactivate validator transaction.")
            tx_hash = self.client.send_reactivate_validator_transaction(
                address, address, signing_key, self.network.tx_fee, VALIDITY_START_NOW,
            )
        except ActivatorError as e:
            logger.error(f"Validator reactivation failed: {e}")
            return False

        logger.info(f"✅ Reactivation transaction sent. Hash: {tx_hash}")
        metrics.record_reactivation(address)
        return True
