import uuid
from typing import Optional
from unittest.mock import Mock

import pytest

from nimiq_activator.core.controller import ValidatorController
from nimiq_activator.core.keystore import KeyStore
from nimiq_activator.observability import metrics
from nimiq_activator.protocol.config.params import NETWORKS, LUNA_PER_NIM
from nimiq_activator.protocol.types.validator import ValidatorRecord
from nimiq_activator.rpc.client import NodeClient
from nimiq_activator.rpc.faucet import FaucetClient

SIGNING_KEY = "a" * 64
VOTE_KEY = "b" * 64
ADDRESS_KEY = "c" * 64


def nim(amount: int) -> int:
    """Whole NIM to luna."""
    return amount * LUNA_PER_NIM


def sample(name: str, address: Optional[str] = None, **labels) -> Optional[float]:
    """Read a value back from the process-wide registry."""
    if address is not None:
        labels["address"] = address
    return metrics.metrics_registry.get_sample_value(name, labels)


def write_key_files(root, signing=SIGNING_KEY, vote=VOTE_KEY, address=ADDRESS_KEY):
    (root / "signing_key.txt").write_text(
        f"Address:\nNQ00 SIGN\n\nPublic Key:\n{'1' * 64}\nPrivate Key: {signing}\n"
    )
    (root / "vote_key.txt").write_text(
        f"Public Key:\n\n{'2' * 64}\nSecret Key:\n\n{vote}\n\nProof of Knowledge:\n\n{'3' * 64}\n"
    )
    (root / "address.txt").write_text(
        f"Address:       NQ00 ADDR\nPublic Key:    {'4' * 64}\nPrivate Key: {address}\n"
    )


@pytest.fixture
def address():
    """Unique validator address so registry series never collide between tests."""
    return f"NQ{uuid.uuid4().hex[:30].upper()}"


@pytest.fixture
def keys_dir(tmp_path):
    write_key_files(tmp_path)
    return tmp_path


@pytest.fixture
def node(address):
    """NodeClient double with a registered, healthy validator as the default state."""
    client = Mock(spec=NodeClient)
    client.get_address.return_value = address
    client.get_epoch_number.return_value = 42
    client.get_block_number.return_value = 10_000
    client.get_account_balance.return_value = nim(150_000)
    client.get_validator_by_address.return_value = ValidatorRecord(
        address=address, balance=nim(100_000), num_stakers=3
    )
    client.get_total_stake.return_value = nim(25_000)
    client.import_raw_key.return_value = address
    client.unlock_account.return_value = None
    client.send_new_validator_transaction.return_value = "raw-tx-hex"
    client.send_raw_transaction.return_value = "tx-hash-new"
    client.send_reactivate_validator_transaction.return_value = "tx-hash-reactivate"
    return client


@pytest.fixture
def faucet():
    client = Mock(spec=FaucetClient)
    client.request_funds.return_value = True
    return client


@pytest.fixture
def make_controller(node, faucet, keys_dir, address):
    def _make(network="testnet", **kwargs):
        controller = ValidatorController(
            client=node,
            keystore=KeyStore(str(keys_dir)),
            network=NETWORKS[network],
            faucet=faucet,
            address=address,
            poll_interval=0.01,
            funding_interval=0.01,
            **kwargs
        )
        metrics.init_validator_metrics(address)
        return controller
    return _make
