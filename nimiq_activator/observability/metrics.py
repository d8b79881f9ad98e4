# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports validator lifecycle metrics in Prometheus format.

Metrics:
- Chain progress (epoch, block number)
- Account balance and total stake
- Validator record (balance, stakers, inactivity, retired, jailed)
- Lifecycle actions (activations, reactivations, faucet requests)
- Node RPC failures

The lifecycle loop is the only writer. The HTTP endpoint only reads.
"""

import logging
from typing import Optional

from prometheus_client import Counter, Gauge, CollectorRegistry, generate_latest

from ..protocol.types.common import LifecycleSituation
from ..protocol.types.validator import ValidatorRecord

logger = logging.getLogger(__name__)

# Dedicated registry, created once per process
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# CHAIN METRICS
# ═══════════════════════════════════════════════════════════════════

epoch_number = Gauge(
    'nimiq_epoch_number',
    'Current Nimiq epoch number.',
    registry=metrics_registry
)

block_number = Gauge(
    'nimiq_block_number',
    'Last observed Nimiq block number.',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ACCOUNT METRICS
# ═══════════════════════════════════════════════════════════════════

account_balance_luna = Gauge(
    'nimiq_validator_balance_luna',
    'Current balance of the validator account in Luna.',
    ['address'],
    registry=metrics_registry
)

total_stake_luna = Gauge(
    'nimiq_validator_stake_balance_luna',
    'Current stake balance of the validator in Luna.',
    ['address'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# VALIDATOR METRICS
# ═══════════════════════════════════════════════════════════════════

validator_balance = Gauge(
    'nimiq_validator_balance',
    'Balance of the validator in Luna.',
    ['address'],
    registry=metrics_registry
)

validator_num_stakers = Gauge(
    'nimiq_validator_num_stakers',
    'Number of stakers for the validator.',
    ['address'],
    registry=metrics_registry
)

validator_inactivity_flag = Gauge(
    'nimiq_validator_inactivity_flag',
    'Inactivity flag for the validator, 0 if active.',
    ['address'],
    registry=metrics_registry
)

validator_retired = Gauge(
    'nimiq_validator_retired',
    'Whether the validator is retired, 1 for yes, 0 for no.',
    ['address'],
    registry=metrics_registry
)

validator_jailed = Gauge(
    'nimiq_validator_jailed',
    'Whether the validator is inside its jail window, 1 for yes, 0 for no.',
    ['address'],
    registry=metrics_registry
)

validator_jailed_from = Gauge(
    'nimiq_validator_jailed_from',
    'Block number from which the validator is jailed, 0 if not jailed.',
    ['address'],
    registry=metrics_registry
)

validator_activated = Gauge(
    'nimiq_validator_activated',
    'Activation status of a Nimiq validator. 1 indicates activated.',
    ['address'],
    registry=metrics_registry
)

validator_situation = Gauge(
    'nimiq_validator_situation',
    'Lifecycle situation observed on the last tick, 1 for the current one.',
    ['address', 'situation'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ACTION METRICS
# ═══════════════════════════════════════════════════════════════════

validator_activations = Counter(
    'nimiq_validator_activated_counter',
    'Successful validator activation transactions.',
    ['address'],
    registry=metrics_registry
)

validator_reactivations = Counter(
    'nimiq_validator_reactivated_counter',
    'Successful validator reactivation transactions.',
    ['address'],
    registry=metrics_registry
)

faucet_requests = Counter(
    'nimiq_faucet_requests',
    'Faucet funding requests by result.',
    ['address', 'result'],
    registry=metrics_registry
)

rpc_errors = Counter(
    'nimiq_rpc_errors',
    'Failed node RPC calls by method and kind (transport or rpc).',
    ['method', 'kind'],
    registry=metrics_registry
)

_ADDRESS_GAUGES = (
    account_balance_luna,
    total_stake_luna,
    validator_balance,
    validator_num_stakers,
    validator_inactivity_flag,
    validator_retired,
    validator_jailed,
    validator_jailed_from,
    validator_activated,
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def init_validator_metrics(address: str):
    """
    Create every per-address series at 0 so they exist as soon as the
    validator address is known.
    """
    for gauge in _ADDRESS_GAUGES:
        gauge.labels(address=address).set(0)
    # Counters start at 0 on first access
    validator_activations.labels(address=address)
    validator_reactivations.labels(address=address)
    for situation in LifecycleSituation:
        validator_situation.labels(address=address, situation=situation.value).set(0)


def update_validator_metrics(address: str, record: ValidatorRecord):
    """
    Publish the fields of a registered validator record.

    Optional fields are converted to 0 here and nowhere else.
    """
    validator_balance.labels(address=address).set(record.balance)
    validator_num_stakers.labels(address=address).set(record.num_stakers)

    inactivity = record.inactivity_flag if record.inactivity_flag is not None else 0
    validator_inactivity_flag.labels(address=address).set(inactivity)

    validator_retired.labels(address=address).set(1 if record.retired else 0)

    # Validator is registered when we reach this point
    validator_activated.labels(address=address).set(1)


def update_jail_metrics(address: str, jailed: bool, jailed_from: Optional[int]):
    if jailed and jailed_from is not None:
        validator_jailed.labels(address=address).set(1)
        validator_jailed_from.labels(address=address).set(jailed_from)
    else:
        validator_jailed.labels(address=address).set(0)
        validator_jailed_from.labels(address=address).set(0)


def update_situation(address: str, current: LifecycleSituation):
    for situation in LifecycleSituation:
        value = 1 if situation == current else 0
        validator_situation.labels(address=address, situation=situation.value).set(value)


def set_activated(address: str, activated: bool):
    validator_activated.labels(address=address).set(1 if activated else 0)


def record_activation(address: str):
    validator_activated.labels(address=address).set(1)
    validator_activations.labels(address=address).inc()


def record_reactivation(address: str):
    validator_reactivations.labels(address=address).inc()


def record_faucet_request(address: str, success: bool):
    faucet_requests.labels(address=address, result="success" if success else "failure").inc()


def record_rpc_error(method: str, kind: str = "transport"):
    rpc_errors.labels(method=method, kind=kind).inc()


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(metrics_registry)
