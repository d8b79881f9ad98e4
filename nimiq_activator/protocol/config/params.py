# MIT License
# Copyright (c) 2025 Hashborn

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

# Global Constants
DENOM = "NIM"
DECIMALS = 5                              # 1 NIM = 100_000 luna
LUNA_PER_NIM = 10**DECIMALS

# Validator economics (all amounts in luna)
MIN_VALIDATOR_STAKE = 100_000 * LUNA_PER_NIM
TX_FEE_LUNA = 500
VALIDITY_START_NOW = "+0"                 # Relative validity start: current block
JAIL_WINDOW_BLOCKS = 8000

# Loop timing (seconds)
CONSENSUS_CHECK_ATTEMPTS = 3
CONSENSUS_CHECK_SPACING_SEC = 5.0
FUNDING_POLL_INTERVAL_SEC = 10.0
POLL_INTERVAL_SEC = 15.0

# Defaults for environment-driven settings
DEFAULT_NODE_URL = "http://node:8648"
DEFAULT_METRICS_PORT = 8000
DEFAULT_FAUCET_URL = "https://faucet.pos.nimiq-testnet.com/tapit"
DEFAULT_NETWORK = "testnet"
DEFAULT_KEYS_DIR = "/keys"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_RPC_TIMEOUT_SEC = 10.0


def luna_to_nim(luna: int) -> float:
    return luna / LUNA_PER_NIM


class NetworkConfig:
    def __init__(self,
                 network_id: str,
                 production: bool,
                 min_validator_stake: int = MIN_VALIDATOR_STAKE,
                 jail_window_blocks: int = JAIL_WINDOW_BLOCKS,
                 tx_fee: int = TX_FEE_LUNA):
        self.network_id = network_id
        # Production networks never hit a faucet
        self.production = production
        self.min_validator_stake = min_validator_stake
        self.jail_window_blocks = jail_window_blocks
        self.tx_fee = tx_fee

    @property
    def funding_enabled(self) -> bool:
        return not self.production

    def __repr__(self):
        return f"NetworkConfig(network_id={self.network_id!r}, production={self.production})"


NETWORKS: Dict[str, NetworkConfig] = {
    "devnet": NetworkConfig(network_id="devnet", production=False),
    "testnet": NetworkConfig(network_id="testnet", production=False),
    "mainnet": NetworkConfig(network_id="mainnet", production=True),
}


def get_network(name: str) -> NetworkConfig:
    key = (name or "").strip().lower()
    if key not in NETWORKS:
        raise ValueError(f"Unknown network '{name}'. Expected one of: {', '.join(sorted(NETWORKS))}")
    return NETWORKS[key]


# Level names understood by both stdlib logging and uvicorn
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


def normalize_log_level(name: str) -> str:
    level = (name or "").strip().lower()
    if level == "warn":
        level = "warning"
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{name}'. Expected one of: {', '.join(LOG_LEVELS)}")
    return level


@dataclass(frozen=True)
class ActivatorConfig:
    node_url: str = DEFAULT_NODE_URL
    metrics_port: int = DEFAULT_METRICS_PORT
    faucet_url: str = DEFAULT_FAUCET_URL
    network: str = DEFAULT_NETWORK
    keys_dir: str = DEFAULT_KEYS_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT_SEC

    @property
    def network_config(self) -> NetworkConfig:
        return get_network(self.network)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "ActivatorConfig":
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)
            **overrides: Explicit values (e.g. from CLI flags); None means "not given"

        Raises:
            ValueError: On non-numeric port/timeout, unknown network or log level
        """
        env = os.environ if env is None else env

        values = {
            "node_url": env.get("NIMIQ_NODE_URL") or DEFAULT_NODE_URL,
            "metrics_port": env.get("PROMETHEUS_PORT") or DEFAULT_METRICS_PORT,
            "faucet_url": env.get("FAUCET_URL") or DEFAULT_FAUCET_URL,
            "network": env.get("NIMIQ_NETWORK") or DEFAULT_NETWORK,
            "keys_dir": env.get("KEYS_DIR") or DEFAULT_KEYS_DIR,
            "log_level": env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL,
            "rpc_timeout": env.get("RPC_TIMEOUT") or DEFAULT_RPC_TIMEOUT_SEC,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            values["metrics_port"] = int(values["metrics_port"])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid metrics port: {values['metrics_port']!r}")
        try:
            values["rpc_timeout"] = float(values["rpc_timeout"])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid RPC timeout: {values['rpc_timeout']!r}")
        values["log_level"] = normalize_log_level(values["log_level"])

        # Fail early on unknown network names
        get_network(values["network"])
        return cls(**values)
