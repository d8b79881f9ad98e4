# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import asyncio
import logging
import sys

from .. import __version__
from ..core.consensus import wait_for_consensus
from ..core.controller import ValidatorController
from ..core.keystore import KeyStore
from ..observability.api import create_metrics_server
from ..protocol.config.params import ActivatorConfig
from ..protocol.types.common import ActivatorError
from ..rpc.client import NodeClient
from ..rpc.faucet import FaucetClient

logger = logging.getLogger(__name__)


def build_controller(config: ActivatorConfig) -> ValidatorController:
    network = config.network_config
    client = NodeClient(config.node_url, timeout=config.rpc_timeout)
    faucet = FaucetClient(config.faucet_url, timeout=config.rpc_timeout) if network.funding_enabled else None
    return ValidatorController(
        client=client,
        keystore=KeyStore(config.keys_dir),
        network=network,
        faucet=faucet,
    )


async def run_activator_async(config: ActivatorConfig) -> int:
    logger.info(f"Starting Nimiq Validator Activator v{__version__} on port {config.metrics_port}")
    logger.info(f"Node: {config.node_url} | Network: {config.network} | Keys: {config.keys_dir}")

    controller = build_controller(config)

    # Metrics endpoint comes up first so start-up progress is observable
    server = create_metrics_server(port=config.metrics_port, log_level=config.log_level)
    server_task = asyncio.create_task(server.serve())

    async def shutdown_server():
        server.should_exit = True
        await server_task

    if not await asyncio.to_thread(wait_for_consensus, controller.client):
        logger.error("Failed to establish consensus. Exiting...")
        await shutdown_server()
        return 1

    try:
        await asyncio.to_thread(controller.discover_address)
    except ActivatorError as e:
        logger.error(f"Error fetching validator address: {e}")
        await shutdown_server()
        return 1

    await asyncio.to_thread(controller.update_epoch)
    controller.start()

    # uvicorn handles SIGINT/SIGTERM and returns from serve()
    try:
        await server_task
    except asyncio.CancelledError:
        pass
    finally:
        await asyncio.to_thread(controller.stop, controller.poll_interval)

    return 0


def cmd_run(config: ActivatorConfig) -> int:
    """Wrapper to run async main."""
    try:
        return asyncio.run(run_activator_async(config))
    except KeyboardInterrupt:
        return 0


def main(argv=None):
    parser = argparse.ArgumentParser(prog="nimiq-activator", description="Nimiq Validator Activator")
    parser.add_argument("--node", dest="node_url", help="Node JSON-RPC URL (env: NIMIQ_NODE_URL)")
    parser.add_argument("--port", dest="metrics_port", type=int, help="Prometheus metrics port (env: PROMETHEUS_PORT)")
    parser.add_argument("--faucet-url", help="Faucet URL for non-production networks (env: FAUCET_URL)")
    parser.add_argument("--network", help="devnet, testnet or mainnet (env: NIMIQ_NETWORK)")
    parser.add_argument("--keys-dir", help="Directory with validator key files (env: KEYS_DIR)")
    parser.add_argument("--log-level", help="Logging level (env: LOG_LEVEL)")
    parser.add_argument("--rpc-timeout", type=float, help="Timeout for node and faucet calls in seconds (env: RPC_TIMEOUT)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    try:
        config = ActivatorConfig.from_env(**vars(args))
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.DEBUG),
        format='%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    sys.exit(cmd_run(config))


if __name__ == "__main__":
    main()
