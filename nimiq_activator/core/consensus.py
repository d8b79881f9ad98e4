# MIT License
# Copyright (c) 2025 Hashborn

import logging
import time

from ..protocol.config.params import CONSENSUS_CHECK_ATTEMPTS, CONSENSUS_CHECK_SPACING_SEC
from ..protocol.types.common import ActivatorError
from ..rpc.client import NodeClient

logger = logging.getLogger(__name__)


def wait_for_consensus(client: NodeClient,
                       attempts: int = CONSENSUS_CHECK_ATTEMPTS,
                       spacing: float = CONSENSUS_CHECK_SPACING_SEC) -> bool:
    """
    Start-up gate: the node must report consensus on every one of
    ``attempts`` checks spaced ``spacing`` seconds apart.

    Fails fast: the first error or negative answer returns False without
    running the remaining checks.
    """
    for attempt in range(1, attempts + 1):
        try:
            established = client.is_consensus_established()
        except ActivatorError as e:
            logger.error(f"Attempt {attempt}: Error checking consensus: {e}")
            return False

        if not established:
            logger.warning(f"Attempt {attempt}: Consensus not established.")
            return False

        if attempt == 1:
            logger.info("Consensus established. Verifying stability...")

        if attempt < attempts:
            time.sleep(spacing)

    logger.info("Consensus stability verified. Proceeding...")
    return True
