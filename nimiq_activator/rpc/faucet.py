# MIT License
# Copyright (c) 2025 Hashborn

import logging
from typing import Optional

import requests

from ..observability import metrics
from ..protocol.config.params import DEFAULT_FAUCET_URL, DEFAULT_RPC_TIMEOUT_SEC

logger = logging.getLogger(__name__)


class FaucetClient:
    """Testnet faucet. Only used on non-production networks."""

    def __init__(self,
                 faucet_url: str = DEFAULT_FAUCET_URL,
                 timeout: float = DEFAULT_RPC_TIMEOUT_SEC,
                 session: Optional[requests.Session] = None):
        self.faucet_url = faucet_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def request_funds(self, address: str) -> bool:
        """
        Ask the faucet to fund an address.

        Returns:
            True if the faucet answered 200
        """
        try:
            resp = self.session.post(self.faucet_url, data={"address": address}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Faucet request failed: {e}")
            metrics.record_faucet_request(address, False)
            return False

        success = resp.status_code == 200
        if success:
            logger.info(f"Faucet accepted funding request for {address}")
        else:
            logger.warning(f"Faucet rejected funding request ({resp.status_code}): {resp.text[:200]}")
        metrics.record_faucet_request(address, success)
        return success
