from .client import NodeClient
from .faucet import FaucetClient

__all__ = ['NodeClient', 'FaucetClient']
