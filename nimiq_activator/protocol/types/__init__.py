from .common import (
    LifecycleSituation,
    ActivatorError,
    NodeUnavailableError,
    RpcError,
    KeyFileError,
)
from .validator import Account, Staker, ValidatorRecord

__all__ = [
    'LifecycleSituation',
    'ActivatorError',
    'NodeUnavailableError',
    'RpcError',
    'KeyFileError',
    'Account',
    'Staker',
    'ValidatorRecord',
]
