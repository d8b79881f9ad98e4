from .consensus import wait_for_consensus
from .controller import ValidatorController, classify_situation, is_effectively_jailed
from .keystore import KeyStore, KeyBundle

__all__ = [
    'wait_for_consensus',
    'ValidatorController',
    'classify_situation',
    'is_effectively_jailed',
    'KeyStore',
    'KeyBundle',
]
