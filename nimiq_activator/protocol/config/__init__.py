from .params import ActivatorConfig, NetworkConfig, NETWORKS, get_network

__all__ = ['ActivatorConfig', 'NetworkConfig', 'NETWORKS', 'get_network']
