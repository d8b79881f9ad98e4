# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides the Prometheus registry and the HTTP endpoint that exposes it.
"""

from .metrics import metrics_registry, generate_metrics, init_validator_metrics

__all__ = ['metrics_registry', 'generate_metrics', 'init_validator_metrics']
