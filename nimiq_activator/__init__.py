# MIT License
# Copyright (c) 2025 Hashborn

"""
Nimiq Validator Activator.

Brings a Nimiq PoS validator from unfunded to active and keeps exporting its
health as Prometheus metrics.
"""

__version__ = "1.0.0"
