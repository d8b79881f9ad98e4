# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum
from typing import Any, Optional


class LifecycleSituation(str, Enum):
    UNREGISTERED = "UNREGISTERED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    ACTIVE = "ACTIVE"
    RETIRED = "RETIRED"
    JAILED = "JAILED"


class ActivatorError(Exception):
    pass


class NodeUnavailableError(ActivatorError):
    """Transport-level failure talking to the node (connection, timeout, bad payload)."""

    def __init__(self, method: str, cause: Exception):
        super().__init__(f"{method}: {cause}")
        self.method = method
        self.cause = cause


class RpcError(ActivatorError):
    """The node answered with a JSON-RPC error payload."""

    def __init__(self, method: str, error: Any):
        self.method = method
        self.code: Optional[int] = None
        self.message = str(error)
        if isinstance(error, dict):
            self.code = error.get("code")
            self.message = error.get("message", str(error))
        super().__init__(f"RPC error in {method}: {self.message}")


class KeyFileError(ActivatorError):
    pass
