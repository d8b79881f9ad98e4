# MIT License
# Copyright (c) 2025 Hashborn

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Account(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: Optional[str] = None
    balance: int = 0      # Luna


class Staker(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: Optional[str] = None
    balance: int = 0      # Luna


class ValidatorRecord(BaseModel):
    """Snapshot of an on-chain validator as returned by getValidatorByAddress."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: str
    balance: int = 0                                                    # Deposit in luna
    num_stakers: int = Field(default=0, alias="numStakers")
    inactivity_flag: Optional[int] = Field(default=None, alias="inactivityFlag")
    retired: bool = False
    jailed_from: Optional[int] = Field(default=None, alias="jailedFrom")  # Block height

    def is_jailed_at(self, current_block: int, jail_window: int) -> bool:
        """True while the jail window that started at jailed_from has not elapsed."""
        if self.jailed_from is None:
            return False
        return current_block - self.jailed_from < jail_window
