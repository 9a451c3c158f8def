# src/stfarm/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from .identity import IdentityRegistry
from .sockets import Socket
from .statistic import Statistic


@dataclass
class FarmState:
    """
    Process-wide collaborators, built once by cli.bootstrap and passed by reference
    into the Farm and into every Task.
    """

    settings: Settings
    statistic: Statistic
    identity: IdentityRegistry

    def new_socket(self) -> Socket:
        return Socket(self.statistic, self.identity, io_timeout=self.settings.io_timeout_seconds)
