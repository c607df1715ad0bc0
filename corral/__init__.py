"""
Corral - supervision of worker processes and threads.

Starts a pool of workers, keeps them alive, enforces startup and health
check timeouts, reloads keyed workers and shuts the pool down through an
interrupt then kill escalation.
"""

__version__ = "0.1.0"

from .best import best_container_class, fork_supported, new_container
from .channel import Channel
from .controller import Controller
from .error import Error, Interrupt, Kill, Reload, Restart, SetupError, Terminate
from .forked import Forked
from .generic import Generic, processor_count
from .group import Group, Token
from .hybrid import Hybrid
from .keyed import Keyed
from .policy import DEFAULT_POLICY, Policy
from .statistics import Rate, Statistics
from .status import Status
from .threaded import Threaded

__all__ = [
    "Channel",
    "Controller",
    "DEFAULT_POLICY",
    "Error",
    "Forked",
    "Generic",
    "Group",
    "Hybrid",
    "Interrupt",
    "Keyed",
    "Kill",
    "Policy",
    "Rate",
    "Reload",
    "Restart",
    "SetupError",
    "Statistics",
    "Status",
    "Terminate",
    "Threaded",
    "Token",
    "best_container_class",
    "fork_supported",
    "new_container",
    "processor_count",
]
