"""Selects the most capable container class for this platform."""

import os

from .forked import Forked
from .threaded import Threaded


def fork_supported() -> bool:
    return hasattr(os, "fork") and hasattr(os, "setsid")


def best_container_class():
    if fork_supported():
        return Forked
    return Threaded


def new_container(**options):
    return best_container_class()(**options)
