"""Ports layer - Interfaces for external collaborators."""

from .clock import ClockPort
from .kv_store import SCAN_START, TTL_MISSING, TTL_PERSISTENT, KVStorePort
from .logger import LoggerPort
from .registry import DiscoveryPort, RegistrarPort, WatcherPort

__all__ = [
    "SCAN_START",
    "TTL_MISSING",
    "TTL_PERSISTENT",
    "ClockPort",
    "DiscoveryPort",
    "KVStorePort",
    "LoggerPort",
    "RegistrarPort",
    "WatcherPort",
]
