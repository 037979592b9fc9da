"""
Agent capabilities that workflow steps dispatch into.
"""

from .registry import CapabilityHandler, CapabilityRegistry

__all__ = [
    "CapabilityHandler",
    "CapabilityRegistry",
]
