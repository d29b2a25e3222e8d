"""Capability ports consumed by the pruning pipeline."""

from selfprune.domain.ports.storage_port import KeyValueStoragePort
from selfprune.domain.ports.token_counter_port import TokenCounterPort

__all__ = ["KeyValueStoragePort", "TokenCounterPort"]
