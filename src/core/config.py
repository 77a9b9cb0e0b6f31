"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SyncConfig:
    """Synchronization settings for one room session."""

    reconnect_delay: float = 5.0
    provisional_prefix: str = "temp_"
