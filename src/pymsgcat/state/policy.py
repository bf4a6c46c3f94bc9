"""Provider refresh policy.

Pure functions only; callers supply the current time.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class RefreshSchedule(Protocol):
    @property
    def last_updated(self) -> int | None: ...

    @property
    def update_cycle_in_ms(self) -> int | None: ...


def should_update(
    *,
    last_updated: int | None,
    update_cycle_ms: int | None,
    now_ms: int,
) -> bool:
    """Decide whether a provider is due for a refresh.

    Policy:
    - Never loaded: always due.
    - Loaded but no update cycle: never due again.
    - Otherwise due once strictly more than one cycle has elapsed.
    """
    if last_updated is None:
        return True
    if update_cycle_ms is None:
        return False
    return now_ms - last_updated > update_cycle_ms


def should_provider_update(provider: RefreshSchedule, *, clock: Callable[[], int] = now_ms) -> bool:
    """:func:`should_update` for a provider's own bookkeeping fields."""
    return should_update(
        last_updated=provider.last_updated,
        update_cycle_ms=provider.update_cycle_in_ms,
        now_ms=clock(),
    )
