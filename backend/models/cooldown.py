"""
Cooldown Tracker - per (rule, campaign) fire times.

try_acquire() is the single check-and-mark step: under the pair's lock it
checks the window and records the fire time before any action runs, so two
evaluations of the same pair in one process cannot both fire.

A process crash between an action completing and the rule store persisting
the fire time can still re-fire the pair on the next pass (at-least-once).
"""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from schemas.triggers import TriggerRule

PairKey = Tuple[str, str]


def cooldown_ends(anchor: Optional[datetime], cooldown_hours: Optional[float]) -> Optional[datetime]:
    """End of the cooldown window, or None when no window applies."""
    if anchor is None or not cooldown_hours or cooldown_hours <= 0:
        return None
    return anchor + timedelta(hours=cooldown_hours)


class CooldownTracker:
    """In-process cooldown state layered over the rule's persisted fire times."""

    def __init__(self):
        self._fired: Dict[PairKey, datetime] = {}
        self._locks: Dict[PairKey, asyncio.Lock] = {}

    def _lock(self, key: PairKey) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def last_fired(self, rule: TriggerRule, campaign_id: str) -> Optional[datetime]:
        """Latest known fire time for the pair from either the tracker or the rule."""
        candidates = [
            t for t in (self._fired.get((rule.id, campaign_id)), rule.cooldown_anchor(campaign_id))
            if t is not None
        ]
        return max(candidates) if candidates else None

    def is_cooling_down(self, rule: TriggerRule, campaign_id: str, now: datetime) -> bool:
        ends = cooldown_ends(self.last_fired(rule, campaign_id), rule.cooldown_period)
        return ends is not None and now < ends

    def mark(self, rule: TriggerRule, campaign_id: str, fired_at: datetime) -> None:
        key = (rule.id, campaign_id)
        previous = self._fired.get(key)
        if previous is None or fired_at > previous:
            self._fired[key] = fired_at

    async def try_acquire(self, rule: TriggerRule, campaign_id: str, now: datetime) -> bool:
        """
        Atomically check the window and record a fire at `now`.

        Returns:
            True if the pair was eligible and is now marked as fired
        """
        async with self._lock((rule.id, campaign_id)):
            if self.is_cooling_down(rule, campaign_id, now):
                return False
            self.mark(rule, campaign_id, now)
            return True
