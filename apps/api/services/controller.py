"""Heartbeat-based controller election for the now-playing register.

Whoever wrote the register most recently is the controller. Viewers take over
once the heartbeat is older than the timeout. A takeover while the previous
owner was still fresh marks the channel contested until the timeout passes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ControllerState(str, Enum):
    UNCLAIMED = "unclaimed"
    CONTROLLED = "controlled"
    CONTESTED = "contested"


@dataclass(frozen=True)
class Ownership:
    controller_id: Optional[str]
    contested_at: Optional[datetime]


def should_take_over(now: datetime, last_heartbeat: Optional[datetime], timeout: timedelta) -> bool:
    if last_heartbeat is None:
        return True
    return now - last_heartbeat > timeout


def resolve_controller_state(
    now: datetime,
    last_heartbeat: Optional[datetime],
    contested_at: Optional[datetime],
    timeout: timedelta,
) -> ControllerState:
    if should_take_over(now, last_heartbeat, timeout):
        return ControllerState.UNCLAIMED
    if contested_at is not None and now - contested_at <= timeout:
        return ControllerState.CONTESTED
    return ControllerState.CONTROLLED


def next_ownership(
    now: datetime,
    current_owner: Optional[str],
    last_heartbeat: Optional[datetime],
    contested_at: Optional[datetime],
    writer: Optional[str],
    timeout: timedelta,
) -> Ownership:
    """Ownership to persist after `writer` updates the register. The write always lands."""
    if should_take_over(now, last_heartbeat, timeout):
        return Ownership(controller_id=writer, contested_at=None)
    if writer is None or writer == current_owner:
        return Ownership(controller_id=current_owner if writer is None else writer, contested_at=contested_at)
    return Ownership(controller_id=writer, contested_at=now)
