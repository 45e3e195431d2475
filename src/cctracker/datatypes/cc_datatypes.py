"""
Data structures for C&C status tracking.

ThreadSnapshot and ClassifiedThread are produced fresh every poll;
CacheEntry and SubscriptionEntry mirror rows of the ``cc_status`` and
``cc_subscriptions`` tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from cctracker.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


class Stage(Enum):
    """Position of a thread in the C&C workflow."""

    WIP = "WIP"
    QC = "QC"
    GP = "GP"
    HTML = "HTML"
    DONE = "Done"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "Stage":
        """Parse a stored stage name, case-insensitively.

        Raises:
            ValueError: If the name is not a known stage.
        """
        text = value.strip().lower()
        for stage in cls:
            if stage.value.lower() == text:
                return stage
        raise ValueError(f"Unknown C&C stage: {value!r}")


@dataclass(frozen=True, slots=True)
class ThreadSnapshot:
    """One open forum thread as read from the external source."""

    thread_id: int
    forum_id: int
    title: str
    prefix_tag: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ClassifiedThread:
    """A snapshot plus the inferred C&C state.

    Attributes:
        stage: Inferred workflow stage; never empty.
        progress: "n/m" reviewer counter, "0/?" when QC just finished, or "".
        generations: Generation digits ("1".."9") the thread belongs to.
        tiers: Lowercase tier identifiers the thread belongs to.
    """

    thread_id: int
    forum_id: int
    title: str
    prefix_tag: Optional[str]
    stage: Stage
    progress: str
    generations: FrozenSet[str]
    tiers: FrozenSet[str]

    @property
    def status(self) -> tuple[Stage, str]:
        return self.stage, self.progress


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Last-known C&C state of a thread (row of ``cc_status``)."""

    thread_id: int
    stage: Stage
    progress: str = ""

    @classmethod
    def from_classified(cls, thread: ClassifiedThread) -> "CacheEntry":
        return cls(thread_id=thread.thread_id, stage=thread.stage, progress=thread.progress)

    @property
    def status(self) -> tuple[Stage, str]:
        return self.stage, self.progress


@dataclass(frozen=True, slots=True)
class SubscriptionEntry:
    """A channel's subscription to alerts for one tier/generation pair.

    cooldown and prefix are stored for the configuration commands; the
    tracker itself only reads the routing fields and role_id.
    """

    server_id: GuildID
    channel_id: ChannelID
    tier: str
    generation: str
    role_id: Optional[RoleID] = None
    cooldown: Optional[int] = None
    prefix: Optional[str] = None

    def matches(self, tiers: FrozenSet[str], generations: FrozenSet[str]) -> bool:
        """True if this subscription covers any of the tiers and any of the generations."""
        tier = self.tier.lower()
        generation = self.generation.lower()
        return (
            any(t.lower() == tier for t in tiers)
            and any(g.lower() == generation for g in generations)
        )


@dataclass(slots=True)
class StatusCacheData:
    """Everything the reconciliation cycle reads from storage up front."""

    entries: List[CacheEntry] = field(default_factory=list)
    subscriptions: List[SubscriptionEntry] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of a snapshot fetch.

    A successful fetch may legitimately contain no threads; a failed fetch
    carries the reason instead and must not be treated as an empty forum.
    """

    ok: bool
    threads: Sequence[ThreadSnapshot] = ()
    error: Optional[str] = None

    @classmethod
    def success(cls, threads: Sequence[ThreadSnapshot]) -> "FetchResult":
        return cls(ok=True, threads=tuple(threads))

    @classmethod
    def failure(cls, reason: str) -> "FetchResult":
        return cls(ok=False, threads=(), error=reason)
