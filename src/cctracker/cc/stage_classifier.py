"""
Stage classification for C&C threads.

Infers a thread's workflow stage, progress counter, generations and tiers
from its prefix tag, title and forum section. Titles and tags are written by
hand and are inconsistent, so the classifier is best effort: whenever the
routing data (generation/tier) cannot be recovered the thread is skipped
rather than guessed, because a wrong guess means an alert in the wrong
channel.

The inference is an ordered list of small pure rules:

1. Prefix rules. The first one whose label matches wins. A stage label sets
   the stage directly, a skip label drops the thread, and mashup /
   generation / historical-tier labels set the routing facet and leave the
   stage to the title.
2. Title stage rule, only while the stage is unknown.
3. Progress backfill for QC/GP stages that came from the prefix.
4. Generation and tier resolution from the section table, or from the title
   for the past-generation mashup section.

Nothing here performs I/O, so every rule can be exercised directly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

from cctracker.cc.forum_sections import (
    FORUM_SECTIONS,
    GENERATION_PREFIXES,
    HISTORICAL_TIER_PREFIXES,
    MASHUP_PREFIXES,
    PAST_GEN_MASHUP_SECTION,
    SKIP_PREFIXES,
    STAGE_PREFIXES,
    find_generation_in_title,
)
from cctracker.datatypes.cc_datatypes import ClassifiedThread, Stage, ThreadSnapshot
from cctracker.util.logger import get_logger

logger = get_logger("stage_classifier")

# "QC 1/2", "GP: 0/1", "qc - 2 / 2"; up to three characters between the tag and the counter
PROGRESS_PATTERN = re.compile(r"(QC|GP).{0,3}?(\d\s?/\s?\d)", re.IGNORECASE)

# Same counter with the tag optional, for titles that rely on the prefix to name the stage
BACKFILL_PATTERN = re.compile(r"(?:(QC|GP).{0,3}?)?(\d\s?/\s?\d)", re.IGNORECASE)

DONE_PATTERN = re.compile(r"\bdone\b", re.IGNORECASE)

QC_COMPLETE_PROGRESS = "0/?"


@dataclass(frozen=True, slots=True)
class ProgressMark:
    """One "n/m" counter found in a title.

    Attributes:
        tag: "QC" or "GP" (uppercased), or None for an untagged counter.
        progress: The counter with all whitespace removed, e.g. "1/2".
    """

    tag: Optional[str]
    progress: str

    @property
    def complete(self) -> bool:
        done, _, needed = self.progress.partition("/")
        return done == needed


def _strip_spaces(text: str) -> str:
    return re.sub(r"\s+", "", text)


def find_progress_marks(title: str) -> List[ProgressMark]:
    """Return every tagged QC/GP counter in the title, in order."""
    return [
        ProgressMark(tag=match.group(1).upper(), progress=_strip_spaces(match.group(2)))
        for match in PROGRESS_PATTERN.finditer(title)
    ]


def find_backfill_marks(title: str) -> List[ProgressMark]:
    """Return every counter in the title, tagged or not, in order."""
    return [
        ProgressMark(
            tag=match.group(1).upper() if match.group(1) else None,
            progress=_strip_spaces(match.group(2)),
        )
        for match in BACKFILL_PATTERN.finditer(title)
    ]


def _first_with_tag(marks: Iterable[ProgressMark], tag: Optional[str]) -> Optional[ProgressMark]:
    return next((mark for mark in marks if mark.tag == tag), None)


# -------------------- Rule plumbing --------------------

class RuleOutcome(Enum):
    """Result of applying one rule to a partial classification."""

    NO_MATCH = "no_match"
    APPLIED = "applied"
    SKIP = "skip"


@dataclass(slots=True)
class PartialClassification:
    """Mutable working state threaded through the rules."""

    stage: Optional[Stage] = None
    progress: str = ""
    generations: FrozenSet[str] = frozenset()
    tiers: FrozenSet[str] = frozenset()


Rule = Callable[[ThreadSnapshot, PartialClassification], RuleOutcome]


# -------------------- Prefix rules --------------------

def stage_prefix_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    """WIP / Quality Control / Copyediting / HTML / Done set the stage outright."""
    stage_name = STAGE_PREFIXES.get(thread.prefix_tag or "")
    if stage_name is None:
        return RuleOutcome.NO_MATCH
    partial.stage = Stage.parse(stage_name)
    return RuleOutcome.APPLIED


def skip_prefix_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    """Resources and announcements are not analyses and are never tracked."""
    if thread.prefix_tag in SKIP_PREFIXES:
        return RuleOutcome.SKIP
    return RuleOutcome.NO_MATCH


def mashup_prefix_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    tier = MASHUP_PREFIXES.get(thread.prefix_tag or "")
    if tier is None:
        return RuleOutcome.NO_MATCH
    partial.tiers = frozenset({tier})
    return RuleOutcome.APPLIED


def generation_prefix_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    generation = GENERATION_PREFIXES.get(thread.prefix_tag or "")
    if generation is None:
        return RuleOutcome.NO_MATCH
    partial.generations = frozenset({generation})
    return RuleOutcome.APPLIED


def historical_tier_prefix_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    tier = HISTORICAL_TIER_PREFIXES.get(thread.prefix_tag or "")
    if tier is None:
        return RuleOutcome.NO_MATCH
    partial.tiers = frozenset({tier})
    return RuleOutcome.APPLIED


PREFIX_RULES: Sequence[Rule] = (
    stage_prefix_rule,
    skip_prefix_rule,
    mashup_prefix_rule,
    generation_prefix_rule,
    historical_tier_prefix_rule,
)


# -------------------- Title / resolution rules --------------------

def title_stage_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    """Infer the stage from QC/GP counters in the title.

    General progression is WIP -> QC -> GP -> Done. A finished QC counter
    with no GP counter means GP has not started yet ("0/?"). With both
    counters present an unfinished QC wins over GP.
    """
    if partial.stage is not None:
        return RuleOutcome.NO_MATCH

    title = thread.title
    marks = find_progress_marks(title)

    if DONE_PATTERN.search(title):
        partial.stage = Stage.DONE
    elif not marks:
        partial.stage = Stage.WIP
    elif len(marks) >= 2:
        qc = _first_with_tag(marks, "QC")
        gp = _first_with_tag(marks, "GP")
        # Some authors prefill several counters; without one of each the order is unknowable
        if qc is None or gp is None:
            return RuleOutcome.SKIP
        if not qc.complete:
            partial.stage, partial.progress = Stage.QC, qc.progress
        elif not gp.complete:
            partial.stage, partial.progress = Stage.GP, gp.progress
        else:
            partial.stage = Stage.DONE
    else:
        mark = marks[0]
        if mark.tag == "GP":
            if mark.complete:
                partial.stage = Stage.DONE
            else:
                partial.stage, partial.progress = Stage.GP, mark.progress
        elif mark.complete:
            partial.stage, partial.progress = Stage.GP, QC_COMPLETE_PROGRESS
        else:
            partial.stage, partial.progress = Stage.QC, mark.progress
    return RuleOutcome.APPLIED


def progress_backfill_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    """Fill in the counter for a QC/GP stage that came from the prefix.

    Prefers a counter tagged with the stage name; authors often drop the
    tag because the prefix already implies it, so the first untagged
    counter is the fallback.
    """
    if partial.progress or partial.stage not in (Stage.QC, Stage.GP):
        return RuleOutcome.NO_MATCH

    marks = find_backfill_marks(thread.title)
    mark = _first_with_tag(marks, partial.stage.value) or _first_with_tag(marks, None)
    if mark is None:
        return RuleOutcome.NO_MATCH
    partial.progress = mark.progress
    return RuleOutcome.APPLIED


def generation_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    if partial.generations:
        return RuleOutcome.NO_MATCH

    if thread.forum_id == PAST_GEN_MASHUP_SECTION:
        generation = find_generation_in_title(thread.title)
        if generation is None:
            return RuleOutcome.SKIP
        partial.generations = frozenset({generation})
        return RuleOutcome.APPLIED

    section = FORUM_SECTIONS.get(thread.forum_id)
    if section is None:
        return RuleOutcome.SKIP
    partial.generations = section.generations
    return RuleOutcome.APPLIED


def tier_rule(thread: ThreadSnapshot, partial: PartialClassification) -> RuleOutcome:
    if partial.tiers:
        return RuleOutcome.NO_MATCH

    section = FORUM_SECTIONS.get(thread.forum_id)
    if section is None:
        return RuleOutcome.SKIP
    partial.tiers = section.tiers
    return RuleOutcome.APPLIED


RESOLUTION_RULES: Sequence[Rule] = (
    title_stage_rule,
    progress_backfill_rule,
    generation_rule,
    tier_rule,
)


# -------------------- Public API --------------------

def classify_thread(thread: ThreadSnapshot) -> Optional[ClassifiedThread]:
    """Classify one thread, or return None if it should be skipped this cycle."""
    partial = PartialClassification()

    for rule in PREFIX_RULES:
        outcome = rule(thread, partial)
        if outcome is RuleOutcome.SKIP:
            logger.debug("[CC CLASSIFY] Thread %s skipped by %s", thread.thread_id, rule.__name__)
            return None
        if outcome is RuleOutcome.APPLIED:
            break

    for rule in RESOLUTION_RULES:
        if rule(thread, partial) is RuleOutcome.SKIP:
            logger.debug(
                "[CC CLASSIFY] Thread %s skipped by %s (tag=%r, title=%r)",
                thread.thread_id, rule.__name__, thread.prefix_tag, thread.title,
            )
            return None

    # title_stage_rule settles the stage whenever no prefix did
    if partial.stage is None:
        raise RuntimeError(f"thread {thread.thread_id} left the rules without a stage")

    return ClassifiedThread(
        thread_id=thread.thread_id,
        forum_id=thread.forum_id,
        title=thread.title,
        prefix_tag=thread.prefix_tag,
        stage=partial.stage,
        progress=partial.progress,
        generations=partial.generations,
        tiers=partial.tiers,
    )


def classify_threads(threads: Iterable[ThreadSnapshot]) -> List[ClassifiedThread]:
    """Classify every thread, dropping the ones that are skipped."""
    classified: List[ClassifiedThread] = []
    for thread in threads:
        result = classify_thread(thread)
        if result is not None:
            classified.append(result)
    return classified
