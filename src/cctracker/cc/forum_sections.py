"""
Static lookup tables for C&C tracking.

Loaded once at import and never mutated: the monitored forum sections with
the tiers/generations each one covers, the thread prefix vocabularies, and
the generation abbreviations used in thread titles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

ALL_PAST_GENS: FrozenSet[str] = frozenset({"1", "2", "3", "4", "5", "6", "7", "8"})
CURRENT_GEN: FrozenSet[str] = frozenset({"9"})

_MASHUP_TIERS: FrozenSet[str] = frozenset({
    "nfe", "almost-any-ability", "2v2-doubles", "godly-gift", "ag", "bh",
    "mix-and-mega", "stabmons", "zu", "partners-in-crime", "inh", "ubers-uu",
})


@dataclass(frozen=True, slots=True)
class ForumSection:
    """A monitored forum section and the tiers/generations its threads cover."""

    section_id: int
    generations: FrozenSet[str]
    tiers: FrozenSet[str]
    url: str


def _section(section_id: int, generations: FrozenSet[str], tiers: set[str], slug: str) -> ForumSection:
    return ForumSection(
        section_id=section_id,
        generations=frozenset(generations),
        tiers=frozenset(tiers),
        url=f"https://www.smogon.com/forums/forums/{slug}.{section_id}/",
    )


FORUM_SECTIONS: Mapping[int, ForumSection] = MappingProxyType({
    section.section_id: section
    for section in (
        _section(758, CURRENT_GEN, {"ou"}, "ou-analyses"),
        _section(759, CURRENT_GEN, {"uber"}, "ubers-analyses"),
        _section(539, ALL_PAST_GENS, {"uber"}, "past-generation-ubers-analyses"),
        _section(772, CURRENT_GEN, {"uu"}, "uu-analyses"),
        _section(576, ALL_PAST_GENS, {"uu"}, "past-generation-uu-analyses"),
        _section(774, CURRENT_GEN, {"nu"}, "nu-analyses"),
        _section(587, ALL_PAST_GENS, {"nu"}, "past-generation-nu-analyses"),
        _section(775, CURRENT_GEN, {"pu"}, "pu-analyses"),
        _section(844, ALL_PAST_GENS, {"pu"}, "past-generation-pu-analyses"),
        _section(760, CURRENT_GEN, {"lc"}, "lc-analyses"),
        _section(540, ALL_PAST_GENS, {"lc"}, "past-generation-lc-analyses"),
        _section(761, CURRENT_GEN, {"doubles"}, "doubles-ou-analyses"),
        _section(541, ALL_PAST_GENS, {"doubles"}, "past-gen-doubles-ou-analyses"),
        _section(762, CURRENT_GEN, {"monotype"}, "monotype-analyses"),
        _section(660, ALL_PAST_GENS, {"monotype"}, "past-generation-monotype-analyses"),
        _section(763, CURRENT_GEN, set(_MASHUP_TIERS), "om-analyses"),
        _section(770, ALL_PAST_GENS, set(_MASHUP_TIERS), "past-generation-om-analyses"),
        _section(764, CURRENT_GEN, {"1v1"}, "1v1-analyses"),
        _section(476, ALL_PAST_GENS, {"1v1"}, "past-generation-1v1-analyses"),
        _section(765, CURRENT_GEN, {"national-dex"}, "national-dex-analyses"),
        _section(828, CURRENT_GEN, {"national-dex-monotype"}, "natdex-mono-analyses"),
        _section(839, CURRENT_GEN, {"national-dex-uu"}, "natdex-uu-analyses"),
        _section(768, ALL_PAST_GENS | CURRENT_GEN, {"cap"}, "cap-analyses"),
        _section(766, CURRENT_GEN, {"bss"}, "battle-stadium-analyses"),
        _section(767, CURRENT_GEN, {"vgc"}, "vgc-analyses"),
        _section(148, ALL_PAST_GENS, {"ou"}, "past-generation-analyses"),
        _section(512, frozenset({"1"}), {"nu", "pu", "stadium-ou", "tradebacks-ou", "uu", "uber"}, "rby-other-tier-analyses"),
        _section(608, frozenset({"7"}), {"lgpe-ou"}, "pokemon-lets-go-analyses"),
        _section(707, frozenset({"8"}), {"bdsp-ou"}, "bdsp-ou-analyses"),
        _section(871, CURRENT_GEN, {"draft"}, "draft-league-analyses"),
    )
})

MONITORED_SECTION_IDS: tuple[int, ...] = tuple(FORUM_SECTIONS)

# Past-gen mashup threads share one section, so the generation has to come
# from the prefix or the title instead of the section table.
PAST_GEN_MASHUP_SECTION = 770

# -------------------- Prefix vocabularies --------------------

STAGE_PREFIXES: Mapping[str, str] = MappingProxyType({
    "WIP": "WIP",
    "Quality Control": "QC",
    "Copyediting": "GP",
    "HTML": "HTML",
    "Done": "Done",
})

SKIP_PREFIXES: FrozenSet[str] = frozenset({"Resource", "Announcement"})

# Mashup (OM) labels used as thread prefixes in the OM sections
MASHUP_PREFIXES: Mapping[str, str] = MappingProxyType({
    "NFE": "nfe",
    "AAA": "almost-any-ability",
    "2v2": "2v2-doubles",
    "GG": "godly-gift",
    "AG": "ag",
    "BH": "bh",
    "MnM": "mix-and-mega",
    "STABmons": "stabmons",
    "ZU": "zu",
    "PiC": "partners-in-crime",
    "Inh": "inh",
    "UUbers": "ubers-uu",
})

GENERATION_PREFIXES: Mapping[str, str] = MappingProxyType({
    f"Gen {n}": str(n) for n in range(1, 10)
})

# Tier labels used as prefixes in the RBY other-tiers section
HISTORICAL_TIER_PREFIXES: Mapping[str, str] = MappingProxyType({
    "NU": "nu",
    "PU": "pu",
    "Stadium OU": "stadium-ou",
    "Tradebacks OU": "tradebacks-ou",
    "UU": "uu",
    "Ubers": "uber",
})

# -------------------- Generation vocabulary --------------------

GENERATION_ALIASES: Mapping[str, str] = MappingProxyType({
    "sv": "9",
    "swsh": "8", "ss": "8",
    "usum": "7", "usm": "7", "sm": "7",
    "oras": "6", "xy": "6",
    "b2w2": "5", "bw2": "5", "bw": "5",
    "hgss": "4", "dpp": "4", "dp": "4",
    "rse": "3", "rs": "3", "adv": "3",
    "gsc": "2", "gs": "2",
    "rby": "1", "rb": "1",
})

# Longest abbreviations first so the alternation never stops on a prefix
_ALIAS_ALTERNATION = "|".join(sorted(GENERATION_ALIASES, key=len, reverse=True))

GENERATION_TITLE_PATTERN = re.compile(
    rf"\b(?:(?:generation|gen|g)\s*([1-9])|({_ALIAS_ALTERNATION}))\b",
    re.IGNORECASE,
)

_TIER_ALIASES: Mapping[str, str] = MappingProxyType({
    "ubers": "uber",
    "doubles-ou": "doubles",
    "dou": "doubles",
    "natdex": "national-dex",
    "natdex-monotype": "national-dex-monotype",
    "natdex-uu": "national-dex-uu",
    "aaa": "almost-any-ability",
    "mnm": "mix-and-mega",
    "pic": "partners-in-crime",
})


def find_generation_in_title(title: str) -> Optional[str]:
    """Return the generation digit named in a thread title, if any."""
    match = GENERATION_TITLE_PATTERN.search(title)
    if match is None:
        return None
    if match.group(1):
        return match.group(1)
    return GENERATION_ALIASES[match.group(2).lower()]


def normalize_generation(value: str) -> Optional[str]:
    """Map user-facing generation text ("9", "Gen 9", "SV") to its digit.

    Returns None when the text names no known generation.
    """
    text = value.strip()
    if not text:
        return None
    if text.isdigit():
        return text if 1 <= int(text) <= 9 else None
    alias = GENERATION_ALIASES.get(text.lower())
    if alias:
        return alias
    match = GENERATION_TITLE_PATTERN.fullmatch(text)
    if match is None:
        return None
    return match.group(1) or GENERATION_ALIASES[match.group(2).lower()]


def normalize_tier(value: str) -> str:
    """Lowercase a tier name and hyphenate whitespace ("Stadium OU" -> "stadium-ou")."""
    text = re.sub(r"\s+", "-", value.strip().lower())
    return _TIER_ALIASES.get(text, text)
