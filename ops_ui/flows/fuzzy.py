"""Resolve a typed name against a set of files.

Resolution runs in two phases. An exact (case-insensitive) name match wins
outright, or is disambiguated through the picker when several files share
the name. Otherwise every candidate is scored and the best survivors are
offered through the picker, unless the top one is an exact hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Callable, Generic, Sequence, TypeVar

from rich.markup import escape

from ops_common.errors import AmbiguousMatch, NoCandidatesFound, UserCanceled
from ops_ui.tui.system.protocols import Picker

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXACT_SCORE = 1000
SUBSTRING_BASE = 500
SUBSTRING_POSITION_RANGE = 100
SUBSEQUENCE_HIT = 10
SUBSEQUENCE_ADJACENT_BONUS = 5
DEFAULT_MIN_SCORE = 100
DEFAULT_MAX_RESULTS = 10


class ResolutionKind(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    CANCELED = "canceled"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@dataclass
class ResolvedSelection(Generic[T]):
    kind: ResolutionKind
    items: list[T] = field(default_factory=list)
    search_term: str = ""

    @classmethod
    def from_items(cls, items: Sequence[T], *, allow_multiple: bool, search_term: str) -> "ResolvedSelection[T]":
        if not items:
            return cls(ResolutionKind.CANCELED, search_term=search_term)
        if allow_multiple:
            return cls(ResolutionKind.MULTIPLE, list(items), search_term)
        return cls(ResolutionKind.SINGLE, [items[0]], search_term)

    @property
    def item(self) -> T | None:
        return self.items[0] if self.items else None

    def require(self) -> list[T]:
        """Return the resolved items or raise the matching typed error."""
        if self.kind is ResolutionKind.CANCELED:
            raise UserCanceled(
                f"Selection for '{self.search_term}' was canceled.",
                context={"search_term": self.search_term},
            )
        if self.kind is ResolutionKind.NOT_FOUND:
            raise NoCandidatesFound(
                f"No file matches '{self.search_term}'.",
                context={"search_term": self.search_term},
            )
        if self.kind is ResolutionKind.AMBIGUOUS:
            raise AmbiguousMatch(
                f"'{self.search_term}' matches {len(self.items)} files.",
                context={"search_term": self.search_term, "candidates": [str(item) for item in self.items]},
            )
        return list(self.items)


@dataclass(frozen=True)
class MatchCandidate(Generic[T]):
    item: T
    score: int


def bare_name(search_term: str) -> str:
    """Drop any directory prefix, accepting both slash styles."""
    return PurePath(search_term.replace("\\", "/")).name or search_term.strip()


def _path_name(item: object) -> str:
    return PurePath(str(item)).name


def score_candidate(search: str, candidate: str) -> int:
    """Heuristic similarity of ``candidate`` to ``search``; higher is closer."""
    needle = search.lower()
    haystack = candidate.lower()
    if needle == haystack:
        return EXACT_SCORE

    position = haystack.find(needle)
    if needle and position >= 0:
        return SUBSTRING_BASE + (SUBSTRING_POSITION_RANGE - position)

    score = 0
    last = -1
    for char in needle:
        found = haystack.find(char, last + 1)
        if found < 0:
            continue
        score += SUBSEQUENCE_HIT
        if last >= 0 and found == last + 1:
            score += SUBSEQUENCE_ADJACENT_BONUS
        last = found
    return score - abs(len(needle) - len(haystack))


def rank_candidates(
    search: str,
    candidates: Sequence[T],
    *,
    name: Callable[[T], str] = _path_name,
    min_score: int = DEFAULT_MIN_SCORE,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[MatchCandidate[T]]:
    """Score, filter and order candidates; ties keep their input order."""
    scored = [MatchCandidate(item, score_candidate(search, name(item))) for item in candidates]
    survivors = [match for match in scored if match.score > min_score]
    survivors.sort(key=lambda match: match.score, reverse=True)
    return survivors[:max_results]


def resolve(
    search_term: str,
    candidates: Sequence[T],
    *,
    picker: Picker,
    allow_multiple: bool = False,
    interactive: bool = True,
    name: Callable[[T], str] = _path_name,
    min_score: int = DEFAULT_MIN_SCORE,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> ResolvedSelection[T]:
    """Resolve ``search_term`` to one or more candidates, prompting only when ambiguous.

    With ``interactive`` off an ambiguous result comes back as
    ``AMBIGUOUS`` carrying the candidates instead of opening the picker.
    """
    target = bare_name(search_term)
    folded = target.lower()

    exact = [item for item in candidates if name(item).lower() == folded]
    if len(exact) == 1:
        logger.debug("Exact match for %s: %s", target, name(exact[0]))
        return ResolvedSelection.from_items(exact, allow_multiple=allow_multiple, search_term=target)
    if exact:
        if not interactive:
            return ResolvedSelection(ResolutionKind.AMBIGUOUS, exact, target)
        logger.debug("%d files named %s; asking user", len(exact), target)
        picked = picker.select(
            exact,
            title=f"Multiple files named '{target}'",
            display=lambda item: escape(str(item)),
            allow_multiple=allow_multiple,
        )
        return ResolvedSelection.from_items(picked, allow_multiple=allow_multiple, search_term=target)

    ranked = rank_candidates(
        target,
        candidates,
        name=name,
        min_score=min_score,
        max_results=max_results,
    )
    if not ranked:
        logger.info("No candidates above score %d for %s", min_score, target)
        return ResolvedSelection(ResolutionKind.NOT_FOUND, search_term=target)

    top = ranked[0]
    if top.score >= EXACT_SCORE:
        return ResolvedSelection.from_items([top.item], allow_multiple=allow_multiple, search_term=target)

    if not interactive:
        if len(ranked) == 1:
            logger.info("Only %s resembles %s", name(top.item), target)
            return ResolvedSelection.from_items([top.item], allow_multiple=allow_multiple, search_term=target)
        return ResolvedSelection(ResolutionKind.AMBIGUOUS, [match.item for match in ranked], target)

    scores = {id(match.item): match.score for match in ranked}
    picked = picker.select(
        [match.item for match in ranked],
        title=f"Files similar to '{target}'",
        display=lambda item: f"{escape(str(item))}  [dim]({scores.get(id(item), 0)})[/dim]",
        allow_multiple=allow_multiple,
    )
    return ResolvedSelection.from_items(picked, allow_multiple=allow_multiple, search_term=target)
