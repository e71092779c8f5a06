"""
CaseDossier Document Classifier

Assigns one primary Kind and ranked secondaries from four signals:

    filename   any catalog token in the basename        +0.3 once
    header     each header regex on the first 10 lines  +0.4 each
    body       distinct body regexes hit                0.3 * min(hits, 3) / 3
    statute    any statute regex                        +0.4 once

The primary Kind is the arg-max score (ties by Kind ordinal). Its
confidence is ``min(0.95, score * multiplier)`` where the multiplier
grows with the number of individual signal hits.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional

from ..catalog import Catalog, KindProfile, Scoring
from ..models import Classification, Kind, ordinal


@dataclass(frozen=True)
class KindScore:
    """Signal breakdown for one Kind."""
    kind: Kind
    filename_hits: int = 0
    header_hits: int = 0
    body_hits: int = 0
    statute_hits: int = 0
    score: float = 0.0

    @property
    def hits(self) -> int:
        return self.filename_hits + self.header_hits + self.body_hits + self.statute_hits


def header_text(text: str, lines: int = 10) -> str:
    """First ``lines`` lines joined by a single space."""
    return " ".join(text.split("\n")[:lines])


def multiplier(hits: int, scoring: Scoring) -> float:
    if hits > scoring.multiplier_high_hits:
        return scoring.multiplier_high
    if hits > scoring.multiplier_mid_hits:
        return scoring.multiplier_mid
    return 1.0


def confidence(kind_score: KindScore, scoring: Scoring) -> float:
    return min(scoring.max_confidence, kind_score.score * multiplier(kind_score.hits, scoring))


def score_kind(
    profile: KindProfile,
    basename: str,
    header: str,
    text: str,
    scoring: Scoring,
    checkpoint: Optional[Callable[[], None]] = None,
) -> KindScore:
    """Score one Kind's signals against a document."""
    def hit(pattern, subject: str) -> bool:
        if checkpoint is not None:
            checkpoint()
        return pattern.search(subject) is not None

    filename_hits = sum(1 for token in profile.filename_tokens if token in basename)
    header_hits = sum(1 for p in profile.header_patterns if hit(p, header))
    body_hits = sum(1 for p in profile.body_patterns if hit(p, text))
    statute_hits = sum(1 for p in profile.statute_patterns if hit(p, text))

    score = 0.0
    if filename_hits:
        score += scoring.filename_weight
    score += scoring.header_weight * header_hits
    score += scoring.body_weight * min(body_hits, scoring.body_hit_cap) / scoring.body_hit_cap
    if statute_hits:
        score += scoring.statute_weight

    return KindScore(
        kind=profile.kind,
        filename_hits=filename_hits,
        header_hits=header_hits,
        body_hits=body_hits,
        statute_hits=statute_hits,
        score=score,
    )


def score_document(
    path: str,
    text: str,
    catalog: Catalog,
    checkpoint: Optional[Callable[[], None]] = None,
) -> list[KindScore]:
    """Scores for every Kind, in Kind ordinal order."""
    scoring = catalog.scoring
    basename = os.path.basename(str(path)).lower()
    header = header_text(text, scoring.header_lines)
    return [
        score_kind(catalog.kind_profile(kind), basename, header, text, scoring, checkpoint)
        for kind in Kind
    ]


def classify(
    path: str,
    text: str,
    catalog: Catalog,
    checkpoint: Optional[Callable[[], None]] = None,
) -> Classification:
    """
    Classify one document.

    An empty text still scores the filename signal, which is how failed
    documents keep a Kind.

    Returns:
        Classification; ``Other`` with confidence 0 when nothing scores
    """
    scoring = catalog.scoring
    scores = score_document(path, text, catalog, checkpoint)
    positive = [s for s in scores if s.score > 0]
    if not positive:
        return Classification.unclassified()

    ranked = sorted(positive, key=lambda s: (-s.score, ordinal(s.kind)))
    primary = ranked[0]

    secondaries = tuple(
        (s.kind, confidence(s, scoring))
        for s in ranked[1:]
        if s.score >= scoring.secondary_ratio * primary.score
        and s.score >= scoring.secondary_floor
    )
    return Classification(
        primary=primary.kind,
        primary_confidence=confidence(primary, scoring),
        secondaries=secondaries,
        scores=tuple((s.kind, s.score) for s in positive),
    )
