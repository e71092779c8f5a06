"""
CaseDossier Violation Pattern Engine

Detects violation patterns, amplifies violation strength and aggregates
legal theories.

Pattern sources:
- Catalog templates: every required statute occurs at least
  minOccurrences times within maxSpan
- Escalating: >= 3 dated violations with strictly increasing strength
- Recurring: >= 3 dated violations at regular intervals (CV <= 0.2)
- Statute clusters: >= 2 violations of one statute (systematic)

Amplification applies catalog rules in catalog order, then a bonus of
0.15 * patternStrength per pattern, then clamps to [baseStrength, 1].
Every applied step is recorded with its delta, in application order.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import timedelta
from statistics import fmean, pstdev
from typing import Iterable, Optional, Sequence

from ..canon import stable_id
from ..catalog import AmplificationRule, Catalog, PatternTemplate, Scoring, TheoryTemplate
from ..models import (
    AmplificationSource,
    AmplificationType,
    AmplifiedViolation,
    LegalTheory,
    Pattern,
    PatternAnalysis,
    PatternType,
    Significance,
    TemporalProfile,
    Violation,
)

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


# =============================================================================
# Shared helpers
# =============================================================================

def significance_for(strength: float) -> Significance:
    if strength >= 0.8:
        return Significance.CRITICAL
    if strength >= 0.65:
        return Significance.HIGH
    if strength >= 0.5:
        return Significance.MEDIUM
    return Significance.LOW


def _dated(violations: Iterable[Violation]) -> list[Violation]:
    return sorted(
        (v for v in violations if v.occurrence is not None),
        key=lambda v: (v.occurrence, v.id),
    )


def _gaps_in_days(dated: Sequence[Violation]) -> list[float]:
    return [(b.occurrence - a.occurrence) / DAY for a, b in zip(dated, dated[1:])]


def temporal_profile(violations: Sequence[Violation]) -> TemporalProfile:
    """Span in days and a coarse frequency label from the mean gap."""
    dated = _dated(violations)
    if not dated:
        return TemporalProfile(span_days=None, frequency="undated")
    span = (dated[-1].occurrence - dated[0].occurrence) // DAY
    if len(dated) < 2:
        return TemporalProfile(span_days=span, frequency="single")

    mean_gap = fmean(_gaps_in_days(dated))
    if mean_gap <= 7:
        frequency = "weekly"
    elif mean_gap <= 31:
        frequency = "monthly"
    elif mean_gap <= 92:
        frequency = "quarterly"
    else:
        frequency = "sporadic"
    return TemporalProfile(span_days=span, frequency=frequency)


def make_pattern(
    pattern_type: PatternType,
    members: Sequence[Violation],
    strength: float,
    significance: Optional[Significance] = None,
    template_id: Optional[str] = None,
) -> Pattern:
    violation_ids = tuple(sorted(v.id for v in members))
    strength = min(1.0, strength)
    return Pattern(
        id=stable_id("pat", pattern_type.value, *violation_ids),
        pattern_type=pattern_type,
        violation_ids=violation_ids,
        doc_ids=tuple(sorted({v.source_doc_id for v in members})),
        strength=strength,
        significance=significance or significance_for(strength),
        temporal=temporal_profile(members),
        template_id=template_id,
    )


def _count_bonus(count: int, scoring: Scoring) -> float:
    return min(scoring.cluster_bonus_cap, count * scoring.cluster_bonus_per_member)


# =============================================================================
# Pattern Detection
# =============================================================================

def match_template(
    template: PatternTemplate,
    violations: Sequence[Violation],
    scoring: Scoring,
) -> Optional[Pattern]:
    """
    Evaluate one pattern template.

    Undated violations count toward minOccurrences but take no part in
    the span check.
    """
    required = set(template.required_statute_ids)
    involved = [v for v in violations if v.statute_id in required]
    if len(involved) < 2:
        return None

    counts: dict[str, int] = defaultdict(int)
    for violation in involved:
        counts[violation.statute_id] += 1
    if any(counts[statute] < template.min_occurrences for statute in required):
        return None

    dated = _dated(involved)
    if len(dated) >= 2 and dated[-1].occurrence - dated[0].occurrence > template.max_span:
        return None

    bonus = min(
        scoring.template_bonus_cap,
        len(involved) / template.min_occurrences * scoring.template_bonus_unit,
    )
    strength = min(1.0, fmean(v.base_strength for v in involved) + bonus)
    if strength < template.min_confidence:
        return None
    return make_pattern(
        template.pattern_type, involved, strength, template.significance, template.id
    )


def detect_escalating(violations: Sequence[Violation], scoring: Scoring) -> Optional[Pattern]:
    dated = _dated(violations)
    if len(dated) < scoring.sequence_min_count:
        return None
    rising = all(
        b.base_strength > a.base_strength and b.occurrence > a.occurrence
        for a, b in zip(dated, dated[1:])
    )
    if not rising:
        return None
    strength = fmean(v.base_strength for v in dated) + _count_bonus(len(dated), scoring)
    return make_pattern(PatternType.ESCALATING, dated, strength)


def detect_recurring(violations: Sequence[Violation], scoring: Scoring) -> Optional[Pattern]:
    dated = _dated(violations)
    if len(dated) < scoring.sequence_min_count:
        return None
    gaps = _gaps_in_days(dated)
    mean_gap = fmean(gaps)
    if mean_gap <= 0:
        return None
    if pstdev(gaps) / mean_gap > scoring.recurring_max_cv:
        return None
    strength = fmean(v.base_strength for v in dated) + _count_bonus(len(dated), scoring)
    return make_pattern(PatternType.RECURRING, dated, strength)


def detect_clusters(violations: Sequence[Violation], scoring: Scoring) -> list[Pattern]:
    by_statute: dict[str, list[Violation]] = defaultdict(list)
    for violation in violations:
        by_statute[violation.statute_id].append(violation)

    patterns = []
    for statute_id in sorted(by_statute):
        members = by_statute[statute_id]
        if len(members) < scoring.cluster_min_size:
            continue
        strength = fmean(v.base_strength for v in members) + _count_bonus(len(members), scoring)
        patterns.append(make_pattern(PatternType.SYSTEMATIC, members, strength))
    return patterns


def dedupe_patterns(patterns: Iterable[Pattern]) -> list[Pattern]:
    """Keep the strongest pattern per (type, violation set); sorted by id."""
    best: dict[str, Pattern] = {}
    for pattern in patterns:
        current = best.get(pattern.id)
        if current is None or pattern.strength > current.strength:
            best[pattern.id] = pattern
    return sorted(best.values(), key=lambda p: p.id)


# =============================================================================
# Amplification
# =============================================================================

def apply_rule(strength: float, rule: AmplificationRule) -> float:
    if rule.amplification_type == AmplificationType.MULTIPLICATIVE:
        return strength * rule.factor
    if rule.amplification_type == AmplificationType.ADDITIVE:
        return strength + 0.1 * rule.factor
    if rule.amplification_type == AmplificationType.SYNERGISTIC:
        return strength * (1 + 0.2 * rule.factor)
    return strength + 0.05 * rule.factor


def temporal_requirement_met(
    primary: Violation, secondary: Violation, rule: AmplificationRule
) -> bool:
    """
    |secondary - primary| <= maxGap, and primary first when the rule
    requires a sequence. Undated pairs pass the gap check but can never
    establish an order.
    """
    if primary.occurrence is None or secondary.occurrence is None:
        return not rule.sequence_required
    delta = secondary.occurrence - primary.occurrence
    if abs(delta) > rule.max_gap:
        return False
    if rule.sequence_required and delta < timedelta(0):
        return False
    return True


def amplify(
    violation: Violation,
    violations: Sequence[Violation],
    patterns: Sequence[Pattern],
    catalog: Catalog,
) -> AmplifiedViolation:
    strength = violation.base_strength
    sources: list[AmplificationSource] = []

    for rule in catalog.rules_for_primary(violation.statute_id):
        secondaries = (
            v for v in violations
            if v.statute_id == rule.secondary_statute and v.id != violation.id
        )
        if not any(temporal_requirement_met(violation, s, rule) for s in secondaries):
            continue
        amplified = apply_rule(strength, rule)
        sources.append(AmplificationSource(rule.id, amplified - strength))
        strength = amplified

    for pattern in patterns:
        if violation.id not in pattern.violation_ids:
            continue
        bonus = catalog.scoring.pattern_bonus_weight * pattern.strength
        sources.append(AmplificationSource(pattern.id, bonus))
        strength += bonus

    return AmplifiedViolation(
        violation=violation,
        amplified_strength=min(1.0, max(violation.base_strength, strength)),
        sources=tuple(sources),
    )


# =============================================================================
# Legal Theories
# =============================================================================

def supports_theory(
    template: TheoryTemplate,
    amplified: AmplifiedViolation,
    pattern_types: dict[str, set[PatternType]],
) -> bool:
    """All predicates the template states must hold."""
    if template.statute_prefix and not amplified.statute_id.startswith(template.statute_prefix):
        return False
    if (
        template.min_amplified_strength is not None
        and not amplified.amplified_strength > template.min_amplified_strength
    ):
        return False
    if template.pattern_types:
        member_of = pattern_types.get(amplified.id, set())
        if not member_of & set(template.pattern_types):
            return False
    return True


def build_theory(
    template: TheoryTemplate,
    amplified: Sequence[AmplifiedViolation],
    pattern_types: dict[str, set[PatternType]],
    scoring: Scoring,
) -> Optional[LegalTheory]:
    supporting = [a for a in amplified if supports_theory(template, a, pattern_types)]
    if not supporting:
        return None
    bonus = min(
        scoring.theory_bonus_cap, len(supporting) * scoring.theory_bonus_per_violation
    )
    strength = min(1.0, fmean(a.amplified_strength for a in supporting) + bonus)
    if strength <= scoring.theory_min_strength:
        return None
    return LegalTheory(
        id=stable_id("theory", template.id),
        template_id=template.id,
        theory_type=template.theory_type,
        supporting_violation_ids=tuple(sorted(a.id for a in supporting)),
        strength=strength,
        legal_basis=template.legal_basis,
    )


# =============================================================================
# Engine
# =============================================================================

class ViolationPatternEngine:
    """
    Patterns, amplification and legal theories over all violations.

    Usage:
        engine = ViolationPatternEngine(catalog)
        analysis = engine.analyze(violations)
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def detect_patterns(self, violations: Sequence[Violation]) -> list[Pattern]:
        scoring = self.catalog.scoring
        candidates: list[Pattern] = []
        for template in self.catalog.pattern_templates:
            pattern = match_template(template, violations, scoring)
            if pattern is not None:
                candidates.append(pattern)
        for detector in (detect_escalating, detect_recurring):
            pattern = detector(violations, scoring)
            if pattern is not None:
                candidates.append(pattern)
        candidates.extend(detect_clusters(violations, scoring))
        return dedupe_patterns(candidates)

    def analyze(self, violations: Sequence[Violation]) -> PatternAnalysis:
        """
        Run detection, amplification and theory aggregation.

        Returns:
            PatternAnalysis with patterns sorted by id, one amplified
            violation per input violation sorted by id, and theories in
            catalog template order
        """
        ordered = sorted(violations, key=lambda v: v.id)
        patterns = self.detect_patterns(ordered)
        amplified = [amplify(v, ordered, patterns, self.catalog) for v in ordered]

        pattern_types: dict[str, set[PatternType]] = defaultdict(set)
        for pattern in patterns:
            for violation_id in pattern.violation_ids:
                pattern_types[violation_id].add(pattern.pattern_type)

        theories = []
        for template in self.catalog.theory_templates:
            theory = build_theory(template, amplified, pattern_types, self.catalog.scoring)
            if theory is not None:
                theories.append(theory)

        logger.info(
            "Detected %d patterns, %d theories over %d violations",
            len(patterns), len(theories), len(ordered),
            extra={"stage": "patterns"},
        )
        return PatternAnalysis(
            patterns=tuple(patterns),
            amplified_violations=tuple(amplified),
            theories=tuple(theories),
        )
