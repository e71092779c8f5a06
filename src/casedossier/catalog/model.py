"""
CaseDossier Pattern Catalog Domain Model

Typed, read-only representation of every pattern table the pipeline
uses. Built by the loader from validated schema models; regexes are
compiled exactly once, here, and shared read-only across workers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Mapping, Optional

from ..models import (
    AmplificationType,
    EventKind,
    ExtractorCategory,
    FactKind,
    Kind,
    LinkCondition,
    LinkKind,
    PatternType,
    Relevance,
    Significance,
    ViolationKind,
)


# =============================================================================
# Scoring Weights
# =============================================================================

@dataclass(frozen=True)
class Scoring:
    """
    Every numeric constant of the pipeline formulas.

    Defaults are the reference weights; catalogs may override any of them
    through the ``scoring`` section.
    """
    # Classifier / extractor category weights
    filename_weight: float = 0.3
    header_weight: float = 0.4
    body_weight: float = 0.3
    statute_weight: float = 0.4
    body_hit_cap: int = 3
    max_confidence: float = 0.95
    multiplier_mid_hits: int = 3
    multiplier_mid: float = 1.2
    multiplier_high_hits: int = 5
    multiplier_high: float = 1.4
    secondary_ratio: float = 0.7
    secondary_floor: float = 0.3
    header_lines: int = 10

    # Extraction
    default_base_confidence: float = 0.7
    violation_base: float = 0.5
    violation_per_trigger: float = 0.1
    violation_cap: float = 0.9
    inferred_year_penalty: float = 0.5

    # Correlation
    match_threshold: float = 0.5
    conflict_threshold: float = 0.3

    # Timeline
    duplicate_similarity: float = 0.9
    corroboration_similarity: float = 0.7
    corroboration_window: timedelta = timedelta(days=7)
    conflict_window: timedelta = timedelta(days=7)
    critical_period_radius: timedelta = timedelta(days=7)
    gap_threshold: timedelta = timedelta(days=30)
    high_gap_threshold: timedelta = timedelta(days=90)
    contributing_window: timedelta = timedelta(days=30)
    contributing_strength: float = 0.6
    sequential_window: timedelta = timedelta(days=30)
    sequential_strength: float = 0.4
    correlational_window: timedelta = timedelta(days=90)
    correlational_strength: float = 0.2

    # Patterns and amplification
    template_bonus_unit: float = 0.1
    template_bonus_cap: float = 0.2
    cluster_min_size: int = 2
    cluster_bonus_per_member: float = 0.05
    cluster_bonus_cap: float = 0.2
    sequence_min_count: int = 3
    recurring_max_cv: float = 0.2
    pattern_bonus_weight: float = 0.15
    theory_bonus_per_violation: float = 0.1
    theory_bonus_cap: float = 0.3
    theory_min_strength: float = 0.5

    # Evidence chains
    chain_optimize_below: float = 0.7
    chain_drop_fraction: float = 0.2
    chain_length_factor_cap: float = 1.2
    chain_min_structural_length: int = 3
    chain_completeness_elements: int = 5
    chain_completeness_links: int = 3
    chain_temporal_horizon: timedelta = timedelta(days=365)
    chain_undated_temporal_score: float = 0.5

    def category_weight(self, category: ExtractorCategory) -> float:
        return {
            ExtractorCategory.FILENAME: self.filename_weight,
            ExtractorCategory.HEADER: self.header_weight,
            ExtractorCategory.BODY: self.body_weight,
            ExtractorCategory.STATUTE: self.statute_weight,
        }[category]


# =============================================================================
# Classification and Extraction Tables
# =============================================================================

@dataclass(frozen=True)
class KindProfile:
    """Classification signals for one document Kind."""
    kind: Kind
    filename_tokens: tuple[str, ...] = ()
    header_patterns: tuple[re.Pattern, ...] = ()
    body_patterns: tuple[re.Pattern, ...] = ()
    statute_patterns: tuple[re.Pattern, ...] = ()
    base_reliability: float = 0.5


@dataclass(frozen=True)
class FactExtractorSpec:
    """A named regex extractor producing one FactKind."""
    name: str
    applies_to: tuple[Kind, ...]
    fact_kind: FactKind
    pattern: re.Pattern
    category: ExtractorCategory = ExtractorCategory.BODY
    base_confidence: float = 0.7
    relevance: Relevance = Relevance.MEDIUM


@dataclass(frozen=True)
class EventExtractorSpec:
    """A named regex extractor producing dated timeline events."""
    name: str
    applies_to: tuple[Kind, ...]
    event_kind: EventKind
    pattern: re.Pattern
    description: str
    significance: Significance = Significance.MEDIUM
    category: ExtractorCategory = ExtractorCategory.BODY
    base_confidence: float = 0.7


@dataclass(frozen=True)
class StatuteElement:
    """One element of a statutory cause of action."""
    id: str
    description: str = ""
    fact_kinds: tuple[FactKind, ...] = ()


@dataclass(frozen=True)
class Statute:
    """A statute a violation can be raised under."""
    id: str
    citation: str = ""
    title: str = ""
    elements: tuple[StatuteElement, ...] = ()


@dataclass(frozen=True)
class ViolationSignature:
    """Text triggers that raise a violation of one statute."""
    statute_id: str
    triggers: tuple[re.Pattern, ...]
    violation_kind: ViolationKind
    min_relevance: Relevance = Relevance.LOW
    applies_to: tuple[Kind, ...] = ()

    def applies(self, kind: Kind) -> bool:
        return not self.applies_to or kind in self.applies_to


# =============================================================================
# Cross-Document Tables
# =============================================================================

@dataclass(frozen=True)
class AmplificationRule:
    """Raises a primary violation's strength when a secondary one co-occurs."""
    id: str
    primary_statute: str
    secondary_statute: str
    factor: float
    amplification_type: AmplificationType
    max_gap: timedelta
    sequence_required: bool = False
    legal_basis: str = ""


@dataclass(frozen=True)
class PatternTemplate:
    """Statute combination that forms a pattern when it recurs."""
    id: str
    pattern_type: PatternType
    required_statute_ids: tuple[str, ...]
    min_occurrences: int
    max_span: timedelta
    min_confidence: float
    significance: Optional[Significance] = None
    description: str = ""


@dataclass(frozen=True)
class TheoryTemplate:
    """Predicate selecting amplified violations that support a legal theory."""
    id: str
    theory_type: str
    statute_prefix: Optional[str] = None
    min_amplified_strength: Optional[float] = None
    pattern_types: tuple[PatternType, ...] = ()
    legal_basis: str = ""
    description: str = ""


@dataclass(frozen=True)
class ChainTemplate:
    """Constraints for building one evidence chain."""
    id: str
    chain_type: str
    required_element_kinds: tuple[str, ...]
    optional_element_kinds: tuple[str, ...] = ()
    min_length: int = 3
    strength_threshold: float = 0.7
    max_candidates: int = 40

    @property
    def element_kinds(self) -> frozenset:
        return frozenset(self.required_element_kinds) | frozenset(self.optional_element_kinds)


@dataclass(frozen=True)
class LinkRule:
    """Scores a candidate link between two chain elements."""
    id: str
    kind: LinkKind
    base_strength: float
    confidence_weight: float
    relevance_weight: float
    temporal_weight: float
    confidence_threshold: float
    when: LinkCondition = LinkCondition.ANY


@dataclass(frozen=True)
class CausalTemplate:
    """Known cause/effect pair of timeline event kinds."""
    id: str
    cause_kind: EventKind
    effect_kind: EventKind
    max_gap: timedelta
    strength: float


@dataclass(frozen=True)
class DeadlineRule:
    """Statutory deadline triggered by an event kind."""
    id: str
    trigger_event_kind: EventKind
    offset: timedelta
    statutory_basis: str
    compliance_required: bool = True
    description: str = ""


# =============================================================================
# Catalog
# =============================================================================

def _frozen(mapping: Optional[dict]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Catalog:
    """
    Validated, read-only bundle of all pattern tables.

    Usage:
        catalog = load_catalog("catalog.yaml")
        profile = catalog.kind_profile(Kind.ADVERSE_ACTION)
        for extractor in catalog.extractors_for(Kind.ADVERSE_ACTION):
            ...
    """
    version: str
    name: str = ""
    kinds: Mapping = field(default_factory=lambda: _frozen({}))
    scoring: Scoring = field(default_factory=Scoring)
    fact_extractors: tuple[FactExtractorSpec, ...] = ()
    event_extractors: tuple[EventExtractorSpec, ...] = ()
    statutes: Mapping = field(default_factory=lambda: _frozen({}))
    violation_signatures: tuple[ViolationSignature, ...] = ()
    correlation_reliability: Mapping = field(default_factory=lambda: _frozen({}))
    amplification_rules: tuple[AmplificationRule, ...] = ()
    pattern_templates: tuple[PatternTemplate, ...] = ()
    theory_templates: tuple[TheoryTemplate, ...] = ()
    chain_templates: tuple[ChainTemplate, ...] = ()
    link_rules: tuple[LinkRule, ...] = ()
    causal_templates: tuple[CausalTemplate, ...] = ()
    timeline_deadlines: tuple[DeadlineRule, ...] = ()
    fingerprint: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "kinds", _frozen(self.kinds))
        object.__setattr__(self, "statutes", _frozen(self.statutes))
        object.__setattr__(
            self, "correlation_reliability", _frozen(self.correlation_reliability)
        )

    # -------------------------------------------------------------------------
    # Accessors keyed by Kind
    # -------------------------------------------------------------------------

    def kind_profile(self, kind: Kind) -> KindProfile:
        """Signals for a Kind; an empty profile when the catalog has none."""
        return self.kinds.get(kind) or KindProfile(kind=kind)

    def extractors_for(self, kind: Kind) -> tuple[FactExtractorSpec, ...]:
        """Fact extractors applying to a Kind, in catalog order."""
        return tuple(e for e in self.fact_extractors if kind in e.applies_to)

    def event_extractors_for(self, kind: Kind) -> tuple[EventExtractorSpec, ...]:
        return tuple(e for e in self.event_extractors if kind in e.applies_to)

    def signatures_for(self, kind: Kind) -> tuple[ViolationSignature, ...]:
        return tuple(s for s in self.violation_signatures if s.applies(kind))

    def reliability(self, kind: Kind) -> float:
        """Correlation reliability base; overrides the Kind profile's value."""
        if kind in self.correlation_reliability:
            return self.correlation_reliability[kind]
        return self.kind_profile(kind).base_reliability

    # -------------------------------------------------------------------------
    # Accessors keyed by FactKind / statute / event kind
    # -------------------------------------------------------------------------

    def extractors_of(self, fact_kind: FactKind) -> tuple[FactExtractorSpec, ...]:
        return tuple(e for e in self.fact_extractors if e.fact_kind == fact_kind)

    def statute(self, statute_id: str) -> Optional[Statute]:
        return self.statutes.get(statute_id)

    def rules_for_primary(self, statute_id: str) -> tuple[AmplificationRule, ...]:
        """Amplification rules whose primary statute matches, in catalog order."""
        return tuple(r for r in self.amplification_rules if r.primary_statute == statute_id)

    def deadlines_for(self, event_kind: EventKind) -> tuple[DeadlineRule, ...]:
        return tuple(d for d in self.timeline_deadlines if d.trigger_event_kind == event_kind)

    def causal_template(
        self, cause: EventKind, effect: EventKind
    ) -> Optional[CausalTemplate]:
        """First causal template for the (cause, effect) pair."""
        for template in self.causal_templates:
            if template.cause_kind == cause and template.effect_kind == effect:
                return template
        return None

    # -------------------------------------------------------------------------
    # Accessors keyed by template id
    # -------------------------------------------------------------------------

    def pattern_template(self, template_id: str) -> Optional[PatternTemplate]:
        for template in self.pattern_templates:
            if template.id == template_id:
                return template
        return None

    def chain_template(self, template_id: str) -> Optional[ChainTemplate]:
        for template in self.chain_templates:
            if template.id == template_id:
                return template
        return None

    def theory_template(self, template_id: str) -> Optional[TheoryTemplate]:
        for template in self.theory_templates:
            if template.id == template_id:
                return template
        return None
