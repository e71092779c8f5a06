"""
CaseDossier Pattern Catalog Schemas

Pydantic models for validating pattern catalog YAML/JSON files.

These schemas check structure, value ranges and duration syntax. Cross
references (kind names, statute ids) and regex compilation are checked
by the loader, which collects every problem before failing.

Catalog keys are camelCase; the models use snake_case attributes with
camelCase aliases.

Schema versioning:
- version field tracks breaking changes (semver)
- Loaders reject catalogs whose major version differs
"""
from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Schema Version
# =============================================================================

CATALOG_SCHEMA_VERSION = "1.0.0"

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$")


# =============================================================================
# Durations
# =============================================================================

DURATION_PATTERN = re.compile(r"^([0-9]+)(ns|us|ms|s|m|h|d)$")

_DURATION_UNITS = {
    "us": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


def parse_duration(text: str) -> timedelta:
    """
    Parse a catalog duration such as ``30d`` or ``90s``.

    Raises:
        ValueError: If the text does not match ``[0-9]+(ns|us|ms|s|m|h|d)``
    """
    match = DURATION_PATTERN.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise ValueError(f"Invalid duration '{text}': expected [0-9]+(ns|us|ms|s|m|h|d)")
    amount, unit = match.groups()
    if unit == "ns":
        return timedelta(microseconds=int(amount) // 1000)
    return int(amount) * _DURATION_UNITS[unit]


def _check_duration(value: str) -> str:
    parse_duration(value)
    return value


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

CategoryValue = Literal["filename", "header", "body", "statute"]

RelevanceValue = Literal["Low", "Medium", "High"]

ViolationKindValue = Literal["willful", "negligent", "strict"]

SignificanceValue = Literal["critical", "high", "medium", "low"]

PatternTypeValue = Literal[
    "systematic", "progressive", "coordinated", "recurring", "escalating", "compound"
]

AmplificationTypeValue = Literal["multiplicative", "additive", "synergistic", "cumulative"]

LinkKindValue = Literal["causal", "corroborative", "supporting", "sequential", "contradictory"]

LinkConditionValue = Literal[
    "any", "same_kind", "different_kind", "cross_document", "conflicting_value"
]


class CatalogModel(BaseModel):
    """Base for catalog schemas: camelCase aliases, unknown keys rejected."""
    model_config = {
        "extra": "forbid",
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


# =============================================================================
# Scoring
# =============================================================================

class ScoringSchema(CatalogModel):
    """Overrides for formula weights. Every field defaults to the reference value."""
    filename_weight: float = Field(0.3, ge=0.0, le=1.0)
    header_weight: float = Field(0.4, ge=0.0, le=1.0)
    body_weight: float = Field(0.3, ge=0.0, le=1.0)
    statute_weight: float = Field(0.4, ge=0.0, le=1.0)
    body_hit_cap: int = Field(3, ge=1)
    max_confidence: float = Field(0.95, ge=0.0, le=1.0)
    multiplier_mid_hits: int = Field(3, ge=0)
    multiplier_mid: float = Field(1.2, ge=1.0)
    multiplier_high_hits: int = Field(5, ge=0)
    multiplier_high: float = Field(1.4, ge=1.0)
    secondary_ratio: float = Field(0.7, ge=0.0, le=1.0)
    secondary_floor: float = Field(0.3, ge=0.0, le=1.0)
    header_lines: int = Field(10, ge=1)

    default_base_confidence: float = Field(0.7, ge=0.0, le=1.0)
    violation_base: float = Field(0.5, ge=0.0, le=1.0)
    violation_per_trigger: float = Field(0.1, ge=0.0, le=1.0)
    violation_cap: float = Field(0.9, ge=0.0, le=1.0)
    inferred_year_penalty: float = Field(0.5, ge=0.0, le=1.0)

    match_threshold: float = Field(0.5, ge=0.0, le=1.0)
    conflict_threshold: float = Field(0.3, ge=0.0, le=1.0)

    duplicate_similarity: float = Field(0.9, ge=0.0, le=1.0)
    corroboration_similarity: float = Field(0.7, ge=0.0, le=1.0)
    corroboration_window: str = "7d"
    conflict_window: str = "7d"
    critical_period_radius: str = "7d"
    gap_threshold: str = "30d"
    high_gap_threshold: str = "90d"
    contributing_window: str = "30d"
    contributing_strength: float = Field(0.6, ge=0.0, le=1.0)
    sequential_window: str = "30d"
    sequential_strength: float = Field(0.4, ge=0.0, le=1.0)
    correlational_window: str = "90d"
    correlational_strength: float = Field(0.2, ge=0.0, le=1.0)

    template_bonus_unit: float = Field(0.1, ge=0.0, le=1.0)
    template_bonus_cap: float = Field(0.2, ge=0.0, le=1.0)
    cluster_min_size: int = Field(2, ge=2)
    cluster_bonus_per_member: float = Field(0.05, ge=0.0, le=1.0)
    cluster_bonus_cap: float = Field(0.2, ge=0.0, le=1.0)
    sequence_min_count: int = Field(3, ge=2)
    recurring_max_cv: float = Field(0.2, ge=0.0, le=1.0)
    pattern_bonus_weight: float = Field(0.15, ge=0.0, le=1.0)
    theory_bonus_per_violation: float = Field(0.1, ge=0.0, le=1.0)
    theory_bonus_cap: float = Field(0.3, ge=0.0, le=1.0)
    theory_min_strength: float = Field(0.5, ge=0.0, le=1.0)

    chain_optimize_below: float = Field(0.7, ge=0.0, le=1.0)
    chain_drop_fraction: float = Field(0.2, ge=0.0, le=1.0)
    chain_length_factor_cap: float = Field(1.2, ge=1.0)
    chain_min_structural_length: int = Field(3, ge=1)
    chain_completeness_elements: int = Field(5, ge=1)
    chain_completeness_links: int = Field(3, ge=1)
    chain_temporal_horizon: str = "365d"
    chain_undated_temporal_score: float = Field(0.5, ge=0.0, le=1.0)

    @field_validator(
        "corroboration_window", "conflict_window", "critical_period_radius",
        "gap_threshold", "high_gap_threshold", "contributing_window",
        "sequential_window", "correlational_window", "chain_temporal_horizon",
    )
    @classmethod
    def validate_duration(cls, v: str) -> str:
        return _check_duration(v)


# =============================================================================
# Classification and Extraction
# =============================================================================

class KindProfileSchema(CatalogModel):
    """Classification signals for one Kind."""
    filename_tokens: list[str] = Field(default_factory=list)
    header_regexes: list[str] = Field(default_factory=list)
    body_regexes: list[str] = Field(default_factory=list)
    statute_regexes: list[str] = Field(default_factory=list)
    base_reliability: float = Field(0.5, ge=0.0, le=1.0)


class FactExtractorSchema(CatalogModel):
    """Schema for a named fact extractor."""
    name: Optional[str] = Field(None, description="Extractor name; generated if omitted")
    applies_to: Union[str, list[str]] = Field(..., description="Kind name(s)")
    fact_kind: str = Field(..., description="FactKind name")
    regex: str = Field(..., description="Pattern; group 'value' or group 1 is the fact")
    category: CategoryValue = "body"
    base_confidence: float = Field(0.7, ge=0.0, le=1.0)
    relevance: RelevanceValue = "Medium"


class EventExtractorSchema(CatalogModel):
    """Schema for a timeline event extractor; the regex needs a 'date' group."""
    name: Optional[str] = None
    applies_to: Union[str, list[str]]
    event_kind: str
    regex: str
    description: str
    significance: SignificanceValue = "medium"
    category: CategoryValue = "body"
    base_confidence: float = Field(0.7, ge=0.0, le=1.0)


class StatuteElementSchema(CatalogModel):
    id: str
    description: str = ""
    fact_kinds: list[str] = Field(default_factory=list)


class StatuteSchema(CatalogModel):
    """Schema for a statute entry."""
    id: str
    citation: str = ""
    title: str = ""
    elements: list[StatuteElementSchema] = Field(default_factory=list)


class ViolationSignatureSchema(CatalogModel):
    """Schema for a violation signature."""
    statute_id: str
    triggers: list[str] = Field(..., min_length=1)
    violation_kind: ViolationKindValue
    min_relevance: RelevanceValue = "Low"
    applies_to: Optional[Union[str, list[str]]] = None


# =============================================================================
# Cross-Document Tables
# =============================================================================

class AmplificationRuleSchema(CatalogModel):
    """Schema for an amplification rule."""
    id: str
    primary_statute: str
    secondary_statute: str
    factor: float = Field(..., ge=1.0, le=2.0)
    type: AmplificationTypeValue
    max_gap: str
    sequence_required: bool = False
    legal_basis: str = ""

    @field_validator("max_gap")
    @classmethod
    def validate_max_gap(cls, v: str) -> str:
        return _check_duration(v)


class PatternTemplateSchema(CatalogModel):
    """Schema for a violation pattern template."""
    id: str
    type: PatternTypeValue
    required_statute_ids: list[str] = Field(..., min_length=1)
    min_occurrences: int = Field(..., ge=1)
    max_span: str
    min_confidence: float = Field(..., ge=0.0, le=1.0)
    significance: Optional[SignificanceValue] = None
    description: str = ""

    @field_validator("max_span")
    @classmethod
    def validate_max_span(cls, v: str) -> str:
        return _check_duration(v)


class TheoryTemplateSchema(CatalogModel):
    """Schema for a legal theory template."""
    id: str
    theory_type: str
    statute_prefix: Optional[str] = None
    min_amplified_strength: Optional[float] = Field(None, ge=0.0, le=1.0)
    pattern_types: list[PatternTypeValue] = Field(default_factory=list)
    legal_basis: str = ""
    description: str = ""

    @model_validator(mode="after")
    def validate_predicate(self) -> "TheoryTemplateSchema":
        """A theory template must select violations somehow."""
        if (
            self.statute_prefix is None
            and self.min_amplified_strength is None
            and not self.pattern_types
        ):
            raise ValueError(
                f"Theory template '{self.id}' needs statutePrefix, "
                "minAmplifiedStrength or patternTypes"
            )
        return self


class ChainTemplateSchema(CatalogModel):
    """Schema for an evidence chain template."""
    id: str
    type: str
    required_element_kinds: list[str] = Field(..., min_length=1)
    optional_element_kinds: list[str] = Field(default_factory=list)
    min_length: int = Field(..., ge=1)
    strength_threshold: float = Field(..., ge=0.0, le=1.0)
    max_candidates: int = Field(40, ge=1)


class LinkRuleSchema(CatalogModel):
    """Schema for an evidence chain link rule."""
    id: str
    kind: LinkKindValue
    base_strength: float = Field(..., ge=0.0, le=1.0)
    confidence_weight: float = Field(..., ge=0.0, le=1.0)
    relevance_weight: float = Field(..., ge=0.0, le=1.0)
    temporal_weight: float = Field(..., ge=0.0, le=1.0)
    confidence_threshold: float = Field(..., ge=0.0, le=1.0)
    when: LinkConditionValue = "any"


class CausalTemplateSchema(CatalogModel):
    """Schema for a timeline causal template."""
    id: str
    cause_kind: str
    effect_kind: str
    max_gap: str
    strength: float = Field(..., ge=0.0, le=1.0)

    @field_validator("max_gap")
    @classmethod
    def validate_max_gap(cls, v: str) -> str:
        return _check_duration(v)


class DeadlineSchema(CatalogModel):
    """Schema for a statutory deadline."""
    id: Optional[str] = None
    trigger_event_kind: str
    offset: str
    statutory_basis: str
    compliance_required: bool = True
    description: str = ""

    @field_validator("offset")
    @classmethod
    def validate_offset(cls, v: str) -> str:
        return _check_duration(v)


# =============================================================================
# Catalog
# =============================================================================

class CatalogSchema(CatalogModel):
    """Root schema of a pattern catalog document."""
    version: str = Field(..., description="Catalog semver")
    name: str = ""
    description: str = ""
    kinds: dict[str, KindProfileSchema] = Field(default_factory=dict)
    scoring: ScoringSchema = Field(default_factory=ScoringSchema)
    fact_extractors: list[FactExtractorSchema] = Field(default_factory=list)
    event_extractors: list[EventExtractorSchema] = Field(default_factory=list)
    statutes: list[StatuteSchema] = Field(default_factory=list)
    violation_signatures: list[ViolationSignatureSchema] = Field(default_factory=list)
    correlation_reliability: dict[str, float] = Field(default_factory=dict)
    amplification_rules: list[AmplificationRuleSchema] = Field(default_factory=list)
    pattern_templates: list[PatternTemplateSchema] = Field(default_factory=list)
    theory_templates: list[TheoryTemplateSchema] = Field(default_factory=list)
    chain_templates: list[ChainTemplateSchema] = Field(default_factory=list)
    link_rules: list[LinkRuleSchema] = Field(default_factory=list)
    causal_templates: list[CausalTemplateSchema] = Field(default_factory=list)
    timeline_deadlines: list[DeadlineSchema] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not SEMVER_PATTERN.match(v):
            raise ValueError(f"Catalog version '{v}' is not semver")
        return v

    @field_validator("correlation_reliability")
    @classmethod
    def validate_reliability(cls, v: dict[str, float]) -> dict[str, float]:
        for kind_name, value in v.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(
                    f"correlationReliability[{kind_name}]={value} outside [0, 1]"
                )
        return v


def validate_catalog(data: dict[str, Any]) -> CatalogSchema:
    """
    Validate a catalog dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return CatalogSchema.model_validate(data)


def check_catalog_version(data: dict[str, Any]) -> bool:
    """Check that the catalog's major version matches this release."""
    catalog_version = str(data.get("version", CATALOG_SCHEMA_VERSION))
    return catalog_version.split(".")[0] == CATALOG_SCHEMA_VERSION.split(".")[0]
