"""
CaseDossier Pattern Catalog Loader

Loads and validates pattern catalogs from YAML or JSON files.

Converts pydantic schema models to frozen catalog domain objects. Every
problem (schema errors, unknown names, dangling references, regexes
that fail to compile) is collected and reported together; a catalog is
either loaded completely or not at all.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

import yaml
from pydantic import ValidationError

from ..canon import content_hash
from ..exceptions import CatalogInvalidError, CatalogLoadError, CatalogVersionError
from ..models import (
    EVIDENCE_ELEMENT,
    VIOLATION_ELEMENT,
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
from .model import (
    AmplificationRule,
    Catalog,
    CausalTemplate,
    ChainTemplate,
    DeadlineRule,
    EventExtractorSpec,
    FactExtractorSpec,
    KindProfile,
    LinkRule,
    PatternTemplate,
    Scoring,
    Statute,
    StatuteElement,
    TheoryTemplate,
    ViolationSignature,
)
from .schema import (
    CATALOG_SCHEMA_VERSION,
    CatalogSchema,
    EventExtractorSchema,
    FactExtractorSchema,
    KindProfileSchema,
    ScoringSchema,
    check_catalog_version,
    parse_duration,
    validate_catalog,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")

# Classification regexes and violation triggers match case-insensitively;
# extractor regexes control case themselves with inline flags.
SIGNAL_FLAGS = re.IGNORECASE | re.MULTILINE
EXTRACTOR_FLAGS = re.MULTILINE


# =============================================================================
# Conversion Context
# =============================================================================

class _Converter:
    """
    Converts a validated CatalogSchema into a Catalog.

    Errors are appended to ``self.errors`` instead of raised, so that a
    single load reports every problem in the file.
    """

    def __init__(self, schema: CatalogSchema):
        self.schema = schema
        self.errors: list[str] = []
        self.statute_ids = {s.id for s in schema.statutes}

    # -------------------------------------------------------------------------
    # Primitive checks
    # -------------------------------------------------------------------------

    def compile(self, pattern: str, where: str, flags: int) -> Optional[re.Pattern]:
        try:
            return re.compile(pattern, flags)
        except re.error as e:
            self.errors.append(f"{where}: regex {pattern!r} does not compile ({e})")
            return None

    def enum(self, enum_cls: Callable[[str], E], value: str, where: str) -> Optional[E]:
        try:
            return enum_cls(value)
        except ValueError:
            self.errors.append(f"{where}: unknown {enum_cls.__name__} '{value}'")
            return None

    def kinds(self, value: Union[str, list[str], None], where: str) -> tuple[Kind, ...]:
        if value is None:
            return ()
        names = [value] if isinstance(value, str) else list(value)
        result = []
        for name in names:
            kind = self.enum(Kind, name, where)
            if kind is not None and kind not in result:
                result.append(kind)
        return tuple(result)

    def statute_ref(self, statute_id: str, where: str) -> None:
        if statute_id not in self.statute_ids:
            self.errors.append(f"{where}: unknown statute '{statute_id}'")

    def duration(self, value: str, where: str) -> timedelta:
        try:
            return parse_duration(value)
        except ValueError as e:
            self.errors.append(f"{where}: {e}")
            return timedelta(0)

    def unique(self, ids: list[str], table: str) -> None:
        seen: set[str] = set()
        for item_id in ids:
            if item_id in seen:
                self.errors.append(f"{table}: duplicate id '{item_id}'")
            seen.add(item_id)

    # -------------------------------------------------------------------------
    # Table converters
    # -------------------------------------------------------------------------

    def scoring(self, schema: ScoringSchema) -> Scoring:
        values = schema.model_dump()
        for name, value in list(values.items()):
            if isinstance(value, str):
                values[name] = self.duration(value, f"scoring.{name}")
        if values["high_gap_threshold"] < values["gap_threshold"]:
            self.errors.append("scoring: highGapThreshold is shorter than gapThreshold")
        return Scoring(**values)

    def kind_profile(self, name: str, schema: KindProfileSchema) -> Optional[KindProfile]:
        where = f"kinds.{name}"
        kind = self.enum(Kind, name, where)

        def patterns(regexes: list[str], table: str) -> tuple[re.Pattern, ...]:
            compiled = [
                self.compile(r, f"{where}.{table}[{i}]", SIGNAL_FLAGS)
                for i, r in enumerate(regexes)
            ]
            return tuple(p for p in compiled if p is not None)

        profile_patterns = (
            patterns(schema.header_regexes, "headerRegexes"),
            patterns(schema.body_regexes, "bodyRegexes"),
            patterns(schema.statute_regexes, "statuteRegexes"),
        )
        if kind is None:
            return None
        return KindProfile(
            kind=kind,
            filename_tokens=tuple(t.lower() for t in schema.filename_tokens if t.strip()),
            header_patterns=profile_patterns[0],
            body_patterns=profile_patterns[1],
            statute_patterns=profile_patterns[2],
            base_reliability=schema.base_reliability,
        )

    def fact_extractor(self, index: int, schema: FactExtractorSchema) -> Optional[FactExtractorSpec]:
        where = f"factExtractors[{index}]"
        applies_to = self.kinds(schema.applies_to, f"{where}.appliesTo")
        fact_kind = self.enum(FactKind, schema.fact_kind, f"{where}.factKind")
        pattern = self.compile(schema.regex, f"{where}.regex", EXTRACTOR_FLAGS)
        if not applies_to or fact_kind is None or pattern is None:
            return None
        name = schema.name or f"{applies_to[0].value}.{fact_kind.value}.{index}"
        return FactExtractorSpec(
            name=name,
            applies_to=applies_to,
            fact_kind=fact_kind,
            pattern=pattern,
            category=ExtractorCategory(schema.category),
            base_confidence=schema.base_confidence,
            relevance=Relevance(schema.relevance),
        )

    def event_extractor(self, index: int, schema: EventExtractorSchema) -> Optional[EventExtractorSpec]:
        where = f"eventExtractors[{index}]"
        applies_to = self.kinds(schema.applies_to, f"{where}.appliesTo")
        event_kind = self.enum(EventKind, schema.event_kind, f"{where}.eventKind")
        pattern = self.compile(schema.regex, f"{where}.regex", EXTRACTOR_FLAGS)
        if pattern is not None and "date" not in pattern.groupindex:
            self.errors.append(f"{where}.regex: missing named group 'date'")
            pattern = None
        if not applies_to or event_kind is None or pattern is None:
            return None
        return EventExtractorSpec(
            name=schema.name or f"{applies_to[0].value}.{event_kind.value}.{index}",
            applies_to=applies_to,
            event_kind=event_kind,
            pattern=pattern,
            description=schema.description,
            significance=Significance(schema.significance),
            category=ExtractorCategory(schema.category),
            base_confidence=schema.base_confidence,
        )

    def statute(self, schema) -> Statute:
        elements = []
        for element in schema.elements:
            fact_kinds = [
                self.enum(FactKind, k, f"statutes.{schema.id}.{element.id}")
                for k in element.fact_kinds
            ]
            elements.append(StatuteElement(
                id=element.id,
                description=element.description,
                fact_kinds=tuple(k for k in fact_kinds if k is not None),
            ))
        self.unique([e.id for e in elements], f"statutes.{schema.id}.elements")
        return Statute(
            id=schema.id,
            citation=schema.citation,
            title=schema.title,
            elements=tuple(elements),
        )

    def signature(self, index: int, schema) -> Optional[ViolationSignature]:
        where = f"violationSignatures[{index}]"
        self.statute_ref(schema.statute_id, f"{where}.statuteId")
        triggers = [
            self.compile(t, f"{where}.triggers[{i}]", SIGNAL_FLAGS)
            for i, t in enumerate(schema.triggers)
        ]
        applies_to = self.kinds(schema.applies_to, f"{where}.appliesTo")
        if any(t is None for t in triggers):
            return None
        return ViolationSignature(
            statute_id=schema.statute_id,
            triggers=tuple(triggers),
            violation_kind=ViolationKind(schema.violation_kind),
            min_relevance=Relevance(schema.min_relevance),
            applies_to=applies_to,
        )

    def amplification_rule(self, schema) -> AmplificationRule:
        where = f"amplificationRules.{schema.id}"
        self.statute_ref(schema.primary_statute, f"{where}.primaryStatute")
        self.statute_ref(schema.secondary_statute, f"{where}.secondaryStatute")
        return AmplificationRule(
            id=schema.id,
            primary_statute=schema.primary_statute,
            secondary_statute=schema.secondary_statute,
            factor=schema.factor,
            amplification_type=AmplificationType(schema.type),
            max_gap=self.duration(schema.max_gap, f"{where}.maxGap"),
            sequence_required=schema.sequence_required,
            legal_basis=schema.legal_basis,
        )

    def pattern_template(self, schema) -> PatternTemplate:
        where = f"patternTemplates.{schema.id}"
        for statute_id in schema.required_statute_ids:
            self.statute_ref(statute_id, f"{where}.requiredStatuteIds")
        return PatternTemplate(
            id=schema.id,
            pattern_type=PatternType(schema.type),
            required_statute_ids=tuple(schema.required_statute_ids),
            min_occurrences=schema.min_occurrences,
            max_span=self.duration(schema.max_span, f"{where}.maxSpan"),
            min_confidence=schema.min_confidence,
            significance=Significance(schema.significance) if schema.significance else None,
            description=schema.description,
        )

    def theory_template(self, schema) -> TheoryTemplate:
        return TheoryTemplate(
            id=schema.id,
            theory_type=schema.theory_type,
            statute_prefix=schema.statute_prefix,
            min_amplified_strength=schema.min_amplified_strength,
            pattern_types=tuple(PatternType(p) for p in schema.pattern_types),
            legal_basis=schema.legal_basis,
            description=schema.description,
        )

    def chain_template(self, schema) -> ChainTemplate:
        valid = {k.value for k in FactKind} | {VIOLATION_ELEMENT, EVIDENCE_ELEMENT}
        for name in [*schema.required_element_kinds, *schema.optional_element_kinds]:
            if name not in valid:
                self.errors.append(
                    f"chainTemplates.{schema.id}: unknown element kind '{name}'"
                )
        return ChainTemplate(
            id=schema.id,
            chain_type=schema.type,
            required_element_kinds=tuple(schema.required_element_kinds),
            optional_element_kinds=tuple(schema.optional_element_kinds),
            min_length=schema.min_length,
            strength_threshold=schema.strength_threshold,
            max_candidates=schema.max_candidates,
        )

    def link_rule(self, schema) -> LinkRule:
        return LinkRule(
            id=schema.id,
            kind=LinkKind(schema.kind),
            base_strength=schema.base_strength,
            confidence_weight=schema.confidence_weight,
            relevance_weight=schema.relevance_weight,
            temporal_weight=schema.temporal_weight,
            confidence_threshold=schema.confidence_threshold,
            when=LinkCondition(schema.when),
        )

    def causal_template(self, schema) -> Optional[CausalTemplate]:
        where = f"causalTemplates.{schema.id}"
        cause = self.enum(EventKind, schema.cause_kind, f"{where}.causeKind")
        effect = self.enum(EventKind, schema.effect_kind, f"{where}.effectKind")
        max_gap = self.duration(schema.max_gap, f"{where}.maxGap")
        if cause is None or effect is None:
            return None
        return CausalTemplate(
            id=schema.id,
            cause_kind=cause,
            effect_kind=effect,
            max_gap=max_gap,
            strength=schema.strength,
        )

    def deadline(self, index: int, schema) -> Optional[DeadlineRule]:
        where = f"timelineDeadlines[{index}]"
        trigger = self.enum(EventKind, schema.trigger_event_kind, f"{where}.triggerEventKind")
        offset = self.duration(schema.offset, f"{where}.offset")
        if trigger is None:
            return None
        return DeadlineRule(
            id=schema.id or f"{trigger.value}+{schema.offset}",
            trigger_event_kind=trigger,
            offset=offset,
            statutory_basis=schema.statutory_basis,
            compliance_required=schema.compliance_required,
            description=schema.description,
        )

    # -------------------------------------------------------------------------
    # Whole catalog
    # -------------------------------------------------------------------------

    def convert(self, fingerprint: str) -> Catalog:
        s = self.schema

        scoring = self.scoring(s.scoring)
        kinds = {}
        for name, profile_schema in s.kinds.items():
            profile = self.kind_profile(name, profile_schema)
            if profile is not None:
                kinds[profile.kind] = profile

        fact_extractors = [self.fact_extractor(i, e) for i, e in enumerate(s.fact_extractors)]
        event_extractors = [self.event_extractor(i, e) for i, e in enumerate(s.event_extractors)]
        self.unique([e.name for e in fact_extractors if e], "factExtractors")
        self.unique([e.name for e in event_extractors if e], "eventExtractors")

        self.unique([st.id for st in s.statutes], "statutes")
        statutes = {st.id: self.statute(st) for st in s.statutes}
        signatures = [self.signature(i, sig) for i, sig in enumerate(s.violation_signatures)]

        reliability = {}
        for name, value in s.correlation_reliability.items():
            kind = self.enum(Kind, name, "correlationReliability")
            if kind is not None:
                reliability[kind] = value

        self.unique([r.id for r in s.amplification_rules], "amplificationRules")
        self.unique([t.id for t in s.pattern_templates], "patternTemplates")
        self.unique([t.id for t in s.theory_templates], "theoryTemplates")
        self.unique([t.id for t in s.chain_templates], "chainTemplates")
        self.unique([r.id for r in s.link_rules], "linkRules")
        self.unique([t.id for t in s.causal_templates], "causalTemplates")

        catalog = Catalog(
            version=s.version,
            name=s.name,
            kinds=kinds,
            scoring=scoring,
            fact_extractors=tuple(e for e in fact_extractors if e is not None),
            event_extractors=tuple(e for e in event_extractors if e is not None),
            statutes=statutes,
            violation_signatures=tuple(sig for sig in signatures if sig is not None),
            correlation_reliability=reliability,
            amplification_rules=tuple(self.amplification_rule(r) for r in s.amplification_rules),
            pattern_templates=tuple(self.pattern_template(t) for t in s.pattern_templates),
            theory_templates=tuple(self.theory_template(t) for t in s.theory_templates),
            chain_templates=tuple(self.chain_template(t) for t in s.chain_templates),
            link_rules=tuple(self.link_rule(r) for r in s.link_rules),
            causal_templates=tuple(
                t for t in (self.causal_template(c) for c in s.causal_templates) if t is not None
            ),
            timeline_deadlines=tuple(
                d for d in (self.deadline(i, dl) for i, dl in enumerate(s.timeline_deadlines))
                if d is not None
            ),
            fingerprint=fingerprint,
        )
        self.unique([d.id for d in catalog.timeline_deadlines], "timelineDeadlines")
        return catalog


# =============================================================================
# Loader
# =============================================================================

def _format_validation_errors(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg', 'invalid')}")
    return messages


def build_catalog(data: Any, source: str = "<memory>") -> Catalog:
    """
    Validate raw catalog data and build a Catalog.

    Args:
        data: Dictionary parsed from YAML or JSON
        source: Where the data came from, for error messages

    Raises:
        CatalogVersionError: If the major version is incompatible
        CatalogInvalidError: If any validation check fails
    """
    if not isinstance(data, dict):
        raise CatalogInvalidError(
            message="Catalog must be a mapping at the top level",
            details={"path": source, "errors": ["top level is not a mapping"]},
        )

    if not check_catalog_version(data):
        catalog_version = data.get("version", "unknown")
        raise CatalogVersionError(
            message=(
                f"Catalog version mismatch: catalog has {catalog_version}, "
                f"expected {CATALOG_SCHEMA_VERSION}"
            ),
            details={
                "path": source,
                "catalog_version": catalog_version,
                "expected_version": CATALOG_SCHEMA_VERSION,
                "errors": [f"incompatible catalog version {catalog_version}"],
            },
        )

    try:
        schema = validate_catalog(data)
    except ValidationError as e:
        errors = _format_validation_errors(e)
        raise CatalogInvalidError(
            message=f"Catalog validation failed: {e.error_count()} errors",
            details={"path": source, "errors": errors},
        )

    converter = _Converter(schema)
    catalog = converter.convert(fingerprint=content_hash(data))
    if converter.errors:
        raise CatalogInvalidError(
            message=f"Catalog validation failed: {len(converter.errors)} errors",
            details={"path": source, "errors": converter.errors},
        )

    logger.info(
        "Loaded catalog %s v%s from %s",
        catalog.name or "<unnamed>",
        catalog.version,
        source,
        extra={"catalog_fingerprint": catalog.fingerprint[:16]},
    )
    return catalog


class CatalogLoader:
    """
    Loads pattern catalogs from YAML or JSON files.

    Usage:
        loader = CatalogLoader()
        catalog = loader.load("path/to/catalog.yaml")
    """

    def __init__(self) -> None:
        self._catalogs: dict[str, Catalog] = {}

    def load(self, path: Union[str, Path]) -> Catalog:
        """
        Load a catalog from a file.

        Raises:
            CatalogLoadError: If the file cannot be read or parsed
            CatalogInvalidError: If validation fails
        """
        path = Path(path)
        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CatalogLoadError(
                message=f"Failed to load catalog: {e}",
                details={"path": str(path), "errors": [str(e)]},
            )

        catalog = build_catalog(data, str(path))
        self._catalogs[catalog.fingerprint] = catalog
        return catalog

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f)
            elif path.suffix.lower() == ".json":
                return json.load(f)
            else:
                content = f.read()
                try:
                    return yaml.safe_load(content)
                except yaml.YAMLError:
                    return json.loads(content)

    def get_catalog(self, fingerprint: str) -> Optional[Catalog]:
        """Get a previously loaded catalog by fingerprint."""
        return self._catalogs.get(fingerprint)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_catalog(path: Union[str, Path]) -> Catalog:
    """Load a catalog from a file with a temporary loader."""
    return CatalogLoader().load(path)


def load_catalog_from_string(content: str, format: str = "yaml") -> Catalog:
    """
    Load a catalog from a string.

    Args:
        content: YAML or JSON string
        format: "yaml" or "json"
    """
    try:
        if format.lower() == "json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise CatalogLoadError(
            message=f"Failed to parse catalog: {e}",
            details={"errors": [str(e)]},
        )
    return build_catalog(data)
