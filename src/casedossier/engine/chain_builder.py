"""
CaseDossier Evidence Chain Builder

Builds template-driven evidence chains from facts, violations and
evidence items.

Per chain template:
1. Promote candidate elements whose kind the template names
2. Score links between every ordered candidate pair with each link rule
3. Keep the largest connected component
4. Validate (structure, no causal + contradictory between one pair)
5. Score; below 0.7 the weakest 20% of links are dropped and the chain
   is re-scored
6. Emit when strength >= the template threshold

Link strength:
    base + wc * mean(confidence) + wr * mean(relevance) + wt * temporal

Chain strength:
    ((mean(link strength) + mean(element confidence)) / 2)
    * min(1.2, |elements| / minLength), clamped to 1
"""
from __future__ import annotations

import logging
from collections import defaultdict
from statistics import fmean
from typing import Iterable, Optional, Sequence

from ..canon import stable_id
from ..catalog import Catalog, ChainTemplate, LinkRule, Scoring
from ..models import (
    EVIDENCE_ELEMENT,
    VIOLATION_ELEMENT,
    ChainElement,
    ChainLink,
    EvidenceChain,
    EvidenceItem,
    Fact,
    LinkCondition,
    LinkKind,
    Violation,
    ordinal,
)
from .correlator import value_similarity
from .extractor import earliest_date, fact_instant

logger = logging.getLogger(__name__)

EVIDENCE_RELEVANCE = 0.6
VIOLATION_RELEVANCE = 1.0
CONSISTENT_LINKS = frozenset({LinkKind.SUPPORTING, LinkKind.CORROBORATIVE})


# =============================================================================
# Elements
# =============================================================================

def fact_element(fact: Fact) -> ChainElement:
    return ChainElement(
        id=fact.id,
        kind=fact.kind.value,
        doc_id=fact.doc_id,
        confidence=fact.confidence,
        relevance=fact.relevance.weight,
        value=fact.value,
        instant=fact_instant(fact),
    )


def violation_element(violation: Violation) -> ChainElement:
    return ChainElement(
        id=violation.id,
        kind=VIOLATION_ELEMENT,
        doc_id=violation.source_doc_id,
        confidence=violation.base_strength,
        relevance=VIOLATION_RELEVANCE,
        value=violation.statute_id,
        instant=violation.occurrence,
    )


def evidence_element(item: EvidenceItem, facts: Sequence[Fact]) -> ChainElement:
    return ChainElement(
        id=item.id,
        kind=EVIDENCE_ELEMENT,
        doc_id=item.doc_id,
        confidence=item.confidence,
        relevance=EVIDENCE_RELEVANCE,
        value=item.description,
        instant=earliest_date(tuple(f for f in facts if f.doc_id == item.doc_id)),
    )


def build_elements(
    facts: Sequence[Fact],
    violations: Sequence[Violation],
    evidence: Sequence[EvidenceItem],
) -> list[ChainElement]:
    elements = [fact_element(f) for f in facts]
    elements.extend(violation_element(v) for v in violations)
    elements.extend(evidence_element(e, facts) for e in evidence)
    return elements


def _timeline_key(element: ChainElement) -> tuple:
    """Dated elements first, by instant; then document and id."""
    if element.instant is None:
        return (1, "", element.doc_id, element.id)
    return (0, element.instant.isoformat(), element.doc_id, element.id)


def select_candidates(
    template: ChainTemplate, elements: Sequence[ChainElement]
) -> Optional[list[ChainElement]]:
    """
    Candidates for a template, or None when the template cannot be met.

    The most relevant ``maxCandidates`` elements are kept, then ordered
    along the timeline.
    """
    wanted = template.element_kinds
    matching = [e for e in elements if e.kind in wanted]
    ranked = sorted(matching, key=lambda e: (-e.relevance, -e.confidence, e.id))
    chosen = ranked[: template.max_candidates]

    present = {e.kind for e in chosen}
    if any(kind not in present for kind in template.required_element_kinds):
        return None
    if len(chosen) < template.min_length:
        return None
    return sorted(chosen, key=_timeline_key)


# =============================================================================
# Links
# =============================================================================

def temporal_score(a: ChainElement, b: ChainElement, scoring: Scoring) -> float:
    if a.instant is None or b.instant is None:
        return scoring.chain_undated_temporal_score
    distance = abs(b.instant - a.instant) / scoring.chain_temporal_horizon
    return max(0.0, 1.0 - distance)


def condition_holds(
    condition: LinkCondition, a: ChainElement, b: ChainElement, scoring: Scoring
) -> bool:
    if condition == LinkCondition.SAME_KIND:
        return a.kind == b.kind
    if condition == LinkCondition.DIFFERENT_KIND:
        return a.kind != b.kind
    if condition == LinkCondition.CROSS_DOCUMENT:
        return a.doc_id != b.doc_id
    if condition == LinkCondition.CONFLICTING_VALUE:
        return (
            a.kind == b.kind
            and value_similarity(a.value, b.value) < scoring.conflict_threshold
        )
    return True


def score_link(
    rule: LinkRule, a: ChainElement, b: ChainElement, scoring: Scoring
) -> float:
    strength = (
        rule.base_strength
        + rule.confidence_weight * (a.confidence + b.confidence) / 2
        + rule.relevance_weight * (a.relevance + b.relevance) / 2
        + rule.temporal_weight * temporal_score(a, b, scoring)
    )
    return min(1.0, strength)


def generate_links(
    candidates: Sequence[ChainElement],
    rules: Sequence[LinkRule],
    scoring: Scoring,
) -> list[ChainLink]:
    links = []
    for i, a in enumerate(candidates):
        for b in candidates[i + 1:]:
            for rule in rules:
                if not condition_holds(rule.when, a, b, scoring):
                    continue
                strength = score_link(rule, a, b, scoring)
                if strength >= rule.confidence_threshold:
                    links.append(ChainLink(a.id, b.id, rule.kind, strength))
    return links


def largest_component(
    candidates: Sequence[ChainElement], links: Sequence[ChainLink]
) -> tuple[list[ChainElement], list[ChainLink]]:
    """
    Largest connected component, links treated as undirected.

    Ties go to the component holding the smallest element id.
    """
    adjacency: dict[str, set[str]] = defaultdict(set)
    for link in links:
        adjacency[link.from_id].add(link.to_id)
        adjacency[link.to_id].add(link.from_id)

    seen: set[str] = set()
    best: set[str] = set()
    for element_id in sorted(e.id for e in candidates):
        if element_id in seen:
            continue
        component = {element_id}
        stack = [element_id]
        while stack:
            for neighbour in adjacency[stack.pop()]:
                if neighbour not in component:
                    component.add(neighbour)
                    stack.append(neighbour)
        seen |= component
        if len(component) > len(best):
            best = component

    elements = [e for e in candidates if e.id in best]
    kept = [link for link in links if link.from_id in best and link.to_id in best]
    return elements, kept


# =============================================================================
# Validation and Scoring
# =============================================================================

def validation_failures(
    elements: Sequence[ChainElement], links: Sequence[ChainLink], scoring: Scoring
) -> list[str]:
    failures = []
    if len(elements) < scoring.chain_min_structural_length:
        failures.append("structural")
    kinds_by_pair: dict[frozenset, set[LinkKind]] = defaultdict(set)
    for link in links:
        kinds_by_pair[frozenset((link.from_id, link.to_id))].add(link.kind)
    if any({LinkKind.CAUSAL, LinkKind.CONTRADICTORY} <= kinds for kinds in kinds_by_pair.values()):
        failures.append("logical")
    return failures


def chain_strength(
    elements: Sequence[ChainElement],
    links: Sequence[ChainLink],
    template: ChainTemplate,
    scoring: Scoring,
) -> float:
    if not elements or not links:
        return 0.0
    base = (fmean(l.strength for l in links) + fmean(e.confidence for e in elements)) / 2
    length_factor = min(scoring.chain_length_factor_cap, len(elements) / template.min_length)
    return min(1.0, base * length_factor)


def chain_quality(
    strength: float,
    elements: Sequence[ChainElement],
    links: Sequence[ChainLink],
    scoring: Scoring,
) -> float:
    completeness = (
        min(1.0, len(elements) / scoring.chain_completeness_elements)
        + min(1.0, len(links) / scoring.chain_completeness_links)
    ) / 2
    consistency = (
        sum(1 for link in links if link.kind in CONSISTENT_LINKS) / len(links)
        if links else 0.0
    )
    return fmean((strength, completeness, consistency))


def drop_weakest(links: Sequence[ChainLink], fraction: float) -> list[ChainLink]:
    count = int(len(links) * fraction)
    if count == 0:
        return list(links)
    weakest = sorted(
        links, key=lambda l: (l.strength, l.from_id, l.to_id, ordinal(l.kind))
    )[:count]
    dropped = {(l.from_id, l.to_id, l.kind) for l in weakest}
    return [l for l in links if (l.from_id, l.to_id, l.kind) not in dropped]


# =============================================================================
# Chain Builder
# =============================================================================

class EvidenceChainBuilder:
    """
    Builds evidence chains for every catalog chain template.

    Usage:
        builder = EvidenceChainBuilder(catalog)
        chains = builder.build(facts, violations, evidence_items)
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def build_chain(
        self, template: ChainTemplate, elements: Sequence[ChainElement]
    ) -> Optional[EvidenceChain]:
        """Build one chain, or None when the template yields nothing valid."""
        scoring = self.catalog.scoring
        candidates = select_candidates(template, elements)
        if candidates is None:
            return None

        links = generate_links(candidates, self.catalog.link_rules, scoring)
        members, kept = largest_component(candidates, links)
        if validation_failures(members, kept, scoring):
            return None

        strength = chain_strength(members, kept, template, scoring)
        if strength < scoring.chain_optimize_below:
            pruned = drop_weakest(kept, scoring.chain_drop_fraction)
            if len(pruned) != len(kept):
                members, kept = largest_component(members, pruned)
                if validation_failures(members, kept, scoring):
                    return None
                strength = chain_strength(members, kept, template, scoring)

        if strength < template.strength_threshold:
            logger.debug(
                "Chain template %s below threshold (%.3f < %.3f)",
                template.id, strength, template.strength_threshold,
                extra={"stage": "chains"},
            )
            return None

        return EvidenceChain(
            id=stable_id("chain", template.id, *sorted(e.id for e in members)),
            template_id=template.id,
            chain_type=template.chain_type,
            elements=tuple(members),
            links=tuple(kept),
            strength=strength,
            quality=chain_quality(strength, members, kept, scoring),
        )

    def build(
        self,
        facts: Sequence[Fact],
        violations: Sequence[Violation],
        evidence: Iterable[EvidenceItem] = (),
    ) -> tuple[EvidenceChain, ...]:
        """
        Build chains in catalog template order.

        Inputs are sorted by id first, so the chains do not depend on the
        order the documents were extracted in.
        """
        elements = build_elements(
            sorted(facts, key=lambda f: f.id),
            sorted(violations, key=lambda v: v.id),
            sorted(evidence, key=lambda e: e.id),
        )
        chains = []
        for template in self.catalog.chain_templates:
            chain = self.build_chain(template, elements)
            if chain is not None:
                chains.append(chain)
        logger.info(
            "Built %d evidence chains from %d elements",
            len(chains), len(elements),
            extra={"stage": "chains"},
        )
        return tuple(chains)
