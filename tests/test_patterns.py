"""
Tests for the violation pattern engine

Validates:
- Catalog pattern templates (occurrences, span, confidence)
- Synthesized escalating, recurring and statute-cluster patterns
- Amplification rules, temporal gap and sequence requirements
- Amplified strength stays within [baseStrength, 1]
- Legal theory aggregation and its thresholds
"""

import pytest
import yaml

from casedossier.catalog import load_catalog_from_string
from casedossier.engine.pattern_engine import (
    ViolationPatternEngine,
    apply_rule,
    detect_clusters,
    detect_escalating,
    detect_recurring,
    temporal_requirement_met,
)
from casedossier.models import PatternType, Significance

from conftest import accuracy_letter, make_violation, utc


# ============================================================================
# FIXTURES
# ============================================================================

def amplification_catalog(sequence_required=False):
    """Two statutes and a single 1.5x rule with a 30 day window."""
    return load_catalog_from_string(yaml.safe_dump({
        "version": "1.0.0",
        "statutes": [{"id": "FCRA-1681e-b"}, {"id": "FCRA-1681i-a"}],
        "amplificationRules": [
            {
                "id": "accuracy_then_reinvestigation",
                "primaryStatute": "FCRA-1681e-b",
                "secondaryStatute": "FCRA-1681i-a",
                "factor": 1.5,
                "type": "multiplicative",
                "maxGap": "30d",
                "sequenceRequired": sequence_required,
            }
        ],
    }))


def rule_named(catalog, rule_id):
    return next(r for r in catalog.amplification_rules if r.id == rule_id)


def amplified_for(analysis, violation):
    return next(a for a in analysis.amplified_violations if a.id == violation.id)


# ============================================================================
# AMPLIFICATION
# ============================================================================

def test_rule_amplifies_primary():
    """0.6 * 1.5 when the secondary lands within the window."""
    primary = make_violation("FCRA-1681e-b", "doc-a1", 0.6, utc(2024, 1, 10))
    secondary = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 20))

    analysis = ViolationPatternEngine(amplification_catalog()).analyze([primary, secondary])

    amplified = amplified_for(analysis, primary)
    assert amplified.amplified_strength == pytest.approx(0.9)
    assert [s.source_id for s in amplified.sources] == ["accuracy_then_reinvestigation"]
    assert amplified.sources[0].delta == pytest.approx(0.3)

    untouched = amplified_for(analysis, secondary)
    assert untouched.amplified_strength == 0.6
    assert untouched.sources == ()


def test_amplified_strength_clamped_to_one():
    primary = make_violation("FCRA-1681e-b", "doc-a1", 0.8, utc(2024, 1, 10))
    secondary = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 20))

    analysis = ViolationPatternEngine(amplification_catalog()).analyze([primary, secondary])

    assert amplified_for(analysis, primary).amplified_strength == 1.0


def test_secondary_outside_window():
    primary = make_violation("FCRA-1681e-b", "doc-a1", 0.6, utc(2024, 1, 10))
    secondary = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 3, 10))

    analysis = ViolationPatternEngine(amplification_catalog()).analyze([primary, secondary])

    amplified = amplified_for(analysis, primary)
    assert amplified.amplified_strength == 0.6
    assert amplified.sources == ()


def test_sequence_required_blocks_reversed_order():
    primary = make_violation("FCRA-1681e-b", "doc-a1", 0.6, utc(2024, 1, 20))
    secondary = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 10))

    ordered = ViolationPatternEngine(amplification_catalog()).analyze([primary, secondary])
    sequenced = ViolationPatternEngine(
        amplification_catalog(sequence_required=True)
    ).analyze([primary, secondary])

    assert amplified_for(ordered, primary).amplified_strength == pytest.approx(0.9)
    assert amplified_for(sequenced, primary).amplified_strength == 0.6


def test_undated_pair_cannot_satisfy_sequence():
    catalog = amplification_catalog(sequence_required=True)
    rule = catalog.amplification_rules[0]
    primary = make_violation("FCRA-1681e-b", "doc-a1", 0.6)
    secondary = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 10))

    assert not temporal_requirement_met(primary, secondary, rule)
    assert temporal_requirement_met(
        primary, secondary, amplification_catalog().amplification_rules[0]
    )


@pytest.mark.parametrize("rule_id,expected", [
    ("fcra_systematic_amplification", 0.75),
    ("multiple_defendant_amplification", 0.63),
    ("willful_reinvestigation_amplification", 0.62),
    ("obsolete_reporting_amplification", 0.555),
])
def test_apply_rule_by_type(catalog, rule_id, expected):
    assert apply_rule(0.5, rule_named(catalog, rule_id)) == pytest.approx(expected)


# ============================================================================
# PATTERN DETECTION
# ============================================================================

def test_compound_template(catalog):
    accuracy = make_violation("FCRA-1681e-b", "doc-a1", 0.7, utc(2024, 1, 10))
    reinvestigation = make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 20))

    analysis = ViolationPatternEngine(catalog).analyze([accuracy, reinvestigation])

    compound = [p for p in analysis.patterns if p.pattern_type == PatternType.COMPOUND]
    assert len(compound) == 1
    assert compound[0].template_id == "fcra_compound_violations"
    assert compound[0].significance == Significance.HIGH
    assert compound[0].strength == pytest.approx(0.85)
    assert compound[0].violation_ids == tuple(sorted([accuracy.id, reinvestigation.id]))

    # Rule (x1.5) plus pattern bonus, clamped
    assert amplified_for(analysis, accuracy).amplified_strength == 1.0
    assert amplified_for(analysis, reinvestigation).amplified_strength == pytest.approx(
        0.6 + 0.15 * 0.85
    )


def test_template_span_exceeded(catalog):
    accuracy = make_violation("FCRA-1681e-b", "doc-a1", 0.7, utc(2024, 1, 1))
    reinvestigation = make_violation("FCRA-1681i-a", "doc-b2", 0.7, utc(2024, 8, 1))

    analysis = ViolationPatternEngine(catalog).analyze([accuracy, reinvestigation])
    assert analysis.patterns == ()


def test_escalating(catalog):
    violations = [
        make_violation("FCRA-1681b", "doc-a1", 0.5, utc(2024, 1, 1)),
        make_violation("FCRA-1681g", "doc-b2", 0.6, utc(2024, 1, 5)),
        make_violation("FCRA-1681s-2b", "doc-c3", 0.7, utc(2024, 3, 1)),
    ]

    pattern = detect_escalating(violations, catalog.scoring)

    assert pattern.pattern_type == PatternType.ESCALATING
    assert pattern.strength == pytest.approx(0.75)
    assert detect_recurring(violations, catalog.scoring) is None


def test_recurring(catalog):
    violations = [
        make_violation("FCRA-1681b", "doc-a1", 0.6, utc(2024, 1, 1)),
        make_violation("FCRA-1681g", "doc-b2", 0.6, utc(2024, 1, 31)),
        make_violation("FCRA-1681s-2b", "doc-c3", 0.6, utc(2024, 3, 1)),
    ]

    pattern = detect_recurring(violations, catalog.scoring)

    assert pattern.pattern_type == PatternType.RECURRING
    assert pattern.temporal.frequency == "monthly"
    assert pattern.temporal.span_days == 60
    assert detect_escalating(violations, catalog.scoring) is None


def test_sequences_need_three_dated(catalog):
    violations = [
        make_violation("FCRA-1681b", "doc-a1", 0.5, utc(2024, 1, 1)),
        make_violation("FCRA-1681g", "doc-b2", 0.6, utc(2024, 2, 1)),
        make_violation("FCRA-1681s-2b", "doc-c3", 0.7),
    ]
    assert detect_escalating(violations, catalog.scoring) is None
    assert detect_recurring(violations, catalog.scoring) is None


def test_statute_cluster(catalog):
    violations = [
        make_violation("FCRA-1681e-b", "doc-a1", 0.7),
        make_violation("FCRA-1681e-b", "doc-b2", 0.7),
        make_violation("FCRA-1681m-a", "doc-c3", 0.7),
    ]

    patterns = detect_clusters(violations, catalog.scoring)

    assert len(patterns) == 1
    assert patterns[0].pattern_type == PatternType.SYSTEMATIC
    assert patterns[0].doc_ids == ("doc-a1", "doc-b2")
    assert patterns[0].temporal.frequency == "undated"


# ============================================================================
# LEGAL THEORIES
# ============================================================================

def test_willful_theory_needs_strictly_more_than_threshold(catalog):
    """A lone 0.7 violation is not above the 0.7 willful minimum."""
    violation = make_violation("FCRA-1681b", "doc-a1", 0.7)

    analysis = ViolationPatternEngine(catalog).analyze([violation])

    assert [t.template_id for t in analysis.theories] == ["systematic_violation_theory"]
    assert analysis.theories[0].strength == pytest.approx(0.8)


def test_weak_theory_dropped(catalog):
    violation = make_violation("FCRA-1681b", "doc-a1", 0.35)
    assert ViolationPatternEngine(catalog).analyze([violation]).theories == ()


def test_non_fcra_violations_skip_statute_theory(catalog):
    violation = make_violation("ECOA-1691-d", "doc-a1", 0.6)
    assert ViolationPatternEngine(catalog).analyze([violation]).theories == ()


# ============================================================================
# INVARIANTS
# ============================================================================

def test_amplification_bounds_hold(catalog):
    violations = [
        make_violation("FCRA-1681e-b", "doc-a1", 0.9, utc(2024, 1, 1)),
        make_violation("FCRA-1681e-b", "doc-b2", 0.4, utc(2024, 1, 2)),
        make_violation("FCRA-1681i-a", "doc-c3", 0.8, utc(2024, 1, 3)),
        make_violation("FCRA-1681m-a", "doc-d4", 0.5, utc(2024, 1, 4)),
    ]

    analysis = ViolationPatternEngine(catalog).analyze(violations)

    assert len(analysis.amplified_violations) == len(violations)
    for amplified in analysis.amplified_violations:
        assert amplified.base_strength <= amplified.amplified_strength <= 1.0


def test_analysis_is_order_independent(catalog):
    violations = [
        make_violation("FCRA-1681e-b", "doc-a1", 0.7, utc(2024, 1, 10)),
        make_violation("FCRA-1681i-a", "doc-b2", 0.6, utc(2024, 1, 20)),
        make_violation("FCRA-1681e-b", "doc-c3", 0.8, utc(2024, 2, 1)),
    ]
    engine = ViolationPatternEngine(catalog)

    assert engine.analyze(violations) == engine.analyze(list(reversed(violations)))


# ============================================================================
# PIPELINE
# ============================================================================

def test_repeated_accuracy_violations_form_pattern(run):
    dossier = run([
        ("letter_january.txt", accuracy_letter("2024-01-10")),
        ("letter_march.txt", accuracy_letter("2024-03-10")),
    ])

    assert len(dossier.violations) == 2
    assert len(dossier.patterns) == 1
    pattern = dossier.patterns[0]
    assert pattern.pattern_type == PatternType.SYSTEMATIC
    assert len(pattern.violation_ids) == 2
    assert pattern.strength == pytest.approx(0.8)
    assert pattern.temporal.span_days == 60

    for amplified in dossier.amplified_violations:
        assert amplified.amplified_strength == pytest.approx(0.7 + 0.15 * 0.8)

    theory_ids = [t.template_id for t in dossier.theories]
    assert "willful_violation_theory" in theory_ids
