"""
Tests for dossier invariant checks

Validates:
- A pipeline dossier passes every check
- Each check names itself when it fails
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from casedossier.engine.invariants import INVARIANTS, check_invariants
from casedossier.exceptions import InternalInvariantViolation
from casedossier.models import ChainLink, LinkKind, Precision


@pytest.fixture(scope="module")
def dossier(catalog):
    from casedossier import Settings, build_dossier
    from conftest import ADVERSE_ACTION_TEXT, ATTORNEY_NOTES_TEXT, SUMMONS_TEXT, accuracy_letter

    return build_dossier(
        [
            ("adverse_action_letter.txt", ADVERSE_ACTION_TEXT),
            ("attorney_notes.txt", ATTORNEY_NOTES_TEXT),
            ("summons.txt", SUMMONS_TEXT),
            ("letter_january.txt", accuracy_letter("2024-01-10")),
        ],
        catalog,
        Settings(workers=1),
    )


def failed_invariants(dossier):
    with pytest.raises(InternalInvariantViolation) as excinfo:
        check_invariants(dossier)
    return excinfo.value.invariants


def test_valid_dossier_passes(dossier):
    assert check_invariants(dossier) == tuple(name for name, _ in INVARIANTS)


def test_raw_value_must_match_span(dossier):
    fact = replace(dossier.facts[0], raw_value="tampered")
    broken = replace(dossier, facts=(fact,) + dossier.facts[1:])

    assert "span_integrity" in failed_invariants(broken)


def test_duplicate_fact_ids(dossier):
    broken = replace(dossier, facts=dossier.facts + dossier.facts[:1])
    assert failed_invariants(broken) == ["unique_ids"]


def test_dangling_reference(dossier):
    violation = replace(dossier.violations[0], supporting_fact_ids=("fact-000000000000",))
    broken = replace(dossier, violations=(violation,) + dossier.violations[1:])

    assert "references" in failed_invariants(broken)


def test_amplified_below_base(dossier):
    amplified = dossier.amplified_violations[0]
    lowered = replace(amplified, amplified_strength=amplified.base_strength - 0.1)
    broken = replace(
        dossier, amplified_violations=(lowered,) + dossier.amplified_violations[1:]
    )

    assert failed_invariants(broken) == ["amplification_bounds"]


def test_chain_link_leaving_chain(dossier):
    chain = dossier.chains[0]
    stray = ChainLink(chain.elements[0].id, "fact-000000000000", LinkKind.SUPPORTING, 0.9)
    broken = replace(
        dossier, chains=(replace(chain, links=chain.links + (stray,)),) + dossier.chains[1:]
    )

    assert failed_invariants(broken) == ["chain_links"]


def test_merged_exact_event_sources_disagree(dossier):
    event = dossier.timeline.events[0]
    merged = replace(
        event,
        precision=Precision.EXACT,
        source_instants=(event.instant, event.instant + timedelta(hours=8)),
    )
    timeline = replace(dossier.timeline, events=(merged,) + dossier.timeline.events[1:])
    broken = replace(dossier, timeline=timeline)

    assert failed_invariants(broken) == ["event_precision"]


def test_timeline_out_of_order(dossier):
    timeline = replace(dossier.timeline, events=tuple(reversed(dossier.timeline.events)))
    broken = replace(dossier, timeline=timeline)

    assert failed_invariants(broken) == ["timeline_order"]


def test_error_carries_problems(dossier):
    fact = replace(dossier.facts[0], raw_value="tampered")
    broken = replace(dossier, facts=(fact,) + dossier.facts[1:])

    with pytest.raises(InternalInvariantViolation) as excinfo:
        check_invariants(broken)

    assert excinfo.value.code == "CD_INVARIANT_VIOLATION"
    assert any("does not match" in p for p in excinfo.value.details["problems"])
