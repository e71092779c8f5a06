"""
Tests for the pattern catalog loader

Validates:
- Bundled catalog loads and exposes every table
- Uncompilable regex fails the whole catalog
- Unknown enum names and statute references are reported
- Incompatible major version fails
- Determinism: same YAML -> same fingerprint
"""

import json

import pytest
import yaml

from casedossier.catalog import (
    DEFAULT_CATALOG_PATH,
    CatalogLoader,
    DefaultCatalogProvider,
    FileCatalogProvider,
    StaticCatalogProvider,
    load_catalog,
    load_catalog_from_string,
    parse_duration,
)
from casedossier.exceptions import CatalogInvalidError, CatalogLoadError, CatalogVersionError
from casedossier.models import AmplificationType, EventKind, FactKind, Kind


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def minimal_catalog():
    """Minimal valid catalog for testing."""
    return {
        "version": "1.0.0",
        "name": "minimal",
        "kinds": {
            "AdverseAction": {
                "filenameTokens": ["adverse"],
                "headerRegexes": ["ADVERSE ACTION NOTICE"],
            },
        },
        "factExtractors": [
            {
                "name": "client",
                "appliesTo": "AdverseAction",
                "factKind": "ClientName",
                "regex": r"Dear (?P<value>[A-Z][a-z]+)",
                "category": "header",
            }
        ],
        "statutes": [{"id": "FCRA-1681m-a"}],
        "violationSignatures": [
            {
                "statuteId": "FCRA-1681m-a",
                "triggers": ["adverse action"],
                "violationKind": "negligent",
            }
        ],
    }


@pytest.fixture
def catalog_file(minimal_catalog, tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(yaml.safe_dump(minimal_catalog), encoding="utf-8")
    return path


def _errors_of(excinfo):
    return " | ".join(excinfo.value.errors)


# ============================================================================
# BUNDLED CATALOG
# ============================================================================

def test_default_catalog_loads(catalog):
    """The bundled catalog validates and fills every table."""
    assert catalog.version == "1.0.0"
    assert len(catalog.fingerprint) == 64
    assert Kind.ADVERSE_ACTION in catalog.kinds
    assert catalog.fact_extractors
    assert catalog.event_extractors
    assert catalog.statute("FCRA-1681e-b") is not None
    assert catalog.amplification_rules
    assert catalog.pattern_templates
    assert catalog.theory_templates
    assert catalog.chain_templates
    assert catalog.link_rules
    assert catalog.causal_templates
    assert catalog.timeline_deadlines


def test_default_catalog_accessors(catalog):
    names = [e.name for e in catalog.extractors_for(Kind.ATTORNEY_NOTES)]
    assert "notes_client_name" in names
    assert all(Kind.ATTORNEY_NOTES in e.applies_to for e in catalog.extractors_for(Kind.ATTORNEY_NOTES))

    rules = catalog.rules_for_primary("FCRA-1681e-b")
    assert [r.id for r in rules] == ["fcra_systematic_amplification"]
    assert rules[0].amplification_type == AmplificationType.MULTIPLICATIVE

    template = catalog.causal_template(EventKind.CASE_FILED, EventKind.SUMMONS_SERVED)
    assert template is not None and template.strength == 0.95


def test_correlation_reliability_overrides_profile(catalog):
    assert catalog.reliability(Kind.ATTORNEY_NOTES) == 0.95
    assert catalog.reliability(Kind.OTHER) == 0.3


def test_default_provider_is_cached():
    provider = DefaultCatalogProvider()
    assert provider.load() is provider.load()
    assert provider.path == DEFAULT_CATALOG_PATH


# ============================================================================
# LOADING
# ============================================================================

def test_load_valid_catalog(catalog_file):
    catalog = load_catalog(catalog_file)

    assert catalog.name == "minimal"
    assert len(catalog.fact_extractors) == 1
    assert catalog.fact_extractors[0].fact_kind == FactKind.CLIENT_NAME
    assert catalog.kind_profile(Kind.SUMMONS).header_patterns == ()


def test_load_json_catalog(minimal_catalog, tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(minimal_catalog), encoding="utf-8")

    assert load_catalog(path).name == "minimal"


def test_file_not_found(tmp_path):
    with pytest.raises(CatalogLoadError):
        load_catalog(tmp_path / "missing.yaml")


def test_malformed_yaml():
    with pytest.raises(CatalogLoadError):
        load_catalog_from_string("version: [1.0.0\nkinds: {")


def test_top_level_must_be_mapping():
    with pytest.raises(CatalogInvalidError):
        load_catalog_from_string("- just\n- a list\n")


def test_static_provider_returns_catalog(catalog):
    assert StaticCatalogProvider(catalog).load() is catalog


def test_loader_remembers_catalog_by_fingerprint(catalog_file):
    loader = CatalogLoader()
    catalog = loader.load(catalog_file)
    assert loader.get_catalog(catalog.fingerprint) is catalog


def test_file_provider_reports_invalid_catalog(minimal_catalog, tmp_path):
    minimal_catalog["factExtractors"][0]["regex"] = "(unclosed"
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump(minimal_catalog), encoding="utf-8")

    with pytest.raises(CatalogInvalidError):
        FileCatalogProvider(path).load()


# ============================================================================
# VALIDATION
# ============================================================================

def test_uncompilable_regex_fails_whole_catalog(minimal_catalog):
    """One bad regex rejects the catalog; nothing partial is returned."""
    minimal_catalog["kinds"]["AdverseAction"]["bodyRegexes"] = ["[unterminated"]

    with pytest.raises(CatalogInvalidError) as excinfo:
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))

    assert "[unterminated" in _errors_of(excinfo)
    assert excinfo.value.code == "CD_CATALOG_INVALID"


def test_all_errors_reported_together(minimal_catalog):
    minimal_catalog["kinds"]["AdverseAction"]["bodyRegexes"] = ["(bad"]
    minimal_catalog["factExtractors"][0]["factKind"] = "NotAFactKind"
    minimal_catalog["violationSignatures"][0]["statuteId"] = "NO-SUCH-STATUTE"

    with pytest.raises(CatalogInvalidError) as excinfo:
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))

    errors = _errors_of(excinfo)
    assert "(bad" in errors
    assert "NotAFactKind" in errors
    assert "NO-SUCH-STATUTE" in errors


def test_unknown_kind_name(minimal_catalog):
    minimal_catalog["kinds"]["Subpoena"] = {"headerRegexes": ["SUBPOENA"]}

    with pytest.raises(CatalogInvalidError) as excinfo:
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))

    assert "Subpoena" in _errors_of(excinfo)


def test_unknown_key_rejected(minimal_catalog):
    minimal_catalog["factExtractors"][0]["weight"] = 0.5

    with pytest.raises(CatalogInvalidError):
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))


def test_confidence_out_of_range(minimal_catalog):
    minimal_catalog["factExtractors"][0]["baseConfidence"] = 1.5

    with pytest.raises(CatalogInvalidError):
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))


def test_duplicate_extractor_names(minimal_catalog):
    minimal_catalog["factExtractors"].append(dict(minimal_catalog["factExtractors"][0]))

    with pytest.raises(CatalogInvalidError) as excinfo:
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))

    assert "duplicate" in _errors_of(excinfo)


def test_invalid_duration(minimal_catalog):
    minimal_catalog["amplificationRules"] = [
        {
            "id": "rule",
            "primaryStatute": "FCRA-1681m-a",
            "secondaryStatute": "FCRA-1681m-a",
            "factor": 1.5,
            "type": "multiplicative",
            "maxGap": "thirty days",
        }
    ]

    with pytest.raises(CatalogInvalidError):
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))


def test_major_version_mismatch(minimal_catalog):
    minimal_catalog["version"] = "2.0.0"

    with pytest.raises(CatalogVersionError):
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))


def test_theory_template_needs_predicate(minimal_catalog):
    minimal_catalog["theoryTemplates"] = [{"id": "empty", "theoryType": "none"}]

    with pytest.raises(CatalogInvalidError):
        load_catalog_from_string(yaml.safe_dump(minimal_catalog))


# ============================================================================
# DETERMINISM
# ============================================================================

def test_same_content_same_fingerprint(minimal_catalog):
    first = load_catalog_from_string(yaml.safe_dump(minimal_catalog))
    second = load_catalog_from_string(json.dumps(minimal_catalog), format="json")

    assert first.fingerprint == second.fingerprint


def test_changed_content_changes_fingerprint(minimal_catalog):
    first = load_catalog_from_string(yaml.safe_dump(minimal_catalog))
    minimal_catalog["name"] = "renamed"
    second = load_catalog_from_string(yaml.safe_dump(minimal_catalog))

    assert first.fingerprint != second.fingerprint


@pytest.mark.parametrize("text,days", [("7d", 7), ("24h", 1), ("90d", 90)])
def test_parse_duration(text, days):
    assert parse_duration(text).total_seconds() == days * 86400


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("a week")
