"""
CaseDossier Engine

Pipeline stages and the assembler that runs them.

Stages:
- classify: Primary Kind and ranked secondaries per document
- FactExtractor: Facts, violations, events and evidence per document
- Correlator: Cross-document fact matches, conflicts and reliability
- TimelineBuilder: Unified timeline with derived features
- ViolationPatternEngine: Patterns, amplification and legal theories
- EvidenceChainBuilder: Template-driven evidence chains
- DossierAssembler: Stage graph, worker pool, cancellation and timeouts

Usage:
    from casedossier.engine import DossierAssembler, CancellationToken

    token = CancellationToken()
    dossier = DossierAssembler(catalog).assemble(paths, token)
"""
from __future__ import annotations

from .assembler import DossierAssembler, build_dossier
from .chain_builder import EvidenceChainBuilder
from .classifier import KindScore, classify, score_document
from .correlator import Correlator, conflict_severity, correlate_pair, value_similarity
from .executor import (
    CancellationToken,
    Checkpoint,
    Deadline,
    ExecutorStrategy,
    SequentialStrategy,
    ThreadPoolStrategy,
    create_strategy,
)
from .extractor import Extraction, FactExtractor
from .invariants import check_invariants
from .normalize import parse_date, parse_money
from .pattern_engine import ViolationPatternEngine
from .reader import DocumentReader, InMemoryReader, PlainTextReader, decode_document
from .timeline_builder import TimelineBuilder

__all__ = [
    # Assembly
    "DossierAssembler",
    "build_dossier",
    "check_invariants",
    # Stages
    "classify",
    "score_document",
    "KindScore",
    "FactExtractor",
    "Extraction",
    "Correlator",
    "correlate_pair",
    "conflict_severity",
    "value_similarity",
    "TimelineBuilder",
    "ViolationPatternEngine",
    "EvidenceChainBuilder",
    # Execution
    "CancellationToken",
    "Checkpoint",
    "Deadline",
    "ExecutorStrategy",
    "SequentialStrategy",
    "ThreadPoolStrategy",
    "create_strategy",
    # Reading
    "DocumentReader",
    "PlainTextReader",
    "InMemoryReader",
    "decode_document",
    # Normalization
    "parse_date",
    "parse_money",
]
