"""
CaseDossier Dossier Assembler

Runs the pipeline as an explicit stage graph:

    read ──> classify + extract (per document, worker pool)
         ──> correlate
         ──> { timeline, patterns, chains }   (in parallel)
         ──> assemble ──> invariants ──> output schema

Per-document failures (unreadable, too large, extraction timeout) are
recorded as data: the document stays in the Dossier with
``status=failed`` and its reason, keeps the Kind its filename suggests,
and contributes nothing downstream. Cancellation and invariant failures
are raised and no Dossier is produced.

Every stage sorts its output by deterministic keys, so the Dossier does
not depend on input order or worker count.
"""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Optional, Sequence, Union

from ..canon import stable_id, text_hash
from ..catalog import Catalog, CatalogProvider
from ..config import Settings
from ..exceptions import DocumentError, ExtractionTimeoutError
from ..models import (
    Classification,
    Document,
    DocumentReport,
    DocumentStatus,
    Dossier,
    Fact,
    ReadResult,
    ValidationEntry,
    ValidationLog,
    ValidationReport,
    ordinal,
)
from ..output import validate_output
from .chain_builder import EvidenceChainBuilder
from .classifier import classify
from .correlator import Correlator
from .executor import (
    CancellationToken,
    Checkpoint,
    Deadline,
    ExecutorStrategy,
    collect,
    create_strategy,
)
from .extractor import Extraction, FactExtractor
from .invariants import check_invariants
from .pattern_engine import ViolationPatternEngine
from .reader import DocumentReader, InMemoryReader, PlainTextReader
from .timeline_builder import TimelineBuilder

logger = logging.getLogger(__name__)

DocumentInput = Union[str, "os.PathLike[str]", tuple[str, Union[bytes, str]]]

OUTPUT_SCHEMA_CHECK = "output_schema"


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Log the wall time of one pipeline stage."""
    started = time.perf_counter()
    yield
    logger.info(
        "Stage %s finished", name,
        extra={"stage": name, "duration_ms": round((time.perf_counter() - started) * 1000, 3)},
    )


# =============================================================================
# Stage Values
# =============================================================================

@dataclass(frozen=True)
class ReadOutcome:
    """A read document, or the error that stopped it being read."""
    path: str
    result: Optional[ReadResult] = None
    error: Optional[DocumentError] = None

    @property
    def doc_id(self) -> str:
        if self.result is not None:
            return stable_id("doc", text_hash(self.result.text))
        return stable_id("doc", "unread", self.path)


@dataclass(frozen=True)
class DocumentOutcome:
    """A classified document and everything extracted from it."""
    document: Document
    extraction: Extraction


def dedupe_reads(outcomes: Iterable[ReadOutcome]) -> list[ReadOutcome]:
    """
    One outcome per document id, keeping the smallest path.

    Documents with identical normalized text share an id, so feeding the
    same document twice yields the same Dossier as feeding it once.
    """
    kept: dict[str, ReadOutcome] = {}
    for outcome in outcomes:
        current = kept.get(outcome.doc_id)
        if current is None or outcome.path < current.path:
            kept[outcome.doc_id] = outcome
    return [kept[doc_id] for doc_id in sorted(kept)]


def failed_document(
    doc_id: str,
    path: str,
    error: DocumentError,
    catalog: Catalog,
    text: str = "",
    page_count: int = 0,
    metadata: Optional[dict] = None,
) -> Document:
    """A failed document keeps the Kind its filename alone suggests."""
    classification = classify(path, "", catalog)
    return Document(
        id=doc_id,
        path=path,
        kind=classification.primary,
        primary_confidence=classification.primary_confidence,
        secondaries=classification.secondaries,
        text=text,
        metadata=dict(metadata or {}),
        page_count=page_count,
        status=DocumentStatus.FAILED,
        reason=error.reason,
    )


def fact_order(fact: Fact) -> tuple:
    return (
        fact.doc_id,
        fact.raw_span.offset,
        ordinal(fact.kind),
        fact.raw_span.length,
        fact.value,
    )


# =============================================================================
# Assembler
# =============================================================================

class DossierAssembler:
    """
    Builds a Dossier from a bundle of documents.

    Usage:
        assembler = DossierAssembler(DefaultCatalogProvider(), Settings(workers=4))
        dossier = assembler.assemble(["notes.txt", ("letter.txt", b"Dear ...")])

    Args:
        catalog: A loaded Catalog or a CatalogProvider
        settings: Worker count, timeout and size limit
        reader: Reader for path inputs (plain text files by default)
        strategy: Execution strategy; created per run from settings when None
    """

    def __init__(
        self,
        catalog: Union[Catalog, CatalogProvider],
        settings: Optional[Settings] = None,
        reader: Optional[DocumentReader] = None,
        strategy: Optional[ExecutorStrategy] = None,
    ):
        self.catalog = catalog if isinstance(catalog, Catalog) else catalog.load()
        self.settings = settings or Settings()
        self.reader = reader or PlainTextReader(self.settings.max_document_bytes)
        self._strategy = strategy

        self.extractor = FactExtractor(self.catalog)
        self.correlator = Correlator(self.catalog)
        self.timeline_builder = TimelineBuilder(self.catalog)
        self.pattern_engine = ViolationPatternEngine(self.catalog)
        self.chain_builder = EvidenceChainBuilder(self.catalog)

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def assemble(
        self,
        inputs: Sequence[DocumentInput],
        token: Optional[CancellationToken] = None,
    ) -> Dossier:
        """
        Run the whole pipeline.

        Raises:
            PipelineCancelledError: If the token is cancelled; no Dossier
            InternalInvariantViolation: If the assembled Dossier is inconsistent
            OutputSchemaError: If its serialization does not match the schema
        """
        token = token or CancellationToken()
        token.raise_if_cancelled()
        sources = self._sources(inputs)
        logger.info(
            "Assembling dossier from %d inputs", len(sources),
            extra={"stage": "assemble", "catalog_fingerprint": self.catalog.fingerprint},
        )

        if self._strategy is not None:
            return self._run(sources, token, self._strategy)
        with create_strategy(self.settings.workers) as pool:
            return self._run(sources, token, pool)

    def _sources(self, inputs: Sequence[DocumentInput]) -> list[tuple[str, DocumentReader]]:
        sources: list[tuple[str, DocumentReader]] = []
        for item in inputs:
            if isinstance(item, tuple):
                path, data = item
                memory = InMemoryReader(max_bytes=self.settings.max_document_bytes)
                memory.add(str(path), data)
                sources.append((str(path), memory))
            else:
                sources.append((os.fspath(item), self.reader))
        return sorted(sources, key=lambda s: s[0])

    def _run(
        self,
        sources: list[tuple[str, DocumentReader]],
        token: CancellationToken,
        pool: ExecutorStrategy,
    ) -> Dossier:
        log = ValidationLog()

        with stage("read"):
            reads = dedupe_reads(pool.map(lambda s: self._read(s, token), sources))
            token.raise_if_cancelled()

        with stage("extract"):
            outcomes = pool.map(lambda r: self._process(r, log, token), reads)
            token.raise_if_cancelled()

        documents = [o.document for o in outcomes]
        extractions = [o.extraction for o in outcomes]
        facts = sorted((f for e in extractions for f in e.facts), key=fact_order)
        violations = sorted((v for e in extractions for v in e.violations), key=lambda v: v.id)
        events = [ev for e in extractions for ev in e.events]
        evidence = sorted(
            (e.evidence for e in extractions if e.evidence is not None), key=lambda e: e.id
        )
        facts_by_doc = {e.doc_id: e.facts for e in extractions}

        with stage("correlate"):
            correlation = self.correlator.correlate(documents, facts_by_doc, pool)
            token.raise_if_cancelled()

        with stage("analyze"):
            reliability = dict(correlation.reliability)
            timeline, analysis, chains = collect([
                pool.submit(self.timeline_builder.build, events, reliability),
                pool.submit(self.pattern_engine.analyze, violations),
                pool.submit(self.chain_builder.build, facts, violations, evidence),
            ])
            token.raise_if_cancelled()

        report = ValidationReport(
            documents=tuple(
                DocumentReport(
                    doc_id=d.id,
                    path=d.path,
                    status=d.status.value,
                    reason=d.reason,
                    entries=log.entries_for(d.id),
                )
                for d in documents
            ),
            consistency=correlation.consistency,
        )
        dossier = Dossier(
            docs=tuple(documents),
            facts=tuple(facts),
            correlations=correlation.correlations,
            timeline=timeline,
            patterns=analysis.patterns,
            amplified_violations=analysis.amplified_violations,
            theories=analysis.theories,
            chains=chains,
            validation_report=report,
            violations=tuple(violations),
            evidence_items=tuple(evidence),
            catalog_fingerprint=self.catalog.fingerprint,
            reliability=correlation.reliability,
        )

        with stage("validate"):
            checked = check_invariants(dossier)
            dossier = replace(
                dossier,
                validation_report=replace(
                    report, invariants_checked=checked + (OUTPUT_SCHEMA_CHECK,)
                ),
            )
            validate_output(dossier)

        logger.info(
            "Dossier assembled: %s", dossier.summary(),
            extra={"stage": "assemble", "workers": pool.max_workers},
        )
        return dossier

    # -------------------------------------------------------------------------
    # Per-document tasks
    # -------------------------------------------------------------------------

    def _read(
        self, source: tuple[str, DocumentReader], token: CancellationToken
    ) -> ReadOutcome:
        path, reader = source
        token.raise_if_cancelled()
        try:
            return ReadOutcome(path=path, result=reader.read(path))
        except DocumentError as e:
            logger.warning(
                "Could not read %s: %s", path, e.message,
                extra={"stage": "read", "error_code": e.code},
            )
            return ReadOutcome(path=path, error=e)

    def _process(
        self, read: ReadOutcome, log: ValidationLog, token: CancellationToken
    ) -> DocumentOutcome:
        """Classify and extract one document under its own deadline."""
        token.raise_if_cancelled()
        doc_id = read.doc_id

        if read.result is None:
            error = replace(read.error, doc_id=doc_id)
            log.append(doc_id, ValidationEntry.from_error(error))
            document = failed_document(doc_id, read.path, error, self.catalog)
            return DocumentOutcome(document, Extraction.empty(doc_id))

        result = read.result
        checkpoint = Checkpoint(
            token=token,
            deadline=Deadline(self.settings.extraction_timeout),
            doc_id=doc_id,
        )
        try:
            classification: Classification = classify(
                read.path, result.text, self.catalog, checkpoint
            )
            document = Document(
                id=doc_id,
                path=read.path,
                kind=classification.primary,
                primary_confidence=classification.primary_confidence,
                secondaries=classification.secondaries,
                text=result.text,
                metadata=dict(result.metadata),
                page_count=result.page_count,
            )
            extraction = self.extractor.extract(document, log, checkpoint)
        except ExtractionTimeoutError as e:
            logger.warning(
                "Extraction timed out after %ss", self.settings.extraction_timeout,
                extra={"doc_id": doc_id, "stage": "extract", "error_code": e.code},
            )
            log.discard(doc_id)
            log.append(doc_id, ValidationEntry.from_error(e))
            document = failed_document(
                doc_id, read.path, e, self.catalog,
                text=result.text, page_count=result.page_count, metadata=result.metadata,
            )
            return DocumentOutcome(document, Extraction.empty(doc_id))

        logger.debug(
            "Classified as %s (%.3f)", document.kind.value, document.primary_confidence,
            extra={"doc_id": doc_id, "stage": "classify"},
        )
        return DocumentOutcome(document, extraction)


def build_dossier(
    inputs: Sequence[DocumentInput],
    catalog: Union[Catalog, CatalogProvider],
    settings: Optional[Settings] = None,
    token: Optional[CancellationToken] = None,
    reader: Optional[DocumentReader] = None,
) -> Dossier:
    """
    Build a Dossier in one call.

    Example:
        >>> dossier = build_dossier(
        ...     [("letter.txt", b"ADVERSE ACTION NOTICE\\nDear Jane Q. Doe,")],
        ...     DefaultCatalogProvider(),
        ... )
    """
    return DossierAssembler(catalog, settings, reader).assemble(inputs, token)
