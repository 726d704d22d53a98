#!/usr/bin/env python3

"""
Pipeline classes for gene family curation and sample quantification.

Curation runs the stages of one gene family strictly in sequence on
in-memory values; files are only read at the start (corpora, controls)
and written at the end (artifacts). Quantification returns one count per
sample and leaves accumulation to the caller.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .config import PipelineConfig
from .data_structures import (
    CurationResult, Corpus, FamilySpec, QuantificationResult, ResultsTable
)
from .exceptions import EmptyResult, PipelineError, ValidationError
from .generators import OutputGenerator
from .parsers import RecordStore, check_source, expand_corpus_glob
from .processors import (
    AnnotationVerifier, CandidateRetriever, GapTrimmer, LengthFilter, SeedReconciler
)
from .tools import DiamondSearch, HmmBuilder, MafftAligner
from ..utils.performance_monitor import StageMonitor

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


@dataclass
class BatchReport:
    """Outcome of a batch: per-unit results and isolated failures."""
    results: Dict[str, object] = field(default_factory=dict)
    failures: Dict[str, PipelineError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failures


class FamilyCurationPipeline:
    """Curate one gene family at a time from pangenome candidates to a profile HMM."""

    def __init__(self, config: PipelineConfig, aligner=None, profile_builder=None,
                 search=None, store: Optional[RecordStore] = None):
        self.config = config
        self.store = store or RecordStore()
        self.aligner = aligner or MafftAligner(
            config.mafft_binary, config.mafft_max_iterate, config.threads, config.tool_timeout
        )
        self.profile_builder = profile_builder or HmmBuilder(config.hmmbuild_binary, config.tool_timeout)
        self.search = search or DiamondSearch(config.diamond_binary, config.search_evalue,
                                              config.tool_timeout)

    def curate(self, gene_name: str, control_records: Corpus,
               pangenome_paths: Iterable[str], proteome_paths: Iterable[str],
               negative_pattern: Optional[str] = None,
               monitor: Optional[StageMonitor] = None) -> CurationResult:
        """
        Run the in-memory curation stages for one gene family.

        Args:
            gene_name: Gene token searched in pangenome descriptions
            control_records: Anchor records added to the alignment only
            pangenome_paths: Pangenome protein corpus files
            proteome_paths: Reference proteome corpus files
            negative_pattern: Regex pruning false positives among matches
            monitor: Stage monitor of this run; a fresh one when omitted

        Returns:
            CurationResult with every intermediate value and the diagnostics
        """
        self._check_controls(gene_name, control_records)
        if monitor is None:
            monitor = self.new_monitor()

        with monitor.stage_context("retrieval") as metrics:
            candidates = CandidateRetriever(self.store).retrieve(
                pangenome_paths, gene_name, negative_pattern
            )
            metrics.records_in = candidates.header_count
            metrics.records_out = len(candidates)

        with monitor.stage_context("verification", len(candidates)) as metrics:
            verification = AnnotationVerifier(self.store).verify(candidates.ids, proteome_paths)
            metrics.records_out = verification.found

        with monitor.stage_context("length_filter", len(candidates)) as metrics:
            length_filter = LengthFilter(self.config.length_margin)
            band = length_filter.derive_band(candidates, self.config.min_length)
            logging.info(f"Length band for {gene_name}: {band.min}-{band.max}")
            filtered = length_filter.filter_with_band(candidates, band)
            metrics.records_out = len(filtered)
            if not len(filtered):
                raise EmptyResult(
                    f"0 of {len(candidates)} candidates inside length band {band.min}-{band.max}",
                    stage="length_filter", gene_family=gene_name, count=0,
                )

        overlap = set(filtered.ids) & set(control_records.ids)
        if overlap:
            raise ValidationError(f"control record id collides with a {gene_name} candidate",
                                  sorted(overlap)[0])

        with monitor.stage_context("alignment", len(filtered) + len(control_records)) as metrics:
            alignment = self.aligner.align(list(filtered) + list(control_records))
            metrics.records_out = len(alignment)

        with monitor.stage_context("gap_trim", len(alignment)) as metrics:
            clean_set = GapTrimmer.trim(alignment, self.config.gap_threshold,
                                        control_records.ids, gene_name)
            clean_alignment = alignment.subset(clean_set.ids)
            metrics.records_out = len(clean_set)

        with monitor.stage_context("reconcile", len(clean_set)) as metrics:
            clean_records = SeedReconciler.reconcile(clean_set.ids, filtered, gene_name)
            metrics.records_out = len(clean_records)

        return CurationResult(
            gene_family=gene_name,
            candidates=candidates,
            verification=verification,
            length_band=band,
            filtered=filtered,
            clean_set=clean_set,
            clean_alignment=clean_alignment,
            clean_records=clean_records,
        )

    def run(self, gene_name: str, control: Union[str, Corpus], output_dir: str,
            negative_pattern: Optional[str] = None,
            pangenome_paths: Optional[List[str]] = None,
            proteome_paths: Optional[List[str]] = None) -> CurationResult:
        """
        Curate a gene family, write its artifacts and build its profile.

        Corpus paths default to the configured globs. Raises PipelineError
        subclasses on failure; nothing is swallowed here.
        """
        Path(output_dir).mkdir(parents=True, exist_ok=True)
        monitor = self.new_monitor()
        handler, previous_level = self._attach_log_file(output_dir)
        try:
            logging.info(f"Starting curation of gene family {gene_name}")
            logging.debug(f"Configuration: {self.config}")

            if pangenome_paths is None:
                pangenome_paths = expand_corpus_glob(self.config.pangenome_glob)
            if proteome_paths is None:
                proteome_paths = expand_corpus_glob(self.config.proteome_glob)
            control_records = self.store.load([control]) if isinstance(control, str) else control

            result = self.curate(gene_name, control_records, pangenome_paths,
                                 proteome_paths, negative_pattern, monitor)

            generator = OutputGenerator(output_dir)
            result.artifacts.update(generator.generate_outputs(result))

            with monitor.stage_context("profile_build", len(result.clean_alignment)) as metrics:
                result.profile_path = self.profile_builder.build(
                    result.clean_alignment, generator.path_for(gene_name, ".hmm"), gene_name,
                    alignment_path=result.artifacts["msa_clean"],
                )
                result.artifacts["hmm"] = result.profile_path
                metrics.records_out = len(result.clean_alignment)

            if self.config.build_search_database:
                with monitor.stage_context("search_database", len(result.clean_records)) as metrics:
                    result.search_database_path = self.search.make_database(
                        result.clean_records, generator.path_for(gene_name, "_FINAL_SEQS")
                    )
                    result.artifacts["search_database"] = result.search_database_path
                    metrics.records_out = len(result.clean_records)

            result.stage_summary = monitor.get_summary()
            result.artifacts["report"] = generator.write_report(result, result.stage_summary)
            monitor.log_report()
            logging.info(f"Pipeline finished for {gene_name}: {len(result.clean_records)} clean sequences")
            return result
        finally:
            root_logger = logging.getLogger()
            root_logger.removeHandler(handler)
            root_logger.setLevel(previous_level)
            handler.close()

    def run_batch(self, families: Iterable[FamilySpec], output_dir: str,
                  pangenome_paths: Optional[List[str]] = None,
                  proteome_paths: Optional[List[str]] = None) -> BatchReport:
        """Curate several families; one family's failure never aborts the others."""
        report = BatchReport()
        for spec in families:
            try:
                report.results[spec.gene_name] = self.run(
                    spec.gene_name, spec.control_path,
                    os.path.join(output_dir, spec.gene_name),
                    spec.negative_pattern, pangenome_paths, proteome_paths,
                )
            except PipelineError as e:
                logging.error(f"Gene family {spec.gene_name} failed: {e}")
                report.failures[spec.gene_name] = e

        logging.info(f"Curated {len(report.results)} gene families, {len(report.failures)} failed")
        return report

    def _check_controls(self, gene_name: str, control_records: Corpus) -> None:
        if not len(control_records):
            raise ValidationError(f"no control records supplied for gene {gene_name}")
        if len(set(control_records.ids)) != len(control_records):
            raise ValidationError(f"duplicate control record ids for gene {gene_name}")

    def new_monitor(self) -> StageMonitor:
        return StageMonitor(self.config.memory_limit_mb, self.config.enable_memory_monitoring)

    def _attach_log_file(self, output_dir: str) -> Tuple[logging.Handler, int]:
        """Add a per-run file handler to the root logger; returns it with the previous level."""
        log_file = Path(output_dir) / 'family_curation.log'
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root_logger = logging.getLogger()
        previous_level = root_logger.level
        root_logger.addHandler(file_handler)
        if self.config.debug_mode:
            root_logger.setLevel(logging.DEBUG)
        return file_handler, previous_level


_SAMPLE_SUFFIXES = re.compile(r'(_cat)?\.(fna|fa|fasta|fastq|fq)(\.gz)?$', re.IGNORECASE)
_DATABASE_SUFFIXES = re.compile(r'(_FINAL_SEQS)?\.dmnd$')


def derive_sample_name(sample_path: str) -> str:
    """Sample identifier from a read file name (``S1_cat.fna.gz`` -> ``S1``)."""
    return _SAMPLE_SUFFIXES.sub('', os.path.basename(sample_path))


def derive_gene_family_name(database_path: str) -> str:
    """Gene family from a search database name (``tdcd_FINAL_SEQS.dmnd`` -> ``tdcd``)."""
    return _DATABASE_SUFFIXES.sub('', os.path.basename(database_path))


class QuantificationPipeline:
    """Count best-hit reads of one sample against one gene family database."""

    def __init__(self, config: PipelineConfig, search=None):
        self.config = config
        self.search = search or DiamondSearch(config.diamond_binary, config.search_evalue,
                                              config.tool_timeout)

    def resolve_threads(self, threads: Optional[int] = None) -> int:
        if threads is not None and threads > 0:
            return threads
        if self.config.threads > 0:
            return self.config.threads
        return os.cpu_count() or 1

    def quantify(self, sample_path: str, database_path: str,
                 threads: Optional[int] = None,
                 gene_family: Optional[str] = None) -> QuantificationResult:
        check_source(sample_path)
        check_source(database_path)

        sample = derive_sample_name(sample_path)
        gene_family = gene_family or derive_gene_family_name(database_path)
        logging.info(f"Running search for sample: {sample} against gene family: {gene_family}")

        hits = self.search.blastx(sample_path, database_path, self.resolve_threads(threads))
        match_count = len({hit.query_id for hit in hits})

        logging.info(f"Sample {sample}: {match_count} reads matched {gene_family}")
        return QuantificationResult(sample=sample, gene_family=gene_family, match_count=match_count)

    def quantify_samples(self, sample_paths: Iterable[str], database_path: str,
                         threads: Optional[int] = None,
                         table: Optional[ResultsTable] = None) -> BatchReport:
        """Quantify several samples; failures are isolated per sample.

        Results are keyed by sample path and, when ``table`` is given, also
        added to it.
        """
        report = BatchReport()

        for sample_path in sample_paths:
            try:
                result = self.quantify(sample_path, database_path, threads)
                report.results[sample_path] = result
                if table is not None:
                    table.add(result)
            except PipelineError as e:
                logging.error(f"Sample {derive_sample_name(sample_path)} failed: {e}")
                report.failures[sample_path] = e

        return report
