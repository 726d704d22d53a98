#!/usr/bin/env python3

"""
Processing classes for candidate retrieval, annotation verification,
length filtering, gap trimming and seed reconciliation.
"""

import logging
import re
import warnings
from typing import Dict, Iterable, List, Optional, Set

from .data_structures import (
    Alignment, CandidateSet, CleanSet, Corpus, LengthBand, SequenceRecord, VerificationReport
)
from .exceptions import DataQualityWarning, EmptyResult, InternalInconsistency, ParseError
from .parsers import RecordStore, check_source

DEFAULT_LENGTH_MARGIN = 20


def n50(lengths: Iterable[int]) -> int:
    """Length L such that sequences of length >= L hold at least half the total length."""
    ordered = sorted(lengths, reverse=True)
    if not ordered:
        raise ValueError("N50 of an empty length distribution is undefined")

    total = sum(ordered)
    running = 0
    for length in ordered:
        running += length
        if running * 2 >= total:
            return length
    return ordered[-1]


class CandidateRetriever:
    """Step 1: select pangenome records whose description names the gene."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store or RecordStore()

    @staticmethod
    def token_pattern(gene_token: str) -> 're.Pattern':
        """Case-insensitive token match bounded by a word boundary on at least one side."""
        token = re.escape(gene_token.strip())
        return re.compile(rf"\b{token}|{token}\b", re.IGNORECASE)

    def retrieve(self, corpus_paths: Iterable[str], gene_token: str,
                 negative_pattern: Optional[str] = None) -> CandidateSet:
        """Collect candidates for ``gene_token`` from every corpus file.

        The negative pattern only prunes records that already matched the
        token; it never changes which records are eligible.
        """
        if not gene_token or not gene_token.strip():
            raise ValueError("gene token cannot be empty")

        corpus_paths = list(corpus_paths)
        for file_path in corpus_paths:
            check_source(file_path)

        positive = self.token_pattern(gene_token)
        try:
            negative = re.compile(negative_pattern) if negative_pattern else None
        except re.error as e:
            raise ParseError(f"invalid negative pattern {negative_pattern!r}: {e}")

        skipped: List[int] = []
        records: List[SequenceRecord] = []
        sources: Dict[str, str] = {}
        header_count = 0
        excluded_count = 0
        duplicates = 0

        for file_path in corpus_paths:
            for record in self.store.iter_records(file_path, skipped.append):
                if not positive.search(record.description):
                    continue
                header_count += 1

                if negative is not None and negative.search(record.description):
                    excluded_count += 1
                    continue

                if record.id in sources:
                    duplicates += 1
                    continue

                records.append(record)
                sources[record.id] = file_path

        logging.info(f"Headers retrieved for {gene_token}: {header_count}")
        if negative is not None:
            logging.info(f"Removed {excluded_count} unwanted matches ({negative_pattern})")
            if excluded_count:
                warnings.warn(
                    f"{excluded_count} {gene_token} candidates excluded by negative pattern",
                    DataQualityWarning,
                )
        if duplicates:
            logging.warning(f"Ignored {duplicates} duplicate candidate ids across shards")

        if not records:
            if header_count and negative is not None:
                reason = f"0 candidates after negative-pattern exclusion ({header_count} headers matched)"
            else:
                reason = f"no descriptions match '{gene_token}' in {len(corpus_paths)} file(s)"
            raise EmptyResult(reason, stage="retrieval", gene_family=gene_token, count=0)

        return CandidateSet(
            records=tuple(records),
            malformed=len(skipped),
            gene_token=gene_token,
            negative_pattern=negative_pattern,
            sources=sources,
            header_count=header_count,
            excluded_count=excluded_count,
        )


class AnnotationVerifier:
    """Step 2: advisory cross-check of candidates against reference proteomes."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store or RecordStore()

    def verify(self, candidate_ids: Iterable[str],
               reference_corpus_paths: Iterable[str]) -> VerificationReport:
        wanted = set(candidate_ids)
        reference_corpus_paths = list(reference_corpus_paths)
        for file_path in reference_corpus_paths:
            check_source(file_path)

        found: Set[str] = set()
        for file_path in reference_corpus_paths:
            if len(found) == len(wanted):
                break
            for record_id in self.store.iter_ids(file_path):
                if record_id in wanted:
                    found.add(record_id)

        report = VerificationReport(checked=len(wanted), found=len(found), missing=wanted - found)
        logging.info(f"Proteome cross-check: {report.found}/{report.checked} candidates found")

        if report.missing:
            warnings.warn(
                f"{len(report.missing)} of {report.checked} candidates absent from reference proteomes",
                DataQualityWarning,
            )
            logging.warning(f"{len(report.missing)} candidates missing from reference proteomes")

        return report


class LengthFilter:
    """Step 4: drop records outside a per-family length band.

    The upper bound is N50 of the full candidate pool plus a margin, so it
    adapts to each family and still removes long fusion artifacts.
    """

    def __init__(self, margin: int = DEFAULT_LENGTH_MARGIN):
        if margin < 0:
            raise ValueError("length margin must be >= 0")
        self.margin = margin

    def derive_band(self, candidates: CandidateSet, min_len: int) -> LengthBand:
        upper = n50(candidates.lengths()) + self.margin
        if upper < min_len:
            raise EmptyResult(
                f"length bound N50+{self.margin}={upper} is below minimum length {min_len}",
                stage="length_filter", gene_family=candidates.gene_token, count=len(candidates),
            )
        return LengthBand(min=min_len, max=upper)

    def filter(self, candidates: CandidateSet, min_len: int) -> CandidateSet:
        if not len(candidates):
            logging.warning("Length filter skipped: candidate set is empty")
            return candidates

        band = self.derive_band(candidates, min_len)
        logging.info(f"Length band for {candidates.gene_token}: {band.min}-{band.max}")
        return self.filter_with_band(candidates, band)

    @staticmethod
    def filter_with_band(candidates: CandidateSet, band: LengthBand) -> CandidateSet:
        """Apply an already derived band."""
        kept = [record for record in candidates if band.contains(record.length)]
        logging.info(f"After length filtering: {len(kept)}")
        return candidates.derive(kept)


class GapTrimmer:
    """Step 7: drop aligned rows carrying too many gaps."""

    @staticmethod
    def trim(alignment: Alignment, gap_threshold: float,
             control_ids: Iterable[str] = (), gene_family: str = "") -> CleanSet:
        """Keep rows whose gap fraction does not exceed ``gap_threshold``.

        Control rows are always dropped. A row exactly at the threshold
        is kept, so the result is the ids with fraction <= threshold rather
        than strictly below it.
        """
        if not 0 < gap_threshold < 1:
            raise ValueError(f"gap threshold must be in (0, 1), got {gap_threshold}")

        controls = set(control_ids)
        profile = alignment.gap_profile()
        kept = {record_id for record_id, fraction in profile.items()
                if record_id not in controls and fraction <= gap_threshold}

        logging.info(f"Cleaned MSA: {len(kept)} of {len(profile) - len(controls & set(profile))} "
                     f"candidate rows at gap fraction <= {gap_threshold}")

        if not kept:
            raise EmptyResult(
                f"no candidate rows within gap threshold {gap_threshold}",
                stage="gap_trim", gene_family=gene_family, count=0,
            )

        return CleanSet(ids=kept, gap_threshold=gap_threshold,
                        gap_fractions={rid: profile[rid] for rid in kept})


class SeedReconciler:
    """Step 8: map clean ids back to their unaligned candidate records."""

    @staticmethod
    def reconcile(clean_ids: Iterable[str], original_candidates: Corpus,
                  gene_family: str = "") -> Corpus:
        clean_ids = set(clean_ids)
        records, missing = RecordStore.subset(original_candidates, clean_ids)
        if missing:
            absent = sorted(clean_ids - set(records.ids))
            raise InternalInconsistency(
                f"{missing} clean ids have no original candidate record",
                stage="reconcile", gene_family=gene_family, record_id=absent[0],
            )
        logging.info(f"Final clean sequences: {len(records)}")
        return records
