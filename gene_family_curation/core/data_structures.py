#!/usr/bin/env python3

"""
Core data structures for the gene family curation pipeline.

Defines sequence records, corpora, candidate sets, alignments and the
per-family / per-sample result values passed between pipeline stages.
Stages never mutate a corpus in place; each one returns a new value.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

GAP_SYMBOLS = frozenset('-.')


@dataclass(frozen=True)
class SequenceRecord:
    """A single protein record read from a corpus."""
    id: str
    description: str = ""
    residues: str = ""

    def __post_init__(self):
        """Validate record data after initialization."""
        if not self.id:
            raise ValueError("Record ID cannot be empty")
        if not self.residues:
            raise ValueError(f"Record {self.id} has no residues")

    @property
    def length(self) -> int:
        """Get residue count."""
        return len(self.residues)

    @property
    def header(self) -> str:
        """FASTA header line without the leading '>'."""
        if self.description:
            return f"{self.id} {self.description}"
        return self.id

    def to_fasta(self, width: int = 60) -> str:
        """Render the record as a FASTA entry."""
        if width > 0:
            lines = [self.residues[i:i + width] for i in range(0, len(self.residues), width)]
        else:
            lines = [self.residues]
        return f">{self.header}\n" + "\n".join(lines) + "\n"


@dataclass
class Corpus:
    """Ordered collection of sequence records.

    Order follows the source files and is kept for reproducible reports;
    filtering never depends on it.
    """
    records: Tuple[SequenceRecord, ...] = ()
    malformed: int = 0

    def __post_init__(self):
        self.records = tuple(self.records)
        self._index: Dict[str, SequenceRecord] = {}
        for record in self.records:
            self._index.setdefault(record.id, record)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SequenceRecord]:
        return iter(self.records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._index

    @property
    def ids(self) -> List[str]:
        """Record ids in corpus order."""
        return [record.id for record in self.records]

    def get(self, record_id: str) -> Optional[SequenceRecord]:
        """Get record by ID."""
        return self._index.get(record_id)

    def lengths(self) -> List[int]:
        """Residue lengths in corpus order."""
        return [record.length for record in self.records]


@dataclass
class CandidateSet(Corpus):
    """Records whose description matched a gene token.

    Every record matched ``gene_token`` and, when ``negative_pattern`` is
    set, did not match it. ``sources`` maps record id to the corpus file
    the record was read from.
    """
    gene_token: str = ""
    negative_pattern: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict)
    header_count: int = 0
    excluded_count: int = 0

    def derive(self, records) -> 'CandidateSet':
        """New candidate set over ``records`` with this set's provenance."""
        records = tuple(records)
        return CandidateSet(
            records=records,
            gene_token=self.gene_token,
            negative_pattern=self.negative_pattern,
            sources={r.id: self.sources[r.id] for r in records if r.id in self.sources},
            header_count=self.header_count,
            excluded_count=self.excluded_count,
        )


@dataclass(frozen=True)
class LengthBand:
    """Admissible residue length range, inclusive on both ends."""
    min: int
    max: int

    def __post_init__(self):
        if self.min < 1:
            raise ValueError(f"Invalid length band minimum: {self.min}")
        if self.max < self.min:
            raise ValueError(f"Invalid length band: {self.min}-{self.max}")

    def contains(self, length: int) -> bool:
        """Check if a length falls inside the band."""
        return self.min <= length <= self.max


class Alignment:
    """Rectangular multiple sequence alignment keyed by record id."""

    def __init__(self, rows: List[Tuple[str, str]], descriptions: Optional[Dict[str, str]] = None):
        self._rows: Dict[str, str] = {}
        self.descriptions: Dict[str, str] = dict(descriptions or {})

        width = None
        for record_id, row in rows:
            if record_id in self._rows:
                raise ValueError(f"Duplicate alignment row: {record_id}")
            if width is None:
                width = len(row)
            elif len(row) != width:
                raise ValueError(
                    f"Alignment row {record_id} has {len(row)} columns, expected {width}"
                )
            self._rows[record_id] = row

        self.column_count = width or 0

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._rows

    @property
    def ids(self) -> List[str]:
        """Row ids in alignment order."""
        return list(self._rows)

    def row(self, record_id: str) -> str:
        return self._rows[record_id]

    def rows(self) -> List[Tuple[str, str]]:
        return list(self._rows.items())

    def gap_fraction(self, record_id: str) -> float:
        """Fraction of columns in a row that are gap markers."""
        if not self.column_count:
            return 0.0
        row = self.row(record_id)
        gaps = sum(1 for symbol in row if symbol in GAP_SYMBOLS)
        return gaps / self.column_count

    def gap_profile(self) -> Dict[str, float]:
        """Gap fraction of every row."""
        return {record_id: self.gap_fraction(record_id) for record_id in self._rows}

    def subset(self, record_ids: Set[str]) -> 'Alignment':
        """Alignment restricted to ``record_ids``, keeping row order and columns."""
        return Alignment(
            [(rid, row) for rid, row in self.rows() if rid in record_ids],
            {rid: d for rid, d in self.descriptions.items() if rid in record_ids},
        )

    def to_fasta(self) -> str:
        """Render as aligned FASTA."""
        entries = []
        for record_id, row in self.rows():
            description = self.descriptions.get(record_id, "")
            header = f"{record_id} {description}" if description else record_id
            entries.append(f">{header}\n{row}\n")
        return "".join(entries)


@dataclass
class VerificationReport:
    """Cross-check of candidate ids against the reference proteomes."""
    checked: int = 0
    found: int = 0
    missing: Set[str] = field(default_factory=set)

    @property
    def is_complete(self) -> bool:
        return not self.missing


@dataclass
class CleanSet:
    """Candidate ids that survived gap trimming."""
    ids: Set[str]
    gap_threshold: float
    gap_fractions: Dict[str, float] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class CurationResult:
    """Everything one gene family run produced."""
    gene_family: str
    candidates: CandidateSet
    verification: VerificationReport
    length_band: Optional[LengthBand]
    filtered: CandidateSet
    clean_set: CleanSet
    clean_alignment: Alignment
    clean_records: Corpus
    profile_path: Optional[str] = None
    search_database_path: Optional[str] = None
    artifacts: Dict[str, str] = field(default_factory=dict)
    stage_summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def diagnostics(self) -> Dict[str, int]:
        """Counts reported for every curation stage."""
        return {
            "headers": self.candidates.header_count,
            "excluded_by_negative_pattern": self.candidates.excluded_count,
            "candidates": len(self.candidates),
            "proteome_checked": self.verification.checked,
            "proteome_found": self.verification.found,
            "proteome_missing": len(self.verification.missing),
            "after_length_filter": len(self.filtered),
            "after_gap_trim": len(self.clean_set),
            "clean_sequences": len(self.clean_records),
        }


@dataclass(frozen=True)
class SearchHit:
    """One best-hit row from the translated search."""
    query_id: str
    subject_id: str
    evalue: float
    bitscore: float


@dataclass(frozen=True)
class QuantificationResult:
    """Match count for one sample against one gene family."""
    sample: str
    gene_family: str
    match_count: int


class ResultsTable:
    """Caller-owned accumulation of quantification results.

    Rows are keyed by (gene_family, sample); re-adding a key replaces the
    earlier count.
    """

    def __init__(self):
        self._rows: Dict[Tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def add(self, result: QuantificationResult) -> None:
        key = (result.gene_family, result.sample)
        if key in self._rows:
            logging.warning(f"Replacing count for sample {result.sample} "
                            f"in gene family {result.gene_family}")
        self._rows[key] = result.match_count

    def get(self, gene_family: str, sample: str) -> Optional[int]:
        return self._rows.get((gene_family, sample))

    def rows(self) -> List[QuantificationResult]:
        """Rows sorted by gene family, then sample."""
        return [QuantificationResult(sample=sample, gene_family=family, match_count=count)
                for (family, sample), count in sorted(self._rows.items())]

    def gene_families(self) -> List[str]:
        return sorted({family for family, _ in self._rows})


@dataclass(frozen=True)
class FamilySpec:
    """One gene family to curate."""
    gene_name: str
    control_path: str
    negative_pattern: Optional[str] = None

    def __post_init__(self):
        if not self.gene_name:
            raise ValueError("Gene name cannot be empty")
        if not self.control_path:
            raise ValueError(f"Control file missing for gene {self.gene_name}")
