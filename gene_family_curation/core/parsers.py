#!/usr/bin/env python3

"""
FASTA parsing and the record store.

Handles plain and gzip-compressed protein FASTA corpora, aligned FASTA
produced by the aligner, and writing records back out at the pipeline
boundary.
"""

import glob
import gzip
import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from .data_structures import Alignment, Corpus, SequenceRecord
from .exceptions import ParseError, SourceUnavailable


def _open_text(file_path: str):
    """Open a FASTA file for reading, transparently handling gzip."""
    if str(file_path).endswith('.gz'):
        return gzip.open(file_path, 'rt')
    return open(file_path, 'r')


def check_source(file_path: str) -> None:
    if not os.path.isfile(file_path):
        raise SourceUnavailable("file does not exist", str(file_path))
    if not os.access(file_path, os.R_OK):
        raise SourceUnavailable("file is not readable", str(file_path))


def iter_fasta_entries(file_path: str) -> Iterator[Tuple[int, str, str]]:
    """Yield (header line number, header, sequence) for each FASTA entry.

    The header is returned without the leading '>'. Sequence lines are
    joined with whitespace removed.
    """
    check_source(file_path)

    header = None
    header_line = 0
    chunks: List[str] = []
    line_num = 0

    try:
        with _open_text(file_path) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                if line.startswith('>'):
                    if header is not None:
                        yield header_line, header, ''.join(chunks)
                    header = line[1:].strip()
                    header_line = line_num
                    chunks = []
                elif header is not None:
                    chunks.append(''.join(line.split()))

            if header is not None:
                yield header_line, header, ''.join(chunks)

    except (OSError, EOFError, UnicodeDecodeError) as e:
        raise SourceUnavailable(f"failed to read at line {line_num}: {e}", str(file_path))


def split_header(header: str) -> Tuple[str, str]:
    """Split a FASTA header into (id, description)."""
    parts = header.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


class RecordStore:
    """Load protein corpora and look records up by id.

    Malformed entries (no id or no residues) are skipped and counted,
    never fatal. A missing or unreadable file raises SourceUnavailable.
    """

    @staticmethod
    def iter_records(file_path: str,
                     on_malformed: Optional[Callable[[int], None]] = None) -> Iterator[SequenceRecord]:
        """Stream well-formed records from one corpus file.

        ``on_malformed`` is called with the header line number of every
        skipped entry, so each caller keeps its own count.
        """
        for line_num, header, residues in iter_fasta_entries(file_path):
            record_id, description = split_header(header)
            if not record_id or not residues:
                if on_malformed is not None:
                    on_malformed(line_num)
                logging.debug(f"Skipping malformed record at {file_path}:{line_num}")
                continue
            yield SequenceRecord(id=record_id, description=description, residues=residues)

    def load(self, paths: Iterable[str]) -> Corpus:
        """Load every record from ``paths`` into one corpus, in file order."""
        paths = list(paths)
        for file_path in paths:
            check_source(file_path)

        skipped: List[int] = []
        records: List[SequenceRecord] = []
        for file_path in paths:
            records.extend(self.iter_records(file_path, skipped.append))

        malformed = len(skipped)
        if malformed:
            logging.warning(f"Skipped {malformed} malformed records in {len(paths)} file(s)")
        logging.info(f"Loaded {len(records)} records from {len(paths)} file(s)")
        return Corpus(records=tuple(records), malformed=malformed)

    @staticmethod
    def subset(corpus: Corpus, ids: Set[str]) -> Tuple[Corpus, int]:
        """Records of ``corpus`` whose id is in ``ids``, plus the count of ids not found.

        Missing ids are expected with sharded corpora and are not an error.
        """
        records = tuple(record for record in corpus if record.id in ids)
        missing = len(set(ids) - {record.id for record in records})
        if missing:
            logging.debug(f"{missing} of {len(ids)} requested ids not present in corpus")
        return Corpus(records=records), missing

    @staticmethod
    def iter_ids(file_path: str) -> Iterator[str]:
        """Stream record ids of a corpus file without keeping residues."""
        check_source(file_path)
        try:
            with _open_text(file_path) as f:
                for line in f:
                    if line.startswith('>'):
                        record_id, _ = split_header(line[1:])
                        if record_id:
                            yield record_id
        except (OSError, EOFError, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"failed to read: {e}", str(file_path))


def expand_corpus_glob(pattern: str) -> List[str]:
    """Expand a shell-style corpus glob (``~`` allowed) to sorted paths."""
    paths = sorted(glob.glob(os.path.expanduser(pattern)))
    if not paths:
        raise SourceUnavailable("glob matched no files", pattern)
    return paths


def parse_alignment(text: str, source: str = "<alignment>") -> Alignment:
    """Parse aligned FASTA text into an Alignment."""
    rows: List[Tuple[str, str]] = []
    descriptions = {}
    header: Optional[str] = None
    chunks: List[str] = []

    def flush():
        record_id, description = split_header(header)
        if not record_id:
            raise ParseError("alignment row without an id", source)
        rows.append((record_id, ''.join(chunks)))
        if description:
            descriptions[record_id] = description

    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        if line.startswith('>'):
            if header is not None:
                flush()
            header = line[1:].strip()
            chunks = []
        elif header is None:
            raise ParseError("sequence data before first header", source, line_num)
        else:
            chunks.append(''.join(line.split()))

    if header is not None:
        flush()

    try:
        return Alignment(rows, descriptions)
    except ValueError as e:
        raise ParseError(str(e), source)


def write_fasta(records: Iterable[SequenceRecord], file_path: str, width: int = 60) -> int:
    """Write records to a FASTA file; returns the number written."""
    count = 0
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w') as f:
        for record in records:
            f.write(record.to_fasta(width))
            count += 1
    return count
