#!/usr/bin/env python3

"""
Adapters around the external collaborators.

- MafftAligner: multiple sequence alignment (mafft, L-INS-i style)
- HmmBuilder: profile HMM construction (HMMER hmmbuild)
- DiamondSearch: search database build and translated search (DIAMOND)

Text formats exchanged with the tools stay inside this module; callers
only see Alignment, SearchHit and file paths.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import SEARCH_EVALUE
from .data_structures import Alignment, SearchHit, SequenceRecord
from .exceptions import ExternalToolError, ParseError
from .parsers import parse_alignment, write_fasta


def run_tool(cmd: List[str], tool: str, timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    """Run an external command, translating failures to ExternalToolError."""
    logging.debug(f"Running: {' '.join(str(c) for c in cmd)}")
    try:
        result = subprocess.run(
            [str(c) for c in cmd],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ExternalToolError(f"binary not found: {cmd[0]}", tool)
    except subprocess.TimeoutExpired:
        raise ExternalToolError(f"timed out after {timeout}s", tool)

    if result.returncode != 0:
        raise ExternalToolError("command returned non-zero status", tool,
                                result.returncode, result.stderr)
    return result


class MafftAligner:
    """Accuracy-oriented iterative refinement alignment with mafft."""

    def __init__(self, binary_path: str = "mafft", max_iterate: int = 1000,
                 threads: int = -1, timeout: Optional[float] = None):
        self.binary_path = binary_path
        self.max_iterate = max_iterate
        self.threads = threads
        self.timeout = timeout

    def build_command(self, input_path: str) -> List[str]:
        return [
            self.binary_path,
            "--localpair",
            "--maxiterate", str(self.max_iterate),
            "--thread", str(self.threads),
            "--quiet",
            input_path,
        ]

    def align(self, records: Sequence[SequenceRecord]) -> Alignment:
        """Align ``records``; the result covers exactly their ids."""
        input_ids = [record.id for record in records]
        if len(set(input_ids)) != len(input_ids):
            raise ValueError("alignment input contains duplicate ids")

        with tempfile.TemporaryDirectory() as tmpdir:
            input_path = os.path.join(tmpdir, "input.faa")
            write_fasta(records, input_path)
            result = run_tool(self.build_command(input_path), "mafft", self.timeout)

        try:
            alignment = parse_alignment(result.stdout, "mafft output")
        except ParseError as e:
            raise ExternalToolError(f"unreadable alignment: {e}", "mafft")

        if set(alignment.ids) != set(input_ids):
            raise ExternalToolError(
                f"alignment covers {len(alignment)} rows, expected {len(input_ids)}", "mafft"
            )
        logging.info(f"MSA complete: {len(alignment)} rows x {alignment.column_count} columns")
        return alignment


class HmmBuilder:
    """Profile HMM construction with hmmbuild from aligned FASTA."""

    def __init__(self, binary_path: str = "hmmbuild", timeout: Optional[float] = None):
        self.binary_path = binary_path
        self.timeout = timeout

    def build_command(self, name: str, output_path: str, alignment_path: str) -> List[str]:
        return [
            self.binary_path,
            "-n", name,
            "--amino",
            "--informat", "afa",
            output_path,
            alignment_path,
        ]

    def build(self, alignment: Alignment, output_path: str, name: str,
              alignment_path: Optional[str] = None) -> str:
        """Build a profile from ``alignment`` and return its path.

        When ``alignment_path`` already holds the alignment as aligned
        FASTA it is passed to hmmbuild directly.
        """
        if not len(alignment):
            raise ValueError("cannot build a profile from an empty alignment")

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory() as tmpdir:
            if alignment_path is None:
                alignment_path = os.path.join(tmpdir, "alignment.afa")
                with open(alignment_path, 'w') as f:
                    f.write(alignment.to_fasta())
            run_tool(self.build_command(name, output_path, alignment_path), "hmmbuild", self.timeout)

        logging.info(f"HMM built: {output_path}")
        return output_path


class DiamondSearch:
    """DIAMOND database build and best-hit translated search."""

    OUTPUT_FIELDS = ("qseqid", "sseqid", "evalue", "bitscore")

    def __init__(self, binary_path: str = "diamond", evalue: float = SEARCH_EVALUE,
                 timeout: Optional[float] = None):
        self.binary_path = binary_path
        self.evalue = evalue
        self.timeout = timeout

    def make_database(self, records: Iterable[SequenceRecord], database_path: str) -> str:
        """Build a DIAMOND database from protein records; returns the .dmnd path."""
        database_path = str(database_path)
        if database_path.endswith(".dmnd"):
            database_path = database_path[:-len(".dmnd")]
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory() as tmpdir:
            input_path = os.path.join(tmpdir, "proteins.faa")
            count = write_fasta(records, input_path)
            if not count:
                raise ValueError("cannot build a search database without records")
            run_tool(
                [self.binary_path, "makedb", "--in", input_path, "-d", database_path, "--quiet"],
                "diamond", self.timeout,
            )

        logging.info(f"Search database built from {count} sequences: {database_path}.dmnd")
        return f"{database_path}.dmnd"

    def build_blastx_command(self, query_path: str, database_path: str, threads: int) -> List[str]:
        return [
            self.binary_path, "blastx",
            "--db", database_path,
            "--query", query_path,
            "--threads", str(threads),
            "--max-hsps", "1",
            "--evalue", str(self.evalue),
            "-k", "1",
            "--outfmt", "6", *self.OUTPUT_FIELDS,
            "--quiet",
        ]

    def blastx(self, query_path: str, database_path: str, threads: int = 1) -> List[SearchHit]:
        """Translated search of nucleotide reads, one best hit per read."""
        result = run_tool(self.build_blastx_command(query_path, database_path, threads),
                          "diamond", self.timeout)
        return self.parse_hits(result.stdout)

    @classmethod
    def parse_hits(cls, text: str) -> List[SearchHit]:
        """Parse tabular (outfmt 6) output with OUTPUT_FIELDS columns."""
        hits = []
        for line_num, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            parts = line.rstrip('\n').split('\t')
            if len(parts) != len(cls.OUTPUT_FIELDS):
                raise ExternalToolError(
                    f"line {line_num}: expected {len(cls.OUTPUT_FIELDS)} columns, got {len(parts)}",
                    "diamond",
                )
            try:
                hits.append(SearchHit(query_id=parts[0], subject_id=parts[1],
                                      evalue=float(parts[2]), bitscore=float(parts[3])))
            except ValueError as e:
                raise ExternalToolError(f"line {line_num}: {e}", "diamond")
        return hits
