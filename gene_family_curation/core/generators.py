#!/usr/bin/env python3

"""
Output generation for curated gene families and quantification tables.

All file writes of the pipeline happen here, at the boundary.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .data_structures import Alignment, CurationResult, ResultsTable
from .parsers import write_fasta


class OutputGenerator:
    """Write per-family curation artifacts into an output directory."""

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, gene_family: str, suffix: str) -> str:
        return str(self.output_dir / f"{gene_family}{suffix}")

    def write_alignment(self, alignment: Alignment, file_path: str) -> str:
        with open(file_path, 'w') as f:
            f.write(alignment.to_fasta())
        return file_path

    def generate_outputs(self, result: CurationResult) -> Dict[str, str]:
        """Write every artifact of ``result``; returns artifact name -> path."""
        gene = result.gene_family
        files = {
            "headers": self.path_for(gene, "_headers.txt"),
            "protein_headers": self.path_for(gene, "_protein_headers.txt"),
            "seed": self.path_for(gene, "_seed.faa"),
            "seed_short": self.path_for(gene, "_seed_short.faa"),
            "msa_clean": self.path_for(gene, "_MSA_clean.fa"),
            "clean": self.path_for(gene, "_clean.faa"),
        }

        with open(files["headers"], 'w') as f:
            for record in result.candidates:
                f.write(f"{record.header}\n")

        with open(files["protein_headers"], 'w') as f:
            missing = result.verification.missing
            for record_id in result.candidates.ids:
                status = "missing" if record_id in missing else "found"
                f.write(f"{record_id}\t{status}\n")

        write_fasta(result.candidates, files["seed"])
        write_fasta(result.filtered, files["seed_short"])
        self.write_alignment(result.clean_alignment, files["msa_clean"])
        write_fasta(result.clean_records, files["clean"])

        for name, file_path in files.items():
            logging.debug(f"Created {name}: {file_path}")
        return files

    def write_report(self, result: CurationResult, summary: Optional[dict] = None) -> str:
        """Write a plain-text processing report for one family."""
        report_file = self.path_for(result.gene_family, "_report.txt")
        band = result.length_band

        with open(report_file, 'w') as f:
            f.write(f"Gene Family Curation - {result.gene_family}\n")
            f.write("=" * 50 + "\n\n")

            f.write("STAGE COUNTS\n")
            f.write("-" * 20 + "\n")
            for name, count in result.diagnostics.items():
                f.write(f"{name}: {count:,}\n")

            f.write("\nPARAMETERS\n")
            f.write("-" * 20 + "\n")
            if result.candidates.negative_pattern:
                f.write(f"Negative pattern: {result.candidates.negative_pattern}\n")
            if band is not None:
                f.write(f"Length band: {band.min}-{band.max}\n")
            f.write(f"Gap threshold: {result.clean_set.gap_threshold}\n")

            if result.verification.missing:
                f.write("\nMISSING FROM REFERENCE PROTEOMES\n")
                f.write("-" * 20 + "\n")
                for record_id in sorted(result.verification.missing):
                    f.write(f"{record_id}\n")

            if result.artifacts:
                f.write("\nARTIFACTS\n")
                f.write("-" * 20 + "\n")
                for name, file_path in result.artifacts.items():
                    f.write(f"{name}: {file_path}\n")

            if summary and summary.get("stages"):
                f.write("\nSTAGE TIMINGS\n")
                f.write("-" * 20 + "\n")
                for stage_name, stage in summary["stages"].items():
                    f.write(f"{stage_name}: {stage['elapsed_time']:.2f}s "
                            f"({stage['records_in']} -> {stage['records_out']} records)\n")

        logging.info(f"Generated processing report: {report_file}")
        return report_file


def write_results_table(table: ResultsTable, file_path: str, append: bool = False) -> str:
    """Write quantification rows as TSV: gene_family, sample, match_count.

    With ``append`` the header is only written when the file is new.
    """
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    write_header = not (append and os.path.exists(file_path) and os.path.getsize(file_path) > 0)

    with open(file_path, 'a' if append else 'w') as f:
        if write_header:
            f.write("gene_family\tsample\tmatch_count\n")
        for row in table.rows():
            f.write(f"{row.gene_family}\t{row.sample}\t{row.match_count}\n")

    logging.info(f"Results written to {file_path} ({len(table)} rows)")
    return file_path
