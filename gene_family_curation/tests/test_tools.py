#!/usr/bin/env python3

"""
Unit tests for the external tool adapters.

subprocess.run is patched; no aligner, profile builder or search engine
needs to be installed.
"""

import os
import subprocess
import sys
import tempfile
import unittest
from unittest.mock import Mock, patch

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from gene_family_curation.core.data_structures import Alignment, SequenceRecord
from gene_family_curation.core.exceptions import ExternalToolError
from gene_family_curation.core.tools import DiamondSearch, HmmBuilder, MafftAligner, run_tool

RUN = 'gene_family_curation.core.tools.subprocess.run'


def completed(stdout="", returncode=0, stderr=""):
    return Mock(stdout=stdout, returncode=returncode, stderr=stderr)


class TestRunTool(unittest.TestCase):
    """Test failure translation of external commands."""

    @patch(RUN, side_effect=FileNotFoundError())
    def test_missing_binary(self, mock_run):
        with self.assertRaises(ExternalToolError) as ctx:
            run_tool(["mafft", "--version"], "mafft")
        self.assertIn("binary not found", str(ctx.exception))

    @patch(RUN, side_effect=subprocess.TimeoutExpired(cmd="mafft", timeout=5))
    def test_timeout(self, mock_run):
        with self.assertRaises(ExternalToolError):
            run_tool(["mafft"], "mafft", timeout=5)
        self.assertEqual(mock_run.call_args.kwargs["timeout"], 5)

    @patch(RUN, return_value=completed(returncode=2, stderr="bad input"))
    def test_non_zero_exit(self, mock_run):
        with self.assertRaises(ExternalToolError) as ctx:
            run_tool(["hmmbuild"], "hmmbuild")
        self.assertEqual(ctx.exception.returncode, 2)
        self.assertIn("bad input", str(ctx.exception))


class TestMafftAligner(unittest.TestCase):
    """Test the alignment adapter."""

    def setUp(self):
        self.records = [SequenceRecord(id="c1", description="tdcD", residues="MKVL"),
                        SequenceRecord(id="ctl", residues="MKL")]

    def test_accuracy_oriented_command(self):
        """Test iterative refinement options are passed."""
        cmd = MafftAligner(max_iterate=1000, threads=-1).build_command("in.faa")
        self.assertEqual(cmd[0], "mafft")
        self.assertIn("--localpair", cmd)
        self.assertEqual(cmd[cmd.index("--maxiterate") + 1], "1000")
        self.assertEqual(cmd[cmd.index("--thread") + 1], "-1")
        self.assertEqual(cmd[-1], "in.faa")

    @patch(RUN)
    def test_align_parses_output(self, mock_run):
        mock_run.return_value = completed(">c1 tdcD\nMKVL\n>ctl\nMK-L\n")
        alignment = MafftAligner().align(self.records)

        self.assertEqual(alignment.ids, ["c1", "ctl"])
        self.assertEqual(alignment.gap_fraction("ctl"), 0.25)

    @patch(RUN)
    def test_align_rejects_incomplete_output(self, mock_run):
        mock_run.return_value = completed(">c1\nMKVL\n")
        with self.assertRaises(ExternalToolError):
            MafftAligner().align(self.records)

    @patch(RUN)
    def test_align_rejects_ragged_output(self, mock_run):
        mock_run.return_value = completed(">c1\nMKVL\n>ctl\nMKL\n")
        with self.assertRaises(ExternalToolError):
            MafftAligner().align(self.records)


class TestHmmBuilder(unittest.TestCase):
    """Test the profile builder adapter."""

    @patch(RUN, return_value=completed())
    def test_build_command(self, mock_run):
        alignment = Alignment([("c1", "MKVL"), ("c2", "MK-L")])
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, "tdcd.hmm")
            path = HmmBuilder().build(alignment, output, "tdcd")

        self.assertEqual(path, output)
        cmd = mock_run.call_args.args[0]
        self.assertEqual(cmd[0], "hmmbuild")
        self.assertEqual(cmd[cmd.index("-n") + 1], "tdcd")
        self.assertEqual(cmd[cmd.index("--informat") + 1], "afa")
        self.assertEqual(cmd[-2], output)

    def test_empty_alignment_rejected(self):
        with self.assertRaises(ValueError):
            HmmBuilder().build(Alignment([]), "out.hmm", "tdcd")


class TestDiamondSearch(unittest.TestCase):
    """Test the translated search adapter."""

    def test_blastx_command_restricts_to_best_hit(self):
        cmd = DiamondSearch().build_blastx_command("S1.fna.gz", "tdcd.dmnd", 8)
        self.assertEqual(cmd[:2], ["diamond", "blastx"])
        self.assertEqual(cmd[cmd.index("-k") + 1], "1")
        self.assertEqual(cmd[cmd.index("--max-hsps") + 1], "1")
        self.assertEqual(cmd[cmd.index("--evalue") + 1], "1e-10")
        self.assertEqual(cmd[cmd.index("--threads") + 1], "8")

    def test_parse_hits(self):
        hits = DiamondSearch.parse_hits("read1\tGUT_1\t1e-30\t120.5\nread2\tGUT_4\t3e-12\t60\n\n")
        self.assertEqual([h.query_id for h in hits], ["read1", "read2"])
        self.assertEqual(hits[0].subject_id, "GUT_1")
        self.assertEqual(hits[1].bitscore, 60.0)

    def test_parse_hits_empty_output(self):
        self.assertEqual(DiamondSearch.parse_hits(""), [])

    def test_parse_hits_malformed(self):
        with self.assertRaises(ExternalToolError):
            DiamondSearch.parse_hits("read1\tGUT_1\n")

    @patch(RUN, return_value=completed("read1\tGUT_1\t1e-30\t120.5\n"))
    def test_blastx(self, mock_run):
        hits = DiamondSearch().blastx("S1.fna.gz", "tdcd.dmnd", threads=2)
        self.assertEqual(len(hits), 1)

    @patch(RUN, return_value=completed())
    def test_make_database(self, mock_run):
        records = [SequenceRecord(id="c1", residues="MKVL")]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = DiamondSearch().make_database(records, os.path.join(tmpdir, "tdcd_FINAL_SEQS.dmnd"))
            self.assertEqual(path, os.path.join(tmpdir, "tdcd_FINAL_SEQS.dmnd"))

        cmd = mock_run.call_args.args[0]
        self.assertEqual(cmd[:2], ["diamond", "makedb"])
        self.assertEqual(cmd[cmd.index("-d") + 1], os.path.join(tmpdir, "tdcd_FINAL_SEQS"))

    def test_make_database_requires_records(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                DiamondSearch().make_database([], os.path.join(tmpdir, "empty"))


if __name__ == '__main__':
    unittest.main()
