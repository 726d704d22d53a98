#!/usr/bin/env python3

"""
Unit tests for core data structures.

Tests the record, corpus, alignment and result classes for correctness
and error handling.
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from gene_family_curation.core.data_structures import (
    Alignment, CandidateSet, Corpus, FamilySpec, LengthBand, QuantificationResult,
    ResultsTable, SequenceRecord
)


class TestSequenceRecord(unittest.TestCase):
    """Test the SequenceRecord data structure."""

    def test_valid_record(self):
        """Test creating a valid record."""
        record = SequenceRecord(id="GUT_1", description="tdcD threonine dehydratase", residues="MKV")
        self.assertEqual(record.length, 3)
        self.assertEqual(record.header, "GUT_1 tdcD threonine dehydratase")

    def test_invalid_record(self):
        """Test that empty ids or residues raise ValueError."""
        with self.assertRaises(ValueError):
            SequenceRecord(id="", residues="MKV")
        with self.assertRaises(ValueError):
            SequenceRecord(id="GUT_1", residues="")

    def test_record_is_immutable(self):
        """Test records cannot be modified after creation."""
        record = SequenceRecord(id="GUT_1", residues="MKV")
        with self.assertRaises(AttributeError):
            record.residues = "MKVL"

    def test_to_fasta_wraps_lines(self):
        """Test FASTA rendering with line wrapping."""
        record = SequenceRecord(id="GUT_1", residues="A" * 130)
        lines = record.to_fasta(width=60).splitlines()
        self.assertEqual(lines[0], ">GUT_1")
        self.assertEqual([len(line) for line in lines[1:]], [60, 60, 10])


class TestCorpus(unittest.TestCase):
    """Test Corpus and CandidateSet."""

    def setUp(self):
        self.records = [
            SequenceRecord(id="a", residues="MKV"),
            SequenceRecord(id="b", residues="MKVLL"),
            SequenceRecord(id="c", residues="M"),
        ]

    def test_corpus_lookup(self):
        """Test id lookup, membership and lengths."""
        corpus = Corpus(records=self.records)
        self.assertEqual(len(corpus), 3)
        self.assertIn("b", corpus)
        self.assertNotIn("z", corpus)
        self.assertEqual(corpus.get("b").residues, "MKVLL")
        self.assertIsNone(corpus.get("z"))
        self.assertEqual(corpus.ids, ["a", "b", "c"])
        self.assertEqual(corpus.lengths(), [3, 5, 1])

    def test_candidate_set_derive_keeps_provenance(self):
        """Test derived candidate sets keep token and sources of kept records."""
        candidates = CandidateSet(
            records=self.records, gene_token="tdcd", negative_pattern="bcd_1",
            sources={"a": "s1.faa", "b": "s1.faa", "c": "s2.faa"}, header_count=4, excluded_count=1,
        )
        derived = candidates.derive([self.records[2]])

        self.assertEqual(derived.ids, ["c"])
        self.assertEqual(derived.sources, {"c": "s2.faa"})
        self.assertEqual(derived.gene_token, "tdcd")
        self.assertEqual(derived.header_count, 4)
        self.assertEqual(len(candidates), 3)


class TestLengthBand(unittest.TestCase):
    """Test LengthBand validation."""

    def test_contains_is_inclusive(self):
        band = LengthBand(min=100, max=920)
        self.assertTrue(band.contains(100))
        self.assertTrue(band.contains(920))
        self.assertFalse(band.contains(99))
        self.assertFalse(band.contains(921))

    def test_invalid_band(self):
        with self.assertRaises(ValueError):
            LengthBand(min=0, max=10)
        with self.assertRaises(ValueError):
            LengthBand(min=100, max=50)


class TestAlignment(unittest.TestCase):
    """Test the Alignment structure."""

    def test_gap_fraction(self):
        """Test gap fractions with both gap markers."""
        alignment = Alignment([("a", "MKVL"), ("b", "M--L"), ("c", "M..-")])
        self.assertEqual(alignment.column_count, 4)
        self.assertEqual(alignment.gap_fraction("a"), 0.0)
        self.assertEqual(alignment.gap_fraction("b"), 0.5)
        self.assertEqual(alignment.gap_fraction("c"), 0.75)

    def test_ragged_rows_rejected(self):
        with self.assertRaises(ValueError):
            Alignment([("a", "MKVL"), ("b", "MK")])

    def test_duplicate_rows_rejected(self):
        with self.assertRaises(ValueError):
            Alignment([("a", "MKVL"), ("a", "MKVL")])

    def test_subset_keeps_order_and_columns(self):
        alignment = Alignment([("a", "MKVL"), ("b", "M--L"), ("c", "MK-L")], {"b": "tdcD"})
        subset = alignment.subset({"c", "b"})
        self.assertEqual(subset.ids, ["b", "c"])
        self.assertEqual(subset.column_count, 4)
        self.assertEqual(subset.to_fasta(), ">b tdcD\nM--L\n>c\nMK-L\n")


class TestResultsTable(unittest.TestCase):
    """Test caller-side accumulation of quantification results."""

    def test_rows_sorted_and_replaced(self):
        table = ResultsTable()
        table.add(QuantificationResult(sample="S2", gene_family="tdcd", match_count=5))
        table.add(QuantificationResult(sample="S1", gene_family="tdcd", match_count=3))
        table.add(QuantificationResult(sample="S1", gene_family="pduc", match_count=0))
        table.add(QuantificationResult(sample="S2", gene_family="tdcd", match_count=7))

        self.assertEqual(len(table), 3)
        self.assertEqual(table.get("tdcd", "S2"), 7)
        self.assertEqual([(r.gene_family, r.sample) for r in table.rows()],
                         [("pduc", "S1"), ("tdcd", "S1"), ("tdcd", "S2")])
        self.assertEqual(table.gene_families(), ["pduc", "tdcd"])


class TestFamilySpec(unittest.TestCase):

    def test_requires_gene_and_control(self):
        with self.assertRaises(ValueError):
            FamilySpec(gene_name="", control_path="ctl.faa")
        with self.assertRaises(ValueError):
            FamilySpec(gene_name="tdcd", control_path="")


if __name__ == '__main__':
    unittest.main()
