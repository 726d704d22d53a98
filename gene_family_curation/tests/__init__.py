#!/usr/bin/env python3

"""
Test suite for the gene family curation pipeline.

Unit tests covering:
- Data structures and configuration
- FASTA parsing and the record store
- Retrieval, verification, length filtering, gap trimming, reconciliation
- External tool adapters (subprocess patched)
- End-to-end curation and quantification with fake collaborators
"""
