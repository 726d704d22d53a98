#!/usr/bin/env python3

"""
Core module for the gene family curation pipeline.

Contains data structures, exception types, configuration, FASTA parsing,
the curation stages and the external tool adapters.
"""

from .data_structures import (
    SequenceRecord, Corpus, CandidateSet, LengthBand, Alignment,
    VerificationReport, CleanSet, CurationResult, QuantificationResult,
    ResultsTable, FamilySpec
)
from .exceptions import (
    PipelineError, SourceUnavailable, EmptyResult, InternalInconsistency,
    ParseError, ValidationError, ExternalToolError, ConfigurationError,
    ResourceLimitError, DataQualityWarning
)
from .config import PipelineConfig, load_config, load_family_specs

__all__ = [
    'SequenceRecord', 'Corpus', 'CandidateSet', 'LengthBand', 'Alignment',
    'VerificationReport', 'CleanSet', 'CurationResult', 'QuantificationResult',
    'ResultsTable', 'FamilySpec',
    'PipelineError', 'SourceUnavailable', 'EmptyResult', 'InternalInconsistency',
    'ParseError', 'ValidationError', 'ExternalToolError', 'ConfigurationError',
    'ResourceLimitError', 'DataQualityWarning',
    'PipelineConfig', 'load_config', 'load_family_specs'
]
