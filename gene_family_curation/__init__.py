#!/usr/bin/env python3

"""
Gene Family Curation Pipeline

Curates family-specific protein sets from sharded pangenome corpora,
builds profile HMMs from the cleaned alignments, and counts gene family
hits in metagenomic samples with a translated search.

Modules:
- core: Data structures, exceptions, configuration, parsers, processing
  stages, external tool adapters and the pipelines
- utils: Stage monitoring
- tests: Unit test suite
"""

__version__ = "1.0.0"
__author__ = "Gene Family Curation Team"

from .core.data_structures import (
    SequenceRecord, Corpus, CandidateSet, LengthBand, Alignment,
    VerificationReport, CleanSet, CurationResult, QuantificationResult,
    ResultsTable, FamilySpec
)
from .core.exceptions import (
    PipelineError, SourceUnavailable, EmptyResult, InternalInconsistency,
    ParseError, ValidationError, ExternalToolError, ConfigurationError,
    ResourceLimitError, DataQualityWarning
)
from .core.config import PipelineConfig, load_config, load_family_specs
from .core.pipeline import FamilyCurationPipeline, QuantificationPipeline

__all__ = [
    # Pipelines
    'FamilyCurationPipeline', 'QuantificationPipeline',
    # Data structures
    'SequenceRecord', 'Corpus', 'CandidateSet', 'LengthBand', 'Alignment',
    'VerificationReport', 'CleanSet', 'CurationResult', 'QuantificationResult',
    'ResultsTable', 'FamilySpec',
    # Exceptions
    'PipelineError', 'SourceUnavailable', 'EmptyResult', 'InternalInconsistency',
    'ParseError', 'ValidationError', 'ExternalToolError', 'ConfigurationError',
    'ResourceLimitError', 'DataQualityWarning',
    # Configuration
    'PipelineConfig', 'load_config', 'load_family_specs'
]
