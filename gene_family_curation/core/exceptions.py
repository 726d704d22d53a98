#!/usr/bin/env python3

"""
Custom exceptions for the gene family curation pipeline.

Fatal errors derive from PipelineError and are scoped to a single gene
family or sample. DataQualityWarning is advisory and never halts a run.
"""


class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""
    pass


class SourceUnavailable(PipelineError):
    """A required corpus file is missing or unreadable."""
    
    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
    
    def __str__(self):
        if self.path:
            return f"Source unavailable: {self.path}: {super().__str__()}"
        return f"Source unavailable: {super().__str__()}"


class EmptyResult(PipelineError):
    """A stage produced no records for a gene family."""
    
    def __init__(self, message: str, stage: str, gene_family: str = "", count: int = 0):
        super().__init__(message)
        self.stage = stage
        self.gene_family = gene_family
        self.count = count
    
    def __str__(self):
        if self.gene_family:
            return (f"Empty result at stage '{self.stage}' for gene {self.gene_family} "
                    f"({self.count} records): {super().__str__()}")
        return f"Empty result at stage '{self.stage}' ({self.count} records): {super().__str__()}"


class InternalInconsistency(PipelineError):
    """A curated id cannot be traced back to its original record."""
    
    def __init__(self, message: str, stage: str = "", gene_family: str = "", record_id: str = ""):
        super().__init__(message)
        self.stage = stage
        self.gene_family = gene_family
        self.record_id = record_id
    
    def __str__(self):
        location = f" at stage '{self.stage}'" if self.stage else ""
        family = f" for gene {self.gene_family}" if self.gene_family else ""
        if self.record_id:
            return f"Internal inconsistency{location}{family} (record {self.record_id}): {super().__str__()}"
        return f"Internal inconsistency{location}{family}: {super().__str__()}"


class ParseError(PipelineError):
    """Error occurred during file parsing."""
    
    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number
    
    def __str__(self):
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()


class ValidationError(PipelineError):
    """Input records conflict with each other or with the pipeline contract."""
    
    def __init__(self, message: str, record_id: str = ""):
        super().__init__(message)
        self.record_id = record_id
    
    def __str__(self):
        if self.record_id:
            return f"Validation error for record {self.record_id}: {super().__str__()}"
        return super().__str__()


class ExternalToolError(PipelineError):
    """An external collaborator (aligner, profile builder, search engine) failed."""
    
    def __init__(self, message: str, tool: str, returncode: int = 0, stderr: str = ""):
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
    
    def __str__(self):
        text = f"{self.tool} failed: {super().__str__()}"
        if self.returncode:
            text += f" (exit code {self.returncode})"
        if self.stderr:
            text += f"\n{self.stderr.strip()}"
        return text


class ConfigurationError(PipelineError):
    """Error in pipeline configuration."""
    pass


class ResourceLimitError(PipelineError):
    """Memory usage exceeded limits."""
    
    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit
    
    def __str__(self):
        return f"Resource limit: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"


class DataQualityWarning(UserWarning):
    """Advisory signal: annotation mismatches, excluded negative matches."""
    pass
