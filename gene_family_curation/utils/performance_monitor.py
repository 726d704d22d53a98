#!/usr/bin/env python3

"""
Stage monitoring for the gene family curation pipeline.

Tracks elapsed time, resident memory and the number of records leaving
each stage. The record counts double as the run's diagnostics.
"""

import time
import logging
import psutil
from dataclasses import dataclass
from typing import Optional, Dict, Any
from contextlib import contextmanager

from ..core.exceptions import ResourceLimitError


@dataclass
class StageMetrics:
    """Container for one stage's metrics."""
    stage_name: str
    start_time: float
    end_time: Optional[float] = None
    peak_memory_mb: float = 0.0
    records_in: int = 0
    records_out: int = 0

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        if self.end_time is None:
            return time.time() - self.start_time
        return self.end_time - self.start_time


class StageMonitor:
    """Per-stage timing, memory and record-count tracking."""

    def __init__(self, memory_limit_mb: int = 4096, enabled: bool = True):
        self.memory_limit_mb = memory_limit_mb
        self.enabled = enabled
        self.start_time = time.time()
        self.stage_metrics: Dict[str, StageMetrics] = {}
        self.current_stage: Optional[str] = None
        self.process = psutil.Process()

    def get_memory_usage(self) -> float:
        """Get current resident memory in MB."""
        if not self.enabled:
            return 0.0

        memory_mb = self.process.memory_info().rss / 1024 / 1024
        if self.current_stage:
            metrics = self.stage_metrics[self.current_stage]
            metrics.peak_memory_mb = max(metrics.peak_memory_mb, memory_mb)
        return memory_mb

    def check_memory_limit(self) -> None:
        """Raise ResourceLimitError when resident memory exceeds the limit."""
        current_memory = self.get_memory_usage()
        if current_memory > self.memory_limit_mb:
            logging.warning(f"Memory usage exceeded limit: {current_memory:.1f}MB > {self.memory_limit_mb}MB")
            raise ResourceLimitError("Memory usage exceeded limit", current_memory, self.memory_limit_mb)

    def start_stage(self, stage_name: str, records_in: int = 0) -> StageMetrics:
        if self.current_stage:
            self.end_stage()

        self.current_stage = stage_name
        metrics = StageMetrics(stage_name=stage_name, start_time=time.time(), records_in=records_in)
        self.stage_metrics[stage_name] = metrics
        self.get_memory_usage()

        logging.info(f"==== {stage_name} ====")
        return metrics

    def end_stage(self) -> Optional[StageMetrics]:
        if not self.current_stage:
            return None

        metrics = self.stage_metrics[self.current_stage]
        self.get_memory_usage()
        metrics.end_time = time.time()

        logging.debug(f"Completed stage {self.current_stage} in {metrics.elapsed_time:.2f}s "
                      f"({metrics.records_in} -> {metrics.records_out} records, "
                      f"peak memory: {metrics.peak_memory_mb:.1f}MB)")

        self.current_stage = None
        return metrics

    @contextmanager
    def stage_context(self, stage_name: str, records_in: int = 0):
        """Context manager for monitoring a stage; set ``records_out`` on the yielded metrics."""
        metrics = self.start_stage(stage_name, records_in)
        try:
            yield metrics
            if self.enabled:
                self.check_memory_limit()
        finally:
            self.end_stage()

    def record_counts(self) -> Dict[str, int]:
        """Records leaving each completed stage, in stage order."""
        return {name: metrics.records_out for name, metrics in self.stage_metrics.items()}

    def get_summary(self) -> Dict[str, Any]:
        summary = {
            "total_elapsed_time": time.time() - self.start_time,
            "peak_memory_mb": max((m.peak_memory_mb for m in self.stage_metrics.values()), default=0.0),
            "memory_limit_mb": self.memory_limit_mb,
            "stages": {},
        }

        for stage_name, metrics in self.stage_metrics.items():
            summary["stages"][stage_name] = {
                "elapsed_time": metrics.elapsed_time,
                "records_in": metrics.records_in,
                "records_out": metrics.records_out,
                "peak_memory_mb": metrics.peak_memory_mb,
            }

        return summary

    def log_report(self) -> None:
        """Log a stage-by-stage summary."""
        summary = self.get_summary()

        logging.info("=" * 50)
        logging.info("STAGE REPORT")
        logging.info("=" * 50)
        logging.info(f"Total time: {summary['total_elapsed_time']:.2f} seconds")
        if self.enabled:
            logging.info(f"Peak memory: {summary['peak_memory_mb']:.1f} MB "
                         f"(limit {summary['memory_limit_mb']} MB)")

        for stage_name, stage in summary["stages"].items():
            logging.info(f"  {stage_name}: {stage['records_in']} -> {stage['records_out']} records "
                         f"in {stage['elapsed_time']:.2f}s")
