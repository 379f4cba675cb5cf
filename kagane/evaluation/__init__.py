"""
Evaluation tools for the Kagane page engine.
"""

from .benchmark import PageBenchmark, BenchmarkResult, run_comprehensive_benchmark

__all__ = ['PageBenchmark', 'BenchmarkResult', 'run_comprehensive_benchmark']
