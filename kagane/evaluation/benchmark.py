"""
Benchmark module for the Kagane page pipeline.

Measures mapping generation and full decrypt-and-descramble time per page,
with process memory sampled through psutil.
"""

import gc
import statistics
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import psutil

from ..crypto.kdf import DEFAULT_FILENAME_TEMPLATE, derive_page_seed, page_filename
from ..crypto.scramble import DEFAULT_GRID_SIZE, Scrambler
from ..protocol.decryptor import PageDecryptor
from ..protocol.encryptor import PageEncryptor, synthetic_jpeg


@dataclass
class BenchmarkResult:
    """Container for benchmark results."""
    name: str
    image_size: int
    iterations: int
    total_time: float
    avg_time: float
    stdev_time: float
    throughput_mbps: float
    memory_usage: Optional[Dict[str, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PageBenchmark:
    """
    Performance benchmarking for the page pipeline.
    """

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE,
                 filename_template: str = DEFAULT_FILENAME_TEMPLATE,
                 series_id: str = "bench-series", chapter_id: str = "bench-chapter"):
        self.grid_size = grid_size
        self.filename_template = filename_template
        self.series_id = series_id
        self.chapter_id = chapter_id
        self.encryptor = PageEncryptor(grid_size, filename_template)
        self.decryptor = PageDecryptor(grid_size, filename_template)
        self.results: List[BenchmarkResult] = []

    def measure_memory_usage(self) -> Dict[str, float]:
        """
        Measure current memory usage.

        Returns:
            Dictionary with memory statistics in MB
        """
        process = psutil.Process()
        memory_info = process.memory_info()

        return {
            'rss': memory_info.rss / 1024 / 1024,  # MB
            'vms': memory_info.vms / 1024 / 1024,  # MB
            'percent': process.memory_percent()
        }

    def _summarize(self, name: str, image_size: int, timings: List[float]) -> BenchmarkResult:
        total_time = sum(timings)
        avg_time = total_time / len(timings)
        throughput = (image_size * len(timings)) / total_time / 1024 / 1024 if total_time else 0.0

        result = BenchmarkResult(
            name=name,
            image_size=image_size,
            iterations=len(timings),
            total_time=total_time,
            avg_time=avg_time,
            stdev_time=statistics.stdev(timings) if len(timings) > 1 else 0.0,
            throughput_mbps=throughput,
            memory_usage=self.measure_memory_usage(),
        )
        self.results.append(result)
        return result

    def benchmark_mapping(self, iterations: int = 50) -> BenchmarkResult:
        """
        Time seed derivation plus mapping generation alone.

        Args:
            iterations: Number of distinct pages to map

        Returns:
            Benchmark result (image_size is 0)
        """
        timings = []
        for index in range(1, iterations + 1):
            filename = page_filename(index, self.filename_template)
            start = time.perf_counter()
            seed = derive_page_seed(self.series_id, self.chapter_id, filename)
            Scrambler(seed, self.grid_size).get_scramble_mapping()
            timings.append(time.perf_counter() - start)

        return self._summarize("mapping", 0, timings)

    def benchmark_pipeline(self, image_sizes: List[int],
                           iterations: int = 20) -> List[BenchmarkResult]:
        """
        Time the full decrypt-and-descramble pipeline across image sizes.

        Args:
            image_sizes: Synthetic image sizes to test
            iterations: Pages per size

        Returns:
            List of benchmark results
        """
        results = []

        for size in image_sizes:
            image = synthetic_jpeg(size)
            payloads = [
                self.encryptor.encrypt_page(image, self.series_id, self.chapter_id, index)
                for index in range(1, iterations + 1)
            ]

            gc.collect()
            timings = []
            for index, payload in enumerate(payloads, start=1):
                start = time.perf_counter()
                decrypted = self.decryptor.decrypt_page(
                    payload, self.series_id, self.chapter_id, index
                )
                timings.append(time.perf_counter() - start)
                if decrypted != image:
                    raise RuntimeError(f"Pipeline mismatch for page {index} at {size}B")

            results.append(self._summarize("pipeline", size, timings))

        return results


def run_comprehensive_benchmark(image_sizes: Optional[List[int]] = None,
                                iterations: int = 20) -> Dict[str, Any]:
    """
    Run mapping and pipeline benchmarks with default parameters.

    Returns:
        Dictionary of serialisable results
    """
    if image_sizes is None:
        image_sizes = [64 * 1024, 256 * 1024, 1024 * 1024]

    benchmark = PageBenchmark()
    mapping = benchmark.benchmark_mapping(iterations)
    pipeline = benchmark.benchmark_pipeline(image_sizes, iterations)

    return {
        'mapping': mapping.to_dict(),
        'pipeline': [result.to_dict() for result in pipeline],
    }
