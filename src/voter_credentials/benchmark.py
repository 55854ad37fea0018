"""
Performance benchmarking for credential generation, verification and batch
provisioning.

Benchmarks run on random synthetic templates only and report timing
statistics, throughput and resident memory so that provisioning capacity can
be planned for large registries.
"""

import gc
import time
from contextlib import nullcontext
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np
import psutil
import structlog

from .constants import BENCHMARK_ITERATIONS, BENCHMARK_WARMUP_ITERATIONS, TEMPLATE_LENGTH
from .credential_generator import CredentialGenerator
from .exceptions import BenchmarkError, VoterCredentialError
from .provisioner import BatchProvisioner, ProvisioningMode
from .template_sources import MappingTemplateSource
from .verifier import CredentialVerifier

# Initialize structured logger
logger = structlog.get_logger(__name__)


@dataclass
class BenchmarkResult:
    """
    Benchmark result for a single component.

    Attributes
    ----------
    component_name : str
        Name of the benchmarked component.
    avg_time_ms : float
        Average execution time in milliseconds.
    std_time_ms : float
        Standard deviation of execution times.
    min_time_ms : float
        Minimum execution time.
    max_time_ms : float
        Maximum execution time.
    median_time_ms : float
        Median execution time.
    throughput_ops_per_sec : float
        Operations per second.
    memory_usage_mb : float
        Peak resident memory in MB.
    iterations : int
        Number of successful iterations.
    """

    component_name: str
    avg_time_ms: float
    std_time_ms: float
    min_time_ms: float
    max_time_ms: float
    median_time_ms: float
    throughput_ops_per_sec: float
    memory_usage_mb: float
    iterations: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MemoryProfiler:
    """
    Tracks resident memory of the current process around an operation.

    Examples
    --------
    >>> with MemoryProfiler() as profiler:
    ...     buffer = bytearray(1024 * 1024)
    >>> profiler.peak_memory_mb >= profiler.initial_memory_mb
    True
    """

    def __init__(self) -> None:
        self.initial_memory_mb = 0.0
        self.peak_memory_mb = 0.0
        self.process = psutil.Process()

    def _rss_mb(self) -> float:
        return self.process.memory_info().rss / 1024 / 1024

    def __enter__(self) -> "MemoryProfiler":
        gc.collect()
        self.initial_memory_mb = self._rss_mb()
        self.peak_memory_mb = self.initial_memory_mb
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.peak_memory_mb = max(self.peak_memory_mb, self._rss_mb())


class CredentialBenchmarker:
    """
    Performance benchmarker for the credential pipeline.

    Parameters
    ----------
    default_iterations : int, default=BENCHMARK_ITERATIONS
        Default number of measured iterations.
    enable_memory_profiling : bool, default=True
        Whether to record resident memory around each iteration.
    warmup_iterations : int, default=BENCHMARK_WARMUP_ITERATIONS
        Unmeasured iterations run first.
    template_length : Optional[int], default=None
        Length of the random benchmark templates. Defaults to
        ``config.TEMPLATE_LENGTH``.
    seed : Optional[int], default=None
        Seed for the template generator.

    Examples
    --------
    >>> benchmarker = CredentialBenchmarker(default_iterations=10, warmup_iterations=0)
    >>> results = benchmarker.benchmark_all()
    >>> sorted(results)
    ['generation', 'provisioning', 'verification']
    """

    def __init__(
        self,
        default_iterations: int = BENCHMARK_ITERATIONS,
        enable_memory_profiling: bool = True,
        warmup_iterations: int = BENCHMARK_WARMUP_ITERATIONS,
        template_length: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.default_iterations = default_iterations
        self.enable_memory_profiling = enable_memory_profiling
        self.warmup_iterations = warmup_iterations
        self.rng = np.random.default_rng(seed)
        self.generator = CredentialGenerator(template_length=template_length)
        self.verifier = CredentialVerifier(template_length=self.generator.template_length)
        # Random templates need a concrete length even when any length is accepted
        self.template_length = self.generator.template_length or TEMPLATE_LENGTH

        logger.info(
            "CredentialBenchmarker initialized",
            default_iterations=default_iterations,
            enable_memory_profiling=enable_memory_profiling,
            warmup_iterations=warmup_iterations,
            template_length=self.template_length,
        )

    def _random_template(self) -> bytes:
        return self.rng.bytes(self.template_length)

    def _benchmark_function(
        self,
        func: Callable,
        args: tuple = (),
        iterations: Optional[int] = None,
        component_name: str = "unknown",
    ) -> BenchmarkResult:
        """
        Benchmark a single callable.

        Iterations that raise a ``VoterCredentialError`` are logged and
        excluded from the statistics.

        Raises
        ------
        BenchmarkError
            If no iteration succeeded.
        """
        if iterations is None:
            iterations = self.default_iterations

        logger.debug(
            f"Starting benchmark for {component_name}",
            iterations=iterations,
            function_name=getattr(func, "__name__", repr(func)),
        )

        for _ in range(self.warmup_iterations):
            func(*args)

        execution_times = []
        memory_usage_mb = 0.0

        for i in range(iterations):
            profiler = MemoryProfiler() if self.enable_memory_profiling else None

            with profiler or nullcontext():
                start_time = time.perf_counter()
                try:
                    func(*args)
                    execution_times.append((time.perf_counter() - start_time) * 1000)
                except VoterCredentialError as e:
                    logger.warning(
                        f"Benchmark iteration {i} failed for {component_name}",
                        **e.to_dict(),
                    )

            if profiler is not None:
                memory_usage_mb = max(memory_usage_mb, profiler.peak_memory_mb)

        if not execution_times:
            raise BenchmarkError(
                f"All benchmark iterations failed for {component_name}",
                benchmark_type=component_name,
            )

        times = np.array(execution_times)
        avg_time_ms = float(np.mean(times))

        result = BenchmarkResult(
            component_name=component_name,
            avg_time_ms=avg_time_ms,
            std_time_ms=float(np.std(times)),
            min_time_ms=float(np.min(times)),
            max_time_ms=float(np.max(times)),
            median_time_ms=float(np.median(times)),
            throughput_ops_per_sec=1000.0 / avg_time_ms if avg_time_ms > 0 else 0.0,
            memory_usage_mb=memory_usage_mb,
            iterations=len(execution_times),
        )

        logger.info(
            f"Benchmark completed for {component_name}",
            avg_time_ms=avg_time_ms,
            throughput_ops_per_sec=result.throughput_ops_per_sec,
            memory_usage_mb=memory_usage_mb,
            successful_iterations=len(execution_times),
        )

        return result

    def benchmark_generation(self, iterations: Optional[int] = None) -> BenchmarkResult:
        """Benchmark ``CredentialGenerator.generate`` on one random template."""
        template = self._random_template()
        return self._benchmark_function(
            self.generator.generate,
            args=("benchmark", template),
            iterations=iterations,
            component_name="credential_generation",
        )

    def benchmark_verification(self, iterations: Optional[int] = None) -> BenchmarkResult:
        """Benchmark a matching ``CredentialVerifier.verify`` call."""
        template = self._random_template()
        record = self.generator.generate("benchmark", template)
        return self._benchmark_function(
            self.verifier.verify,
            args=(record, template),
            iterations=iterations,
            component_name="credential_verification",
        )

    def benchmark_provisioning(
        self,
        batch_size: int = 100,
        iterations: Optional[int] = None,
        max_workers: Optional[int] = None,
    ) -> BenchmarkResult:
        """Benchmark a production-mode batch of ``batch_size`` voters."""
        identifiers = [str(i + 1) for i in range(batch_size)]
        source = MappingTemplateSource(
            {identifier: self._random_template() for identifier in identifiers}
        )
        provisioner = BatchProvisioner(
            generator=self.generator,
            mode=ProvisioningMode.PRODUCTION,
            max_workers=max_workers,
        )
        return self._benchmark_function(
            provisioner.provision_batch,
            args=(identifiers, source),
            iterations=iterations,
            component_name=f"batch_provisioning_{batch_size}",
        )

    def benchmark_all(self, iterations: Optional[int] = None) -> Dict[str, Any]:
        """
        Run every benchmark.

        Returns
        -------
        Dict[str, Any]
            Results keyed by component, as plain dictionaries.
        """
        logger.info("Starting full credential benchmark")

        results = {
            "generation": self.benchmark_generation(iterations).to_dict(),
            "verification": self.benchmark_verification(iterations).to_dict(),
            "provisioning": self.benchmark_provisioning(
                iterations=max(1, (iterations or self.default_iterations) // 10)
            ).to_dict(),
        }

        logger.info("Full credential benchmark completed")
        return results
