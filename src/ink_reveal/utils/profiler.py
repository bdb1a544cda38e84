"""Performance profiling utilities for reveal rendering."""

import functools
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator

import psutil


class PerformanceProfiler:
    """Accumulate execution time and memory deltas per named operation."""

    def __init__(self):
        self.metrics: Dict[str, Dict[str, Any]] = {}
        self.process = psutil.Process()

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Record the duration and RSS delta of the enclosed block."""
        start_time = time.perf_counter()
        start_memory = self.process.memory_info().rss
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            end_memory = self.process.memory_info().rss
            self._record(name, duration, start_memory, end_memory)

    def profile_function(self, name: str):
        """Decorator to profile function execution."""
        def decorator(func: Callable) -> Callable:
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.measure(name):
                    return func(*args, **kwargs)
            return wrapper
        return decorator

    def _record(self, name: str, duration: float, start_memory: int, end_memory: int) -> None:
        existing = self.metrics.get(name, {
            'total_duration': 0.0,
            'max_duration': 0.0,
            'total_memory_delta': 0,
            'peak_memory': start_memory,
            'calls': 0,
        })
        self.metrics[name] = {
            'duration': duration,
            'total_duration': existing['total_duration'] + duration,
            'max_duration': max(existing['max_duration'], duration),
            'memory_delta': end_memory - start_memory,
            'total_memory_delta': existing['total_memory_delta'] + (end_memory - start_memory),
            'peak_memory': max(existing['peak_memory'], end_memory),
            'calls': existing['calls'] + 1,
        }

    def reset(self) -> None:
        self.metrics.clear()

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary."""
        if not self.metrics:
            return {
                'total_time': 0.0,
                'peak_memory_mb': 0.0,
                'by_function': {}
            }

        return {
            'total_time': sum(m['total_duration'] for m in self.metrics.values()),
            'peak_memory_mb': max(m['peak_memory'] for m in self.metrics.values()) / (1024 * 1024),
            'by_function': self.metrics
        }

    def format_summary(self, title: str = "Performance Summary") -> str:
        """Format the summary as a multi-line report."""
        summary = self.get_summary()
        lines = [
            f"📊 {title}",
            "=" * len(title) + "===",
            f"Total Time: {summary['total_time']:.2f}s",
            f"Peak Memory: {summary['peak_memory_mb']:.1f}MB",
        ]

        for name, metrics in summary['by_function'].items():
            calls = metrics['calls']
            average_ms = metrics['total_duration'] / calls * 1000
            lines.append(f"  {name}:")
            lines.append(f"    Calls: {calls}")
            lines.append(f"    Avg: {average_ms:.2f}ms  Max: {metrics['max_duration'] * 1000:.2f}ms")
            lines.append(f"    Memory: {metrics['total_memory_delta'] / (1024 * 1024):+.1f}MB")
        return "\n".join(lines)
