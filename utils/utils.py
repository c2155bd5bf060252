"""
Utilities for the proof toolkit
Logging setup, performance monitoring and result persistence
"""

import logging
import json
import time
import hashlib
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
import platform
from dataclasses import dataclass, asdict

import numpy as np
import psutil


@dataclass
class PerformanceMetrics:
    operation: str
    duration_seconds: float
    cpu_percent: float
    memory_mb: float
    timestamp: float
    additional_data: Optional[Dict[str, Any]] = None


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None,
                  log_dir: Path = Path("logs")):
    """Setup logging to a timestamped file and the console"""
    if log_file is None:
        log_file = Path(log_dir) / \
            f"dlog_zk_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Clear existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized. Log file: {log_file}")

    return logger


class PerformanceMonitor:
    """Performance monitor with context manager support"""

    def __init__(self):
        self.metrics: List[PerformanceMetrics] = []
        self.process = psutil.Process()

    def start_operation(self, operation_name: str) -> 'OperationContext':
        """Start monitoring an operation - returns context manager"""
        return OperationContext(self, operation_name)

    def record_metric(self, metric: PerformanceMetrics):
        self.metrics.append(metric)

    def get_summary(self) -> Dict[str, Any]:
        """Per-operation statistics"""
        if not self.metrics:
            return {
                'total_operations': 0,
                'total_duration': 0.0,
                'operations': {}
            }

        operation_groups: Dict[str, List[PerformanceMetrics]] = {}
        for metric in self.metrics:
            operation_groups.setdefault(metric.operation, []).append(metric)

        summary = {
            'total_operations': len(self.metrics),
            'operations': {}
        }

        for op_name, metrics in operation_groups.items():
            durations = np.array([m.duration_seconds for m in metrics])
            cpu_usages = [m.cpu_percent for m in metrics if m.cpu_percent > 0]
            memory_usages = [m.memory_mb for m in metrics if m.memory_mb > 0]
            total = float(durations.sum())

            summary['operations'][op_name] = {
                'count': len(metrics),
                'total_duration': total,
                'avg_duration': float(np.mean(durations)),
                'min_duration': float(durations.min()),
                'max_duration': float(durations.max()),
                'std_duration': float(np.std(durations)) if len(durations) > 1 else 0.0,
                'p95_duration': float(np.percentile(durations, 95)),
                'avg_cpu_percent': float(np.mean(cpu_usages)) if cpu_usages else 0.0,
                'avg_memory_mb': float(np.mean(memory_usages)) if memory_usages else 0.0,
                'peak_memory_mb': max(memory_usages) if memory_usages else 0.0,
                'throughput_ops_per_sec': len(metrics) / total if total > 0 else 0.0
            }

        summary['total_duration'] = sum(
            op_data['total_duration']
            for op_data in summary['operations'].values()
        )

        return summary

    def save_metrics(self, filepath: Path):
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        metrics_data = {
            'metrics': [asdict(m) for m in self.metrics],
            'summary': self.get_summary(),
            'system_info': get_system_info(),
            'timestamp': datetime.now().isoformat()
        }

        with open(filepath, 'w') as f:
            json.dump(metrics_data, f, indent=2, default=str)

    def reset(self):
        self.metrics.clear()


class OperationContext:
    """Context manager for performance monitoring"""

    def __init__(self, monitor: PerformanceMonitor, operation_name: str):
        self.monitor = monitor
        self.operation_name = operation_name
        self.start_time = None
        self.start_cpu = 0.0
        self.start_memory = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.started_at = time.time()

        try:
            self.monitor.process.cpu_percent()  # prime the counter
            self.start_memory = self.monitor.process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logging.debug(f"Performance monitoring error: {e}")

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time

        end_cpu = 0.0
        end_memory = self.start_memory
        try:
            end_cpu = self.monitor.process.cpu_percent()
            end_memory = self.monitor.process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logging.debug(f"Performance monitoring error: {e}")

        self.monitor.record_metric(PerformanceMetrics(
            operation=self.operation_name,
            duration_seconds=duration,
            cpu_percent=end_cpu,
            memory_mb=max(self.start_memory, end_memory),
            timestamp=self.started_at,
            additional_data={'exception': exc_type is not None}
        ))


def get_system_info() -> Dict[str, Any]:
    """System information for reproducible benchmarks"""
    info = {
        'platform': platform.platform(),
        'processor': platform.processor(),
        'python_version': platform.python_version(),
        'machine': platform.machine(),
        'system': platform.system(),
        'numpy_version': np.__version__,
        'timestamp': datetime.now().isoformat()
    }

    try:
        vm = psutil.virtual_memory()
        info.update({
            'cpu_count_physical': psutil.cpu_count(logical=False),
            'cpu_count_logical': psutil.cpu_count(logical=True),
            'total_memory_gb': round(vm.total / 1024 / 1024 / 1024, 2),
            'available_memory_gb': round(vm.available / 1024 / 1024 / 1024, 2),
        })
    except psutil.Error as e:
        logging.debug(f"System info error: {e}")

    return info


def compute_hash(data: Union[str, bytes, Dict, List, Any]) -> str:
    """SHA256 hex digest of data; dicts and lists are hashed as canonical JSON"""
    if hasattr(data, '__dataclass_fields__'):
        data = asdict(data)

    if isinstance(data, (dict, list)):
        data = json.dumps(data, sort_keys=True, default=str)

    if isinstance(data, str):
        data = data.encode('utf-8')
    elif not isinstance(data, bytes):
        data = str(data).encode('utf-8')

    return hashlib.sha256(data).hexdigest()


def _convert_to_serializable(obj):
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    if hasattr(obj, '__dataclass_fields__'):
        return _convert_to_serializable(asdict(obj))
    if isinstance(obj, dict):
        return {k: _convert_to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert_to_serializable(item) for item in obj]
    if isinstance(obj, (np.integer, np.floating)):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    # JSON numbers lose precision for big moduli in other tools
    if isinstance(obj, int) and not isinstance(obj, bool) and obj.bit_length() > 53:
        return hex(obj)
    return obj


def save_results(results: Dict[str, Any], filepath: Path):
    """Save results to JSON with metadata, plus a text summary beside it"""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    enhanced_results = {
        'metadata': {
            'generated_at': datetime.now().isoformat(),
            'system_info': get_system_info(),
            'file_path': str(filepath)
        },
        'data': _convert_to_serializable(results)
    }

    with open(filepath, 'w') as f:
        json.dump(enhanced_results, f, indent=2, default=str)

    summary_path = filepath.parent / f"{filepath.stem}_summary.txt"
    with open(summary_path, 'w') as f:
        f.write(create_results_summary(results))

    logging.info(f"Results saved to {filepath}")
    logging.info(f"Summary saved to {summary_path}")
    return summary_path


def create_results_summary(results: Dict[str, Any]) -> str:
    """Human-readable summary of results"""
    summary = []
    summary.append("=" * 80)
    summary.append("DISCRETE-LOG ZERO-KNOWLEDGE PROOFS - RESULTS SUMMARY")
    summary.append("=" * 80)
    summary.append(
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    summary.append("")

    if 'group' in results and isinstance(results['group'], dict):
        summary.append("GROUP:")
        for key in ('name', 'bit_length', 'rounds', 'hash_algorithm'):
            if key in results['group']:
                summary.append(f"  {key}: {results['group'][key]}")
        summary.append("")

    if 'benchmarks' in results and isinstance(results['benchmarks'], dict):
        summary.append("BENCHMARK RESULTS:")
        for bench_name, bench_data in results['benchmarks'].items():
            summary.append(f"  {bench_name}:")
            if isinstance(bench_data, dict):
                for key, value in bench_data.items():
                    if isinstance(value, float):
                        summary.append(f"    {key}: {value:.4f}")
                    else:
                        summary.append(f"    {key}: {value}")
        summary.append("")

    if 'checks' in results and isinstance(results['checks'], dict):
        summary.append("CHECKS:")
        for check, passed in results['checks'].items():
            status = "PASSED" if passed else "FAILED"
            summary.append(f"  {check}: {status}")
        summary.append("")

    summary.append("=" * 80)
    return "\n".join(summary)


def create_performance_report(metrics: PerformanceMonitor) -> str:
    """Detailed performance report from recorded metrics"""
    summary = metrics.get_summary()

    report = []
    report.append("=" * 80)
    report.append("DISCRETE-LOG ZERO-KNOWLEDGE PROOFS - PERFORMANCE REPORT")
    report.append("=" * 80)
    report.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    report.append(f"Total Operations: {summary.get('total_operations', 0)}")
    report.append(f"Total Duration: {format_duration(summary.get('total_duration', 0.0))}")
    report.append("")

    if summary['operations']:
        report.append("OPERATION BREAKDOWN:")
        report.append("-" * 60)

        for op_name, op_data in summary['operations'].items():
            report.append(f"\n{op_name.upper()}:")
            report.append(f"  Executions: {op_data['count']}")
            report.append(f"  Total Time: {format_duration(op_data['total_duration'])}")
            report.append(f"  Average Time: {format_duration(op_data['avg_duration'])}")
            report.append(
                f"  Min/Max Time: {format_duration(op_data['min_duration'])} / {format_duration(op_data['max_duration'])}")
            report.append(f"  Std Deviation: {op_data['std_duration']:.6f}s")
            report.append(
                f"  Throughput: {op_data['throughput_ops_per_sec']:.2f} ops/sec")

            if op_data['avg_memory_mb'] > 0:
                report.append(
                    f"  Peak Memory: {op_data['peak_memory_mb']:.1f} MB")
    else:
        report.append("No performance data available.")

    report.append("")
    report.append("=" * 80)
    return "\n".join(report)


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format"""
    if seconds < 0.001:
        return f"{seconds * 1000000:.1f}μs"
    elif seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        minutes = int(seconds // 60)
        remaining_seconds = seconds % 60
        return f"{minutes}m {remaining_seconds:.1f}s"
