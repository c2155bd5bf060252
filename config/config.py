from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging
import multiprocessing

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ProofConfig:
    rounds: int = 100
    hash_algorithm: str = "blake2b"
    group: str = "mersenne-127"
    parameters_file: Optional[Path] = None
    key_size: int = 512
    generator: int = 2

    # Verifier policy
    proof_ttl_seconds: Optional[float] = 3600
    reject_replays: bool = True

    # Performance
    parallel_workers: int = min(4, multiprocessing.cpu_count())
    max_batch_size: int = 100
    max_concurrent_proofs: int = 10

    def __post_init__(self):
        if self.parameters_file is not None:
            self.parameters_file = Path(self.parameters_file)


@dataclass
class SystemConfig:
    proof_config: ProofConfig = field(default_factory=ProofConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    enable_benchmarking: bool = True
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.enable_debug_mode else "INFO"


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            defaults = ProofConfig()
            proof_data = config_data.get('proofs', {}) or {}
            proof_config = ProofConfig(
                rounds=proof_data.get('rounds', defaults.rounds),
                hash_algorithm=proof_data.get(
                    'hash_algorithm', defaults.hash_algorithm),
                group=proof_data.get('group', defaults.group),
                parameters_file=proof_data.get('parameters_file'),
                key_size=proof_data.get('key_size', defaults.key_size),
                generator=proof_data.get('generator', defaults.generator),
                proof_ttl_seconds=proof_data.get(
                    'proof_ttl_seconds', defaults.proof_ttl_seconds),
                reject_replays=proof_data.get(
                    'reject_replays', defaults.reject_replays),
                parallel_workers=proof_data.get(
                    'parallel_workers', defaults.parallel_workers),
                max_batch_size=proof_data.get(
                    'max_batch_size', defaults.max_batch_size),
                max_concurrent_proofs=proof_data.get(
                    'max_concurrent_proofs', defaults.max_concurrent_proofs)
            )

            return SystemConfig(
                proof_config=proof_config,
                log_dir=Path(config_data.get('log_dir', 'logs')),
                results_dir=Path(config_data.get('results_dir', 'results')),
                enable_benchmarking=config_data.get(
                    'enable_benchmarking', True),
                enable_debug_mode=config_data.get('enable_debug_mode', False)
            )
        except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    proof_config = config.proof_config
    config_data = {
        'proofs': {
            'rounds': proof_config.rounds,
            'hash_algorithm': proof_config.hash_algorithm,
            'group': proof_config.group,
            'parameters_file': str(proof_config.parameters_file) if proof_config.parameters_file else None,
            'key_size': proof_config.key_size,
            'generator': proof_config.generator,
            'proof_ttl_seconds': proof_config.proof_ttl_seconds,
            'reject_replays': proof_config.reject_replays,
            'parallel_workers': proof_config.parallel_workers,
            'max_batch_size': proof_config.max_batch_size,
            'max_concurrent_proofs': proof_config.max_concurrent_proofs
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'enable_benchmarking': config.enable_benchmarking,
        'enable_debug_mode': config.enable_debug_mode
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)

    logger.info(f"Configuration saved to {config_path}")
