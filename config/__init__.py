"""Configuration management for the proof toolkit."""

from .config import SystemConfig, ProofConfig, load_config, save_config

__all__ = ['SystemConfig', 'ProofConfig', 'load_config', 'save_config']
