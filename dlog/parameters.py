"""
Group parameters for discrete-log proofs
Named toy groups, safe-prime generation and PKCS#3 PEM import/export
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dh

from .dlog_proofs import InvalidParameterError, ProofFormatError, _is_int, _parse_int

logger = logging.getLogger(__name__)

# Smallest modulus cryptography will generate
MIN_GENERATED_KEY_SIZE = 512


@dataclass(frozen=True)
class GroupParameters:
    """Public parameters (p, g) of a discrete-log statement"""
    modulus: int
    generator: int
    name: str = ""

    @property
    def bit_length(self) -> int:
        return self.modulus.bit_length()

    @property
    def byte_width(self) -> int:
        return (self.bit_length + 7) // 8

    def validate(self) -> 'GroupParameters':
        if not _is_int(self.modulus) or self.modulus <= 1:
            raise InvalidParameterError(
                f"Modulus must be an integer greater than 1, got {self.modulus!r}")
        if not _is_int(self.generator) or not 0 < self.generator < self.modulus:
            raise InvalidParameterError(
                f"Generator must satisfy 0 < g < p, got {self.generator!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'modulus': hex(self.modulus),
            'generator': hex(self.generator),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupParameters':
        try:
            return cls(
                modulus=_parse_int(data['modulus']),
                generator=_parse_int(data['generator']),
                name=data.get('name', ''),
            ).validate()
        except KeyError as e:
            raise ProofFormatError(f"Missing group parameter: {e}") from e


TOY_PARAMETERS: Dict[str, GroupParameters] = {
    'toy-23': GroupParameters(23, 5, 'toy-23'),
    'toy-31': GroupParameters(31, 3, 'toy-31'),
    'toy-67': GroupParameters(67, 2, 'toy-67'),
    'mersenne-61': GroupParameters(2**61 - 1, 37, 'mersenne-61'),
    'mersenne-127': GroupParameters(2**127 - 1, 3, 'mersenne-127'),
}


def get_named_parameters(name: str) -> GroupParameters:
    if name not in TOY_PARAMETERS:
        raise InvalidParameterError(
            f"Unknown group '{name}'. Known groups: {', '.join(sorted(TOY_PARAMETERS))}")
    return TOY_PARAMETERS[name]


def generate_parameters(key_size: int = MIN_GENERATED_KEY_SIZE, generator: int = 2) -> GroupParameters:
    """Generate a safe prime p = 2q + 1 with generator g"""
    if key_size < MIN_GENERATED_KEY_SIZE:
        raise InvalidParameterError(
            f"Key size must be at least {MIN_GENERATED_KEY_SIZE} bits, got {key_size}")

    logger.info(f"Generating {key_size}-bit group parameters (g={generator})")
    try:
        parameters = dh.generate_parameters(generator=generator, key_size=key_size)
    except ValueError as e:
        raise InvalidParameterError(f"Parameter generation failed: {e}") from e

    numbers = parameters.parameter_numbers()
    return GroupParameters(numbers.p, numbers.g, f"dh-{key_size}")


def parameters_to_pem(params: GroupParameters) -> bytes:
    """Encode parameters as PKCS#3 PEM"""
    params.validate()
    try:
        dh_parameters = dh.DHParameterNumbers(params.modulus, params.generator).parameters()
        return dh_parameters.parameter_bytes(
            serialization.Encoding.PEM, serialization.ParameterFormat.PKCS3)
    except ValueError as e:
        raise InvalidParameterError(f"Cannot encode parameters: {e}") from e


def load_parameters_pem(data: bytes, name: str = "") -> GroupParameters:
    """Decode PKCS#3 PEM parameters"""
    try:
        dh_parameters = serialization.load_pem_parameters(data)
    except ValueError as e:
        raise ProofFormatError(f"Could not parse PEM parameters: {e}") from e

    if not isinstance(dh_parameters, dh.DHParameters):
        raise ProofFormatError("PEM data does not hold Diffie-Hellman parameters")

    numbers = dh_parameters.parameter_numbers()
    return GroupParameters(numbers.p, numbers.g, name).validate()


def resolve_parameters(group: str, parameters_file: Optional[Path] = None) -> GroupParameters:
    """Parameters from a PEM file when given, otherwise a named group"""
    if parameters_file is not None:
        path = Path(parameters_file)
        with open(path, 'rb') as f:
            params = load_parameters_pem(f.read(), name=path.stem)
        logger.info(f"Loaded {params.bit_length}-bit parameters from {path}")
        return params
    return get_named_parameters(group)
