"""
Discrete Logarithm Zero-Knowledge Proofs
Non-interactive proof of knowledge of x such that y = g^x (mod p)

Each round is a Schnorr-style sigma protocol with a one-bit challenge:
the prover commits to h = g^r, receives a bit b and answers with
s = r + b*x (mod p - 1).  The verifier accepts a round when
g^s == h * y^b (mod p).  A cheating prover survives a round with
probability 1/2, so ROUNDS_OF_VERIFY rounds give 2^-100 soundness error.
Challenges are derived with Fiat-Shamir over the whole transcript.
"""

import json
import hashlib
import secrets
import logging
import time
from typing import List, Dict, Tuple, Optional, Any, Sequence
from pathlib import Path
from dataclasses import dataclass, field

from utils.utils import compute_hash

logger = logging.getLogger(__name__)

ROUNDS_OF_VERIFY = 100
DEFAULT_HASH_ALGORITHM = "blake2b"
SUPPORTED_HASH_ALGORITHMS = ("blake2b", "blake2s", "sha256", "sha3_256", "sha512")

# Domain separation tag for challenge derivation
CHALLENGE_DOMAIN = b"dlog-zk/fiat-shamir/v1"

# ============================================================================
# EXCEPTIONS
# ============================================================================


class ZKError(Exception):
    """Base exception for ZK operations"""
    pass


class InvalidParameterError(ZKError):
    """Statement or group parameters are malformed"""
    pass


class ProofFormatError(ZKError):
    """Serialized proof could not be decoded"""
    pass


class ProofGenerationError(ZKError):
    """Proof generation failed"""
    pass


# ============================================================================
# MODULAR ARITHMETIC
# ============================================================================


class ModularContext:
    """Arithmetic modulo a fixed modulus, reused across every round of a proof"""

    def __init__(self, modulus: int):
        if not isinstance(modulus, int) or isinstance(modulus, bool) or modulus <= 1:
            raise InvalidParameterError(
                f"Modulus must be an integer greater than 1, got {modulus!r}")
        self.modulus = modulus
        # Exponents live modulo p - 1 (Fermat)
        self.order = modulus - 1
        self.byte_width = (modulus.bit_length() + 7) // 8

    def pow_mod(self, base: int, exp: int) -> int:
        return pow(base, exp, self.modulus)

    def mul_mod(self, lhs: int, rhs: int) -> int:
        return (lhs * rhs) % self.modulus

    def inverse(self, value: int) -> int:
        """Multiplicative inverse modulo p"""
        try:
            return pow(value, -1, self.modulus)
        except ValueError as e:
            raise InvalidParameterError(
                f"{value} is not invertible modulo {self.modulus}") from e

    def encode(self, value: int) -> bytes:
        """Fixed-width big-endian encoding of a residue"""
        return value.to_bytes(self.byte_width, "big")


# ============================================================================
# PROOF TYPES
# ============================================================================


@dataclass(frozen=True)
class Proof:
    """One round of the protocol"""
    h: int  # h = g^r (mod p)
    s: int  # s = (r + b * x) (mod p - 1)

    def to_dict(self) -> Dict[str, str]:
        return {"h": hex(self.h), "s": hex(self.s)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Proof':
        return cls(h=_parse_int(data["h"]), s=_parse_int(data["s"]))


Proofs = List[Proof]


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ProofFormatError(f"Expected integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError as e:
            raise ProofFormatError(f"Malformed integer: {value!r}") from e
    raise ProofFormatError(f"Expected integer, got {type(value).__name__}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_statement(generator: int, modulus: int, rounds: int, hash_algorithm: str):
    """Validate the public part of a statement"""
    if not _is_int(modulus) or modulus <= 1:
        raise InvalidParameterError(
            f"Modulus must be an integer greater than 1, got {modulus!r}")
    if not _is_int(generator) or not 0 < generator < modulus:
        raise InvalidParameterError(
            f"Generator must satisfy 0 < g < p, got {generator!r}")
    if not _is_int(rounds) or rounds < 1:
        raise InvalidParameterError(f"Rounds must be positive, got {rounds!r}")
    if hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise InvalidParameterError(
            f"Unsupported hash algorithm: {hash_algorithm}")


# ============================================================================
# FIAT-SHAMIR CHALLENGES
# ============================================================================


def derive_challenge_bits(generator: int, modulus: int, residue: int,
                          commitments: Sequence[int],
                          hash_algorithm: str = DEFAULT_HASH_ALGORITHM) -> List[int]:
    """Derive one challenge bit per commitment from the full statement.

    The digest covers the byte width, the round count, p, g, y and every
    commitment, so no single round can be re-sampled without changing all
    challenges.  The digest is stretched with a block counter when more bits
    are needed than one digest provides.
    """
    if hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise InvalidParameterError(
            f"Unsupported hash algorithm: {hash_algorithm}")

    ctx = ModularContext(modulus)
    for value in (generator, residue, *commitments):
        if not _is_int(value) or not 0 <= value < modulus:
            raise InvalidParameterError(
                f"Value {value!r} is not a residue modulo {modulus}")

    hasher = hashlib.new(hash_algorithm)
    hasher.update(CHALLENGE_DOMAIN)
    hasher.update(ctx.byte_width.to_bytes(4, "big"))
    hasher.update(len(commitments).to_bytes(4, "big"))
    hasher.update(ctx.encode(modulus))
    hasher.update(ctx.encode(generator))
    hasher.update(ctx.encode(residue))
    for commitment in commitments:
        hasher.update(ctx.encode(commitment))
    seed = hasher.digest()

    needed = (len(commitments) + 7) // 8
    stream = b""
    counter = 0
    while len(stream) < needed:
        stream += hashlib.new(
            hash_algorithm, seed + counter.to_bytes(4, "big")).digest()
        counter += 1

    return [(stream[i // 8] >> (i % 8)) & 1 for i in range(len(commitments))]


# ============================================================================
# PROVER AND VERIFIER
# ============================================================================


def prove(secret: int, generator: int, modulus: int,
          rounds: int = ROUNDS_OF_VERIFY,
          hash_algorithm: str = DEFAULT_HASH_ALGORITHM) -> Tuple[int, Proofs]:
    """Prove knowledge of secret x such that y = g^x (mod p)

    Returns (residue y, proofs)
    """
    _validate_statement(generator, modulus, rounds, hash_algorithm)
    if not _is_int(secret) or secret < 0:
        raise InvalidParameterError("Secret must be a non-negative integer")

    ctx = ModularContext(modulus)
    residue = ctx.pow_mod(generator, secret)

    # r is drawn below p - 1
    nonces = [secrets.randbelow(ctx.order) for _ in range(rounds)]
    commitments = [ctx.pow_mod(generator, r) for r in nonces]
    bits = derive_challenge_bits(
        generator, modulus, residue, commitments, hash_algorithm)

    exponent = secret % ctx.order
    proofs = [
        Proof(h=h, s=(r + bit * exponent) % ctx.order)
        for r, h, bit in zip(nonces, commitments, bits)
    ]

    logger.debug(
        f"Generated {rounds}-round proof over {modulus.bit_length()}-bit modulus")
    return residue, proofs


def verify(residue: int, generator: int, modulus: int, proofs: Proofs,
           rounds: int = ROUNDS_OF_VERIFY,
           hash_algorithm: str = DEFAULT_HASH_ALGORITHM) -> bool:
    """Return True if proofs is a valid proof of knowledge of log_g(y), False otherwise.

    Never raises on malformed input.
    """
    try:
        _validate_statement(generator, modulus, rounds, hash_algorithm)
    except InvalidParameterError as e:
        logger.warning(f"Rejecting proof with invalid statement: {e}")
        return False

    try:
        proofs = list(proofs)
    except TypeError:
        logger.warning("Rejecting proof: proofs are not a sequence")
        return False

    if len(proofs) != rounds:
        logger.warning(
            f"Rejecting proof: expected {rounds} rounds, got {len(proofs)}")
        return False

    if not _is_int(residue) or not 0 <= residue < modulus:
        logger.warning("Rejecting proof: residue out of range")
        return False

    ctx = ModularContext(modulus)
    for proof in proofs:
        if not isinstance(proof, Proof):
            logger.warning(
                f"Rejecting proof: unexpected round type {type(proof).__name__}")
            return False
        if not _is_int(proof.h) or not 0 <= proof.h < modulus:
            logger.warning("Rejecting proof: commitment out of range")
            return False
        if not _is_int(proof.s) or not 0 <= proof.s < ctx.order:
            logger.warning("Rejecting proof: response out of range")
            return False

    bits = derive_challenge_bits(
        generator, modulus, residue, [proof.h for proof in proofs], hash_algorithm)

    for index, (proof, bit) in enumerate(zip(proofs, bits)):
        lhs = ctx.pow_mod(generator, proof.s)  # g ^ s (mod p)
        rhs = ctx.mul_mod(proof.h, residue) if bit else proof.h  # h * y^b (mod p)
        if lhs != rhs:
            logger.debug(f"Round {index} failed (challenge bit {bit})")
            return False

    return True


# ============================================================================
# PROOF ARTIFACTS
# ============================================================================


@dataclass
class ProofArtifact:
    """Container for proof and metadata"""
    residue: int
    generator: int
    modulus: int
    proofs: Proofs
    rounds: int = ROUNDS_OF_VERIFY
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    generation_time: float = 0.0
    timestamp: float = field(default_factory=time.time)
    expires_at: Optional[float] = None

    def is_expired(self) -> bool:
        return self.expires_at is not None and time.time() > self.expires_at

    def integrity_hash(self) -> str:
        """Hash of the statement and transcript, independent of timestamps"""
        return compute_hash({
            'residue': hex(self.residue),
            'generator': hex(self.generator),
            'modulus': hex(self.modulus),
            'rounds': self.rounds,
            'hash_algorithm': self.hash_algorithm,
            'proofs': [proof.to_dict() for proof in self.proofs],
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            'residue': hex(self.residue),
            'generator': hex(self.generator),
            'modulus': hex(self.modulus),
            'rounds': self.rounds,
            'hash_algorithm': self.hash_algorithm,
            'proofs': [proof.to_dict() for proof in self.proofs],
            'generation_time': self.generation_time,
            'timestamp': self.timestamp,
            'expires_at': self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofArtifact':
        if not isinstance(data, dict):
            raise ProofFormatError("Proof artifact must be a JSON object")
        try:
            proofs = [Proof.from_dict(item) for item in data['proofs']]
            expires_at = data.get('expires_at')
            if expires_at is not None:
                if isinstance(expires_at, bool):
                    raise ProofFormatError("expires_at must be a number")
                expires_at = float(expires_at)
            return cls(
                residue=_parse_int(data['residue']),
                generator=_parse_int(data['generator']),
                modulus=_parse_int(data['modulus']),
                proofs=proofs,
                rounds=_parse_int(data.get('rounds', ROUNDS_OF_VERIFY)),
                hash_algorithm=data.get('hash_algorithm', DEFAULT_HASH_ALGORITHM),
                generation_time=float(data.get('generation_time', 0.0)),
                timestamp=float(data.get('timestamp', time.time())),
                expires_at=expires_at,
            )
        except KeyError as e:
            raise ProofFormatError(f"Missing field in proof artifact: {e}") from e
        except (TypeError, ValueError) as e:
            raise ProofFormatError(f"Malformed proof artifact: {e}") from e

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> 'ProofArtifact':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProofFormatError(f"Proof artifact is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write(self.to_json())
        logger.info(f"Proof artifact saved to {path}")

    @classmethod
    def load(cls, path: Path) -> 'ProofArtifact':
        with open(Path(path), 'rb') as f:
            raw = f.read()
        try:
            text = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProofFormatError(f"Proof artifact {path} is not UTF-8 text: {e}") from e
        return cls.from_json(text)


def create_proof_artifact(secret: int, generator: int, modulus: int,
                          rounds: int = ROUNDS_OF_VERIFY,
                          hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
                          ttl_seconds: Optional[float] = None) -> ProofArtifact:
    """Generate a proof and wrap it with metadata"""
    start_time = time.time()
    residue, proofs = prove(secret, generator, modulus, rounds, hash_algorithm)
    generation_time = time.time() - start_time

    now = time.time()
    return ProofArtifact(
        residue=residue,
        generator=generator,
        modulus=modulus,
        proofs=proofs,
        rounds=rounds,
        hash_algorithm=hash_algorithm,
        generation_time=generation_time,
        timestamp=now,
        expires_at=now + ttl_seconds if ttl_seconds is not None else None,
    )


def verify_artifact(artifact: ProofArtifact) -> bool:
    """Verify the proof carried by an artifact"""
    return verify(artifact.residue, artifact.generator, artifact.modulus,
                  artifact.proofs, artifact.rounds, artifact.hash_algorithm)
