"""
Interactive discrete-log protocol

Three-move version of the proof (commit, challenge, respond) together with
the tools used to reason about it: a transcript simulator that needs no
secret, a prover that does not know the secret, and an extractor that
recovers the secret from two answers to the same commitment.
"""

import secrets
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .dlog_proofs import (
    ROUNDS_OF_VERIFY,
    ZKError,
    InvalidParameterError,
    ModularContext,
    Proof,
    _is_int,
)
from .parameters import GroupParameters

logger = logging.getLogger(__name__)


class ProtocolStateError(ZKError):
    """Protocol message sent out of order"""
    pass


@dataclass
class Transcript:
    """Messages exchanged in one session"""
    commitments: List[int] = field(default_factory=list)
    challenges: List[int] = field(default_factory=list)
    responses: List[int] = field(default_factory=list)
    accepted: bool = False

    @property
    def rounds(self) -> int:
        return len(self.commitments)

    def as_proofs(self) -> List[Proof]:
        return [Proof(h=h, s=s) for h, s in zip(self.commitments, self.responses)]


def _check_round(ctx: ModularContext, generator: int, residue: int,
                 commitment: int, challenge: int, response: int) -> bool:
    """g^s == h * y^b (mod p)"""
    rhs = ctx.mul_mod(commitment, residue) if challenge else commitment
    return ctx.pow_mod(generator, response) == rhs


def _check_challenges(challenges: Sequence[int], expected: int):
    if len(challenges) != expected:
        raise ProtocolStateError(
            f"Expected {expected} challenges, got {len(challenges)}")
    if any(not _is_int(bit) or bit not in (0, 1) for bit in challenges):
        raise InvalidParameterError("Challenges must be bits")


class DlogProver:
    """Honest prover holding the secret x"""

    def __init__(self, secret: int, params: GroupParameters):
        params.validate()
        if not _is_int(secret) or secret < 0:
            raise InvalidParameterError("Secret must be a non-negative integer")
        self.params = params
        self.ctx = ModularContext(params.modulus)
        self._exponent = secret % self.ctx.order
        self.residue = self.ctx.pow_mod(params.generator, secret)
        self._nonces: Optional[List[int]] = None
        self._responded = False

    def commit(self, rounds: int = ROUNDS_OF_VERIFY) -> List[int]:
        if self._nonces is not None:
            raise ProtocolStateError("Prover has already committed")
        if rounds < 1:
            raise InvalidParameterError(f"Rounds must be positive, got {rounds}")
        self._nonces = [secrets.randbelow(self.ctx.order) for _ in range(rounds)]
        return [self.ctx.pow_mod(self.params.generator, r) for r in self._nonces]

    def respond(self, challenges: Sequence[int]) -> List[int]:
        if self._nonces is None:
            raise ProtocolStateError("Prover must commit before responding")
        if self._responded:
            raise ProtocolStateError("Prover has already responded")
        _check_challenges(challenges, len(self._nonces))

        self._responded = True
        return [(r + bit * self._exponent) % self.ctx.order
                for r, bit in zip(self._nonces, challenges)]

    def rewind(self):
        """Allow a second response to the same commitments.

        Only an extractor with control over the prover does this; answering
        two challenges for one commitment reveals the secret.
        """
        self._responded = False


class DlogVerifier:
    """Honest verifier drawing uniformly random challenge bits"""

    def __init__(self, residue: int, params: GroupParameters):
        params.validate()
        self.params = params
        self.residue = residue
        self.ctx = ModularContext(params.modulus)
        self._commitments: Optional[List[int]] = None
        self._challenges: Optional[List[int]] = None

    def challenge(self, commitments: Sequence[int]) -> List[int]:
        if self._commitments is not None:
            raise ProtocolStateError("Verifier has already issued challenges")
        self._commitments = list(commitments)
        self._challenges = [secrets.randbits(1) for _ in self._commitments]
        return list(self._challenges)

    def check(self, responses: Sequence[int]) -> bool:
        if self._commitments is None:
            raise ProtocolStateError("Verifier has not issued challenges")
        if len(responses) != len(self._commitments):
            logger.warning(
                f"Expected {len(self._commitments)} responses, got {len(responses)}")
            return False

        for commitment, bit, response in zip(self._commitments, self._challenges, responses):
            if not _is_int(response) or not 0 <= response < self.ctx.order:
                return False
            if not _is_int(commitment) or not 0 <= commitment < self.params.modulus:
                return False
            if not _check_round(self.ctx, self.params.generator, self.residue,
                                commitment, bit, response):
                return False
        return True


class CheatingProver:
    """Prover that does not know x.

    It guesses each challenge bit ahead of time and prepares a commitment
    that can only be answered for that bit.  Each round passes with
    probability 1/2.
    """

    def __init__(self, residue: int, params: GroupParameters):
        params.validate()
        self.params = params
        self.residue = residue
        self.ctx = ModularContext(params.modulus)
        self._residue_inverse = self.ctx.inverse(residue)
        self._guesses: Optional[List[int]] = None
        self._responses: Optional[List[int]] = None
        self._responded = False

    def commit(self, rounds: int = ROUNDS_OF_VERIFY) -> List[int]:
        if self._guesses is not None:
            raise ProtocolStateError("Prover has already committed")
        if rounds < 1:
            raise InvalidParameterError(f"Rounds must be positive, got {rounds}")
        self._guesses = [secrets.randbits(1) for _ in range(rounds)]
        self._responses = [secrets.randbelow(self.ctx.order) for _ in range(rounds)]
        # h = g^s * y^(-b) answers challenge b with s
        return [
            self.ctx.mul_mod(
                self.ctx.pow_mod(self.params.generator, s),
                self._residue_inverse if guess else 1)
            for s, guess in zip(self._responses, self._guesses)
        ]

    def respond(self, challenges: Sequence[int]) -> List[int]:
        if self._responses is None:
            raise ProtocolStateError("Prover must commit before responding")
        if self._responded:
            raise ProtocolStateError("Prover has already responded")
        _check_challenges(challenges, len(self._responses))

        self._responded = True
        matched = sum(1 for bit, guess in zip(challenges, self._guesses) if bit == guess)
        logger.debug(f"Cheating prover guessed {matched}/{len(challenges)} challenges")
        return list(self._responses)


def run_interactive_session(prover, verifier: DlogVerifier,
                            rounds: int = ROUNDS_OF_VERIFY) -> Transcript:
    """Run commit / challenge / respond and record the transcript"""
    commitments = prover.commit(rounds)
    challenges = verifier.challenge(commitments)
    responses = prover.respond(challenges)
    accepted = verifier.check(responses)

    logger.info(
        f"Interactive session over {rounds} rounds: {'accepted' if accepted else 'rejected'}")
    return Transcript(
        commitments=list(commitments),
        challenges=list(challenges),
        responses=list(responses),
        accepted=accepted,
    )


def simulate_transcript(residue: int, params: GroupParameters,
                        rounds: int = ROUNDS_OF_VERIFY) -> Transcript:
    """Produce an accepting transcript without knowing x.

    Challenges and responses are drawn first and each commitment is solved
    for as h = g^s * y^(-b).  The result has the same distribution as a
    real session with an honest verifier.
    """
    params.validate()
    ctx = ModularContext(params.modulus)
    residue_inverse = ctx.inverse(residue)

    challenges = [secrets.randbits(1) for _ in range(rounds)]
    responses = [secrets.randbelow(ctx.order) for _ in range(rounds)]
    commitments = [
        ctx.mul_mod(ctx.pow_mod(params.generator, s), residue_inverse if bit else 1)
        for bit, s in zip(challenges, responses)
    ]

    return Transcript(
        commitments=commitments,
        challenges=challenges,
        responses=responses,
        accepted=all(
            _check_round(ctx, params.generator, residue, h, b, s)
            for h, b, s in zip(commitments, challenges, responses)
        ),
    )


def extract_secret(commitment: int, response_zero: int, response_one: int,
                   residue: int, params: GroupParameters) -> int:
    """Recover x from answers to both challenges for one commitment.

    x = s1 - s0 (mod p - 1)
    """
    params.validate()
    ctx = ModularContext(params.modulus)
    if not _check_round(ctx, params.generator, residue, commitment, 0, response_zero):
        raise InvalidParameterError("Response to challenge 0 does not verify")
    if not _check_round(ctx, params.generator, residue, commitment, 1, response_one):
        raise InvalidParameterError("Response to challenge 1 does not verify")
    return (response_one - response_zero) % ctx.order
