import asyncio
import dataclasses

import pytest

from config import ProofConfig
from dlog import (
    BatchLimiter,
    DlogProofSystem,
    GroupParameters,
    InvalidParameterError,
    Proof,
    ProofGenerationError,
    TOY_PARAMETERS,
)


@pytest.fixture()
def system(large_params, proof_config):
    system = DlogProofSystem(large_params, proof_config)
    yield system
    system.shutdown()


def test_prove_and_verify(system):
    async def scenario():
        artifact = await system.prove(777)
        return artifact, await system.verify(artifact)

    artifact, is_valid = asyncio.run(scenario())

    assert is_valid
    assert artifact.rounds == 100
    assert artifact.expires_at is not None


def test_replay_rejected(system):
    async def scenario():
        artifact = await system.prove(777)
        return await system.verify(artifact), await system.verify(artifact)

    first, second = asyncio.run(scenario())

    assert first
    assert not second


def test_replay_allowed_after_forget(system):
    async def scenario():
        artifact = await system.prove(777)
        first = await system.verify(artifact)
        forgotten = system.forget_accepted()
        return first, forgotten, await system.verify(artifact)

    first, forgotten, second = asyncio.run(scenario())

    assert first and second
    assert forgotten == 1


def test_replays_allowed_when_disabled(large_params, proof_config):
    config = dataclasses.replace(proof_config, reject_replays=False)
    system = DlogProofSystem(large_params, config)

    async def scenario():
        artifact = await system.prove(5)
        return await system.verify(artifact), await system.verify(artifact)

    try:
        assert asyncio.run(scenario()) == (True, True)
    finally:
        system.shutdown()


def test_expired_artifact_rejected(large_params, proof_config):
    config = dataclasses.replace(proof_config, proof_ttl_seconds=-1)
    system = DlogProofSystem(large_params, config)

    async def scenario():
        artifact = await system.prove(5)
        return await system.verify(artifact)

    try:
        assert not asyncio.run(scenario())
    finally:
        system.shutdown()


def test_foreign_group_rejected(system, proof_config):
    other = DlogProofSystem(TOY_PARAMETERS['mersenne-61'], proof_config)

    async def scenario():
        artifact = await other.prove(5)
        return await system.verify(artifact)

    try:
        assert not asyncio.run(scenario())
    finally:
        other.shutdown()


def test_tampered_artifact_rejected(system):
    async def scenario():
        artifact = await system.prove(777)
        first = artifact.proofs[0]
        artifact.proofs[0] = Proof(h=first.h, s=(first.s + 1) % (artifact.modulus - 1))
        return await system.verify(artifact)

    assert not asyncio.run(scenario())


def test_batch_prove_and_verify(system):
    secrets = [11, 22, 33, 44, 55, 66, 77]

    async def scenario():
        artifacts = await system.prove_batch(secrets)
        return artifacts, await system.verify_batch(artifacts)

    artifacts, results = asyncio.run(scenario())

    assert len(artifacts) == len(secrets)
    assert [a.residue for a in artifacts] == [
        pow(a.generator, s, a.modulus) for a, s in zip(artifacts, secrets)]
    assert results == [True] * len(secrets)


def test_batch_verify_rejects_duplicates(system):
    async def scenario():
        artifact = await system.prove(3)
        return await system.verify_batch([artifact, artifact])

    assert sorted(asyncio.run(scenario())) == [False, True]


def test_self_verification_catches_composite_modulus(proof_config):
    # 3^(p-1) != 1 mod 35, so honest responses do not verify
    system = DlogProofSystem(GroupParameters(35, 3, "composite"), proof_config)

    try:
        with pytest.raises(ProofGenerationError):
            asyncio.run(system.prove(30))
    finally:
        system.shutdown()


def test_invalid_configuration(large_params):
    with pytest.raises(InvalidParameterError):
        DlogProofSystem(large_params, ProofConfig(hash_algorithm="md5"))
    with pytest.raises(InvalidParameterError):
        DlogProofSystem(large_params, ProofConfig(rounds=0))
    with pytest.raises(InvalidParameterError):
        DlogProofSystem(GroupParameters(31, 40), ProofConfig())


def test_batch_limiter_preserves_order():
    async def processor(batch):
        await asyncio.sleep(0.001 * (5 - len(batch)))
        return [item * 2 for item in batch]

    async def scenario():
        limiter = BatchLimiter(max_batch_size=2, max_concurrent=2)
        return await limiter.process_with_limit(list(range(5)), processor)

    assert asyncio.run(scenario()) == [[0, 2], [4, 6], [8]]
