import logging

import pytest

from config import ProofConfig
from dlog import GroupParameters, TOY_PARAMETERS, generate_parameters


@pytest.fixture(autouse=True)
def _capture_logs(caplog):
    caplog.set_level(logging.INFO)


@pytest.fixture()
def toy_params() -> GroupParameters:
    return TOY_PARAMETERS['toy-31']


@pytest.fixture()
def large_params() -> GroupParameters:
    return TOY_PARAMETERS['mersenne-127']


@pytest.fixture(scope="session")
def generated_params() -> GroupParameters:
    """A real 512-bit safe-prime group, generated once per session"""
    return generate_parameters(512, 2)


@pytest.fixture()
def proof_config() -> ProofConfig:
    return ProofConfig(
        rounds=100,
        group='mersenne-127',
        parallel_workers=2,
        max_batch_size=3,
        max_concurrent_proofs=2,
    )
