import pytest

from dlog import (
    GroupParameters,
    InvalidParameterError,
    ProofFormatError,
    TOY_PARAMETERS,
    get_named_parameters,
    generate_parameters,
    load_parameters_pem,
    parameters_to_pem,
    prove,
    resolve_parameters,
    verify,
)


@pytest.mark.parametrize("name", sorted(TOY_PARAMETERS))
def test_named_groups_support_proofs(name):
    params = get_named_parameters(name)
    residue, proofs = prove(12345, params.generator, params.modulus, rounds=40)

    assert params.name == name
    assert verify(residue, params.generator, params.modulus, proofs, rounds=40)


def test_unknown_group():
    with pytest.raises(InvalidParameterError, match="Unknown group"):
        get_named_parameters("toy-9000")


@pytest.mark.parametrize("modulus, generator", [
    (1, 1),
    (31, 0),
    (31, 31),
    (31, -3),
])
def test_validate_rejects_bad_parameters(modulus, generator):
    with pytest.raises(InvalidParameterError):
        GroupParameters(modulus, generator).validate()


def test_sizes():
    params = GroupParameters(2**127 - 1, 3)

    assert params.bit_length == 127
    assert params.byte_width == 16


def test_dict_round_trip():
    params = TOY_PARAMETERS['toy-67']

    assert GroupParameters.from_dict(params.to_dict()) == params

    with pytest.raises(ProofFormatError):
        GroupParameters.from_dict({'modulus': '0x43'})


def test_generated_parameters(generated_params):
    assert generated_params.bit_length == 512
    assert generated_params.generator == 2
    # p is a safe prime, so p - 1 = 2q with q odd
    assert (generated_params.modulus - 1) % 2 == 0
    assert ((generated_params.modulus - 1) // 2) % 2 == 1


def test_generate_rejects_small_key_size():
    with pytest.raises(InvalidParameterError):
        generate_parameters(256)


def test_pem_round_trip(generated_params, tmp_path):
    pem = parameters_to_pem(generated_params)

    assert pem.startswith(b"-----BEGIN DH PARAMETERS-----")

    loaded = load_parameters_pem(pem)
    assert (loaded.modulus, loaded.generator) == (generated_params.modulus, generated_params.generator)

    path = tmp_path / "group.pem"
    path.write_bytes(pem)
    resolved = resolve_parameters("toy-31", path)
    assert resolved.modulus == generated_params.modulus
    assert resolved.name == "group"


def test_resolve_named_group_without_file():
    assert resolve_parameters("toy-23") == TOY_PARAMETERS['toy-23']


def test_load_rejects_garbage():
    with pytest.raises(ProofFormatError):
        load_parameters_pem(b"-----BEGIN DH PARAMETERS-----\nAAAA\n-----END DH PARAMETERS-----\n")
