from pathlib import Path

from config import ProofConfig, SystemConfig, load_config, save_config


def test_defaults():
    config = SystemConfig()

    assert config.proof_config.rounds == 100
    assert config.proof_config.hash_algorithm == "blake2b"
    assert config.proof_config.parameters_file is None
    assert config.log_level == "INFO"
    assert isinstance(config.log_dir, Path)


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")

    assert config == SystemConfig()


def test_save_and_load_round_trip(tmp_path):
    original = SystemConfig(
        proof_config=ProofConfig(
            rounds=64,
            hash_algorithm="sha3_256",
            group="toy-67",
            parameters_file=tmp_path / "group.pem",
            proof_ttl_seconds=None,
            reject_replays=False,
            parallel_workers=2,
        ),
        log_dir=tmp_path / "logs",
        results_dir=tmp_path / "results",
        enable_debug_mode=True,
    )
    path = tmp_path / "config.yaml"

    save_config(original, path)
    loaded = load_config(path)

    assert loaded == original
    assert loaded.log_level == "DEBUG"


def test_partial_file_keeps_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("proofs:\n  rounds: 40\n")

    config = load_config(path)

    assert config.proof_config.rounds == 40
    assert config.proof_config.group == ProofConfig().group
    assert config.results_dir == Path("results")


def test_unreadable_file_falls_back(tmp_path, caplog):
    path = tmp_path / "config.yaml"
    path.write_text("proofs: [unclosed\n")

    config = load_config(path)

    assert config == SystemConfig()
    assert "Could not load config file" in caplog.text
