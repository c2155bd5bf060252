import json
import logging

import pytest

import main
from config import ProofConfig, SystemConfig, save_config


@pytest.fixture()
def workspace(tmp_path, monkeypatch):
    """Run the CLI inside tmp_path and restore root logging afterwards"""
    monkeypatch.chdir(tmp_path)
    save_config(SystemConfig(
        proof_config=ProofConfig(group="mersenne-127", parallel_workers=2),
        log_dir=tmp_path / "logs",
        results_dir=tmp_path / "results",
    ), tmp_path / "config.yaml")

    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    yield tmp_path
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


def test_prove_then_verify(workspace, capsys):
    assert main.main(["prove", "--secret", "1234", "--out", "proof.json"]) == 0
    assert (workspace / "proof.json").exists()

    assert main.main(["verify", "proof.json"]) == 0
    assert "VALID" in capsys.readouterr().out

    # Checked against the configured group and policy
    assert main.main(["verify", "--group", "mersenne-127", "proof.json"]) == 0


def test_verify_rejects_tampered_proof(workspace, capsys):
    main.main(["prove", "--secret", "1234", "--out", "proof.json"])
    path = workspace / "proof.json"
    data = json.loads(path.read_text())
    data['residue'] = hex(int(data['residue'], 16) * 3 % (2**127 - 1))
    path.write_text(json.dumps(data))

    assert main.main(["verify", "proof.json"]) == 1
    assert "INVALID" in capsys.readouterr().out


def test_verify_against_other_group_fails(workspace):
    main.main(["prove", "--group", "toy-67", "--secret", "10", "--out", "proof.json"])

    assert main.main(["verify", "--group", "mersenne-127", "proof.json"]) == 1


def test_verify_missing_file_is_an_error(workspace, capsys):
    assert main.main(["verify", "absent.json"]) == 2
    assert "Error" in capsys.readouterr().err


def test_verify_malformed_expiry_is_an_error(workspace, capsys):
    main.main(["prove", "--secret", "1234", "--out", "proof.json"])
    path = workspace / "proof.json"
    data = json.loads(path.read_text())
    data['expires_at'] = "tomorrow"
    path.write_text(json.dumps(data))

    assert main.main(["verify", "--group", "mersenne-127", "proof.json"]) == 2
    assert "Error" in capsys.readouterr().err


def test_verify_binary_file_is_an_error(workspace, capsys):
    (workspace / "proof.json").write_bytes(b"\xff\xfe\x00garbage")

    assert main.main(["verify", "proof.json"]) == 2
    assert "Error" in capsys.readouterr().err


def test_prove_unknown_group_is_an_error(workspace):
    assert main.main(["prove", "--group", "nope", "--secret", "1"]) == 2


def test_simulate(workspace, capsys):
    residue = str(pow(3, 99, 31))

    assert main.main(["simulate", "--group", "toy-31", "--residue", residue, "--rounds", "5"]) == 0
    out = capsys.readouterr().out
    assert "round   4" in out
    assert "Accepted by the interactive check: True" in out


def test_params_then_prove_with_pem(workspace):
    assert main.main(["params", "--key-size", "512", "--out", "group.pem"]) == 0
    assert (workspace / "group.pem").read_bytes().startswith(b"-----BEGIN DH PARAMETERS-----")

    assert main.main(["prove", "--params", "group.pem", "--secret", "77", "--out", "p.json"]) == 0
    assert main.main(["verify", "--params", "group.pem", "p.json"]) == 0


def test_benchmark(workspace):
    assert main.main(["benchmark", "--group", "toy-67", "--runs", "3"]) == 0

    report = (workspace / "results" / "performance_report.txt").read_text()
    assert "PROVE:" in report
    assert "VERIFY:" in report
    data = json.loads((workspace / "results" / "benchmark.json").read_text())
    assert data['data']['checks'] == {'all_proofs_valid': True}

    metrics = json.loads((workspace / "results" / "benchmark_metrics.json").read_text())
    assert len(metrics['metrics']) == 6
    assert set(metrics['summary']['operations']) == {'prove', 'verify'}


def test_benchmark_disabled_by_config(workspace, capsys):
    save_config(SystemConfig(
        enable_benchmarking=False,
        log_dir=workspace / "logs",
        results_dir=workspace / "results",
    ), workspace / "config.yaml")

    assert main.main(["benchmark", "--group", "toy-67", "--runs", "1"]) == 2
    assert "disabled" in capsys.readouterr().err
    assert not (workspace / "results" / "benchmark.json").exists()


def test_demo(workspace, capsys):
    assert main.main(["demo", "--group", "mersenne-61", "--secret", "17"]) == 0

    out = capsys.readouterr().out
    assert "FAILED" not in out
    assert (workspace / "results" / "demo_report.json").exists()
