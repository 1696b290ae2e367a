from click.testing import CliRunner

import pgdumper.cli as cli_module

CONFIG = (
    "data_path: {data}\n"
    "rotation:\n"
    "  retention_days: 14\n"
    "dump_jobs: 2\n"
    "probe_timeout: 20\n"
    "servers:\n"
    "  - db_hostname: db1\n"
    "    db_user: backup\n"
)


def _fake_orchestrator(captured, exit_code=0):
    class FakeOrchestrator:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return exit_code

    return FakeOrchestrator


def test_cli_resolves_host_config_and_allows_cli_override(tmp_path, monkeypatch):
    (tmp_path / "db1-config.yml").write_text(CONFIG.format(data=tmp_path / "data"), encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "BackupOrchestrator", _fake_orchestrator(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["-h", "db1", "--config-dir", str(tmp_path), "--dump-jobs", "6"],
    )

    assert result.exit_code == 0
    assert captured["config"].rotation.retention_days == 14
    assert captured["config"].servers[0].hostname == "db1"
    assert captured["config"].probe_timeout == 20.0
    assert captured["dump_jobs"] == 6
    assert captured["probe_timeout"] is None
    assert captured["dump_timeout"] is None


def test_cli_uses_current_directory_for_host_config(tmp_path, monkeypatch):
    (tmp_path / "db1-config.yml").write_text(CONFIG.format(data=tmp_path / "data"), encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "BackupOrchestrator", _fake_orchestrator(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["--host", "db1"])

    assert result.exit_code == 0
    assert captured["config"].data_path == str(tmp_path / "data")


def test_cli_propagates_orchestrator_exit_code(tmp_path, monkeypatch):
    config_file = tmp_path / "custom.yml"
    config_file.write_text(CONFIG.format(data=tmp_path / "data"), encoding="utf-8")
    monkeypatch.setattr(cli_module, "BackupOrchestrator", _fake_orchestrator({}, exit_code=2))

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file)])

    assert result.exit_code == 2


def test_cli_requires_host_or_config():
    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 1
    assert "--host" in result.output


def test_cli_reports_missing_config(tmp_path):
    result = CliRunner().invoke(cli_module.main, ["-h", "nope", "--config-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_cli_rejects_non_positive_dump_jobs(tmp_path):
    config_file = tmp_path / "custom.yml"
    config_file.write_text(CONFIG.format(data=tmp_path / "data"), encoding="utf-8")

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file), "--dump-jobs", "0"])

    assert result.exit_code == 1
    assert "dump_jobs must be a positive integer" in result.output
    assert not (tmp_path / "data").exists()
