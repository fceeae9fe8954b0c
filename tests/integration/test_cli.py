"""
Integration tests for the DiscForge CLI against a fake xorriso binary.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from discforge.cli.main import cli

pytestmark = pytest.mark.integration

DEVICE_LINKS = (
    "R:1:0  -dev '/dev/sr0' rwrw-- :  'HL-DT-ST' 'BD-RE  WH16NS60'\n"
)

TOC = (
    "R:1:Media current: BD-R sequential recording\n"
    "R:1:Media status : is written , is appendable\n"
    "R:1:ISO session  :   1 ,        32 ,    123456s , BACKUP_2024\n"
    "R:1:Media space  : 11000000s  (free blocks)\n"
)

BURN = (
    "I:1:xorriso : UPDATE : Writing: 50.0% done, fifo 90%, 4.0xD\n"
    "I:1:xorriso : UPDATE : Writing: 100.0% done, fifo 95%, 4.2xD\n"
    "R:1:Writing to '/dev/sr0' completed successfully.\n"
)


@pytest.fixture
def config_file(temp_dir: Path, sample_config) -> Path:
    sample_config.logging.console_enabled = False
    path = temp_dir / "config.json"
    sample_config.save(path)
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestQueries:
    """Tests for query commands."""

    def test_version(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "version"])

        assert result.exit_code == 0
        assert "DiscForge 1.0.0" in result.stdout
        assert "xorriso 1.5.6" in result.stdout

    def test_devices_json(self, runner: CliRunner, config_file: Path, xorriso_output) -> None:
        xorriso_output(DEVICE_LINKS)

        result = runner.invoke(cli, ["--config", str(config_file), "--json", "devices"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["path"] == "/dev/sr0"
        assert data[0]["vendor"] == "HL-DT-ST"

    def test_devices_table(self, runner: CliRunner, config_file: Path, xorriso_output) -> None:
        xorriso_output(DEVICE_LINKS)

        result = runner.invoke(cli, ["--config", str(config_file), "devices"])

        assert result.exit_code == 0
        assert "/dev/sr0" in result.stdout

    def test_devices_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        xorriso_output("I:1:xorriso : FAILURE : No drive access\n")
        monkeypatch.setenv("FAKE_XORRISO_EXIT", "5")

        result = runner.invoke(cli, ["--config", str(config_file), "devices"])

        assert result.exit_code == 1
        assert "No drive access" in result.stdout

    def test_media_json(self, runner: CliRunner, config_file: Path, xorriso_output) -> None:
        xorriso_output(TOC)

        result = runner.invoke(cli, ["--config", str(config_file), "--json", "media", "/dev/sr0"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["media_type"] == "BD-R sequential recording"
        assert data["free_bytes"] == 11000000 * 2048
        assert data["sessions"][0]["volume_id"] == "BACKUP_2024"

    def test_media_panel(self, runner: CliRunner, config_file: Path, xorriso_output) -> None:
        xorriso_output(TOC)

        result = runner.invoke(cli, ["--config", str(config_file), "media", "/dev/sr0"])

        assert result.exit_code == 0
        assert "BD-R sequential recording" in result.stdout


class TestBurn:
    """Tests for the burn command."""

    def test_burn_sources(
        self,
        runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        source = temp_dir / "notes.txt"
        source.write_text("hello")
        trace = temp_dir / "trace.txt"
        monkeypatch.setenv("FAKE_XORRISO_TRACE", str(trace))
        xorriso_output(BURN)

        result = runner.invoke(
            cli,
            [
                "--config", str(config_file),
                "burn", "/dev/sr0", str(source),
                "--volid", "NOTES",
                "--dummy",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Burn completed" in result.stdout
        command = trace.read_text().splitlines()[0]
        assert f"-map {source} /notes.txt" in command
        assert "-volid NOTES" in command
        assert "-dummy on" in command
        assert command.endswith("-commit")

    def test_burn_project_file(
        self,
        runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        xorriso_output,
    ) -> None:
        from discforge.core.project import Project

        project = Project(name="Docs")
        project.add_sources([str(temp_dir)], "/backup")
        project_file = temp_dir / "docs.json"
        project.save(project_file)
        xorriso_output(BURN)

        result = runner.invoke(
            cli, ["--config", str(config_file), "burn", "/dev/sr0", "-p", str(project_file)]
        )

        assert result.exit_code == 0, result.output

    def test_burn_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        source = temp_dir / "notes.txt"
        source.write_text("hello")
        xorriso_output("I:1:xorriso : FAILURE : Medium is not writable\n")
        monkeypatch.setenv("FAKE_XORRISO_EXIT", "5")

        result = runner.invoke(
            cli, ["--config", str(config_file), "burn", "/dev/sr0", str(source)]
        )

        assert result.exit_code == 1
        assert "Medium is not writable" in result.stdout

    def test_burn_json(
        self, runner: CliRunner, config_file: Path, temp_dir: Path, xorriso_output
    ) -> None:
        source = temp_dir / "notes.txt"
        source.write_text("hello")
        xorriso_output(BURN)

        result = runner.invoke(
            cli, ["--config", str(config_file), "--json", "burn", "/dev/sr0", str(source)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["state"] == "done"
        assert data["progress"]["percent"] == 100.0
        assert data["error"] is None

    def test_burn_json_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        source = temp_dir / "notes.txt"
        source.write_text("hello")
        xorriso_output("I:1:xorriso : FAILURE : Medium is not writable\n")
        monkeypatch.setenv("FAKE_XORRISO_EXIT", "5")

        result = runner.invoke(
            cli, ["--config", str(config_file), "--json", "burn", "/dev/sr0", str(source)]
        )

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["state"] == "error"
        assert "Medium is not writable" in data["error"]

    def test_burn_nothing(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "burn", "/dev/sr0"])

        assert result.exit_code == 1
        assert "Nothing to burn" in result.stdout


class TestMediaOperations:
    """Tests for blank and format commands."""

    def test_blank(
        self,
        runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        trace = temp_dir / "trace.txt"
        monkeypatch.setenv("FAKE_XORRISO_TRACE", str(trace))
        xorriso_output("I:1:xorriso : UPDATE : Blanking 50.0% done\n")

        result = runner.invoke(
            cli, ["--config", str(config_file), "blank", "/dev/sr0", "--mode", "fast"]
        )

        assert result.exit_code == 0, result.output
        assert "Blank completed" in result.stdout
        assert trace.read_text().splitlines()[0].endswith("-dev /dev/sr0 -blank fast")

    def test_format_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        xorriso_output("I:1:xorriso : FAILURE : Medium is not formattable\n")
        monkeypatch.setenv("FAKE_XORRISO_EXIT", "5")

        result = runner.invoke(cli, ["--config", str(config_file), "format", "/dev/sr0"])

        assert result.exit_code == 1
        assert "Medium is not formattable" in result.stdout

    def test_blank_json(self, runner: CliRunner, config_file: Path, xorriso_output) -> None:
        xorriso_output("I:1:xorriso : UPDATE : Blanking 50.0% done\n")

        result = runner.invoke(cli, ["--config", str(config_file), "--json", "blank", "/dev/sr0"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["exit_code"] == 0
        assert data["info_lines"] == ["xorriso : UPDATE : Blanking 50.0% done\n"]

    def test_format_json_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        xorriso_output,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        xorriso_output("I:1:xorriso : FAILURE : Medium is not formattable\n")
        monkeypatch.setenv("FAKE_XORRISO_EXIT", "5")

        result = runner.invoke(cli, ["--config", str(config_file), "--json", "format", "/dev/sr0"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["exit_code"] == 5

    def test_eject(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "eject", "/dev/sr0"])

        assert result.exit_code == 0
        assert "Ejected /dev/sr0" in result.stdout

    def test_eject_json(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "--json", "eject", "/dev/sr0"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"device": "/dev/sr0", "ejected": True}
