"""
Pytest configuration and fixtures for DiscForge tests.
"""

import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# Stand-in for the xorriso binary. Behaviour is steered by environment
# variables so each test can script its own output:
#   FAKE_XORRISO_OUTPUT  file whose bytes are echoed verbatim, line by line
#   FAKE_XORRISO_DELAY   seconds to sleep between echoed lines
#   FAKE_XORRISO_SLEEP   seconds to sleep before exiting
#   FAKE_XORRISO_EXIT    exit code
#   FAKE_XORRISO_TRACE   file that receives "start <args>" / "end" records
FAKE_XORRISO_SCRIPT = """#!{python}
import os
import sys
import time

args = sys.argv[1:]
trace = os.environ.get("FAKE_XORRISO_TRACE")
if trace:
    with open(trace, "a") as f:
        f.write("start " + " ".join(args) + "\\n")

if args == ["-version"]:
    print("xorriso 1.5.6 : RockRidge filesystem manipulator, libburnia project.")
    sys.exit(0)

output = os.environ.get("FAKE_XORRISO_OUTPUT")
delay = float(os.environ.get("FAKE_XORRISO_DELAY", "0"))
if output:
    with open(output, "rb") as f:
        for line in f:
            sys.stdout.buffer.write(line)
            sys.stdout.buffer.flush()
            if delay:
                time.sleep(delay)

time.sleep(float(os.environ.get("FAKE_XORRISO_SLEEP", "0")))

if trace:
    with open(trace, "a") as f:
        f.write("end\\n")
sys.exit(int(os.environ.get("FAKE_XORRISO_EXIT", "0")))
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_xorriso(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Executable fake xorriso with a clean scripting environment."""
    for name in (
        "FAKE_XORRISO_OUTPUT",
        "FAKE_XORRISO_DELAY",
        "FAKE_XORRISO_SLEEP",
        "FAKE_XORRISO_EXIT",
        "FAKE_XORRISO_TRACE",
    ):
        monkeypatch.delenv(name, raising=False)

    script = temp_dir / "xorriso"
    script.write_text(FAKE_XORRISO_SCRIPT.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def xorriso_output(temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
    """Set the lines the fake xorriso prints."""

    def _set(text: str | bytes) -> Path:
        path = temp_dir / "xorriso_output.txt"
        if isinstance(text, bytes):
            path.write_bytes(text)
        else:
            path.write_text(text, encoding="utf-8", newline="")
        monkeypatch.setenv("FAKE_XORRISO_OUTPUT", str(path))
        return path

    return _set


@pytest.fixture
def sample_config(temp_dir: Path, fake_xorriso: Path) -> "DiscForgeConfig":
    """Create a sample configuration for testing."""
    from discforge.core.config import DiscForgeConfig

    config = DiscForgeConfig()
    config.logging.file_enabled = False
    config.logging.log_directory = temp_dir / "logs"
    config.xorriso.binary_path = str(fake_xorriso)
    config.xorriso.query_timeout_seconds = 10.0
    config.xorriso.kill_grace_seconds = 0.5
    config.ensure_directories()
    return config


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "gui: GUI tests requiring Qt")
    config.addinivalue_line("markers", "slow: Slow running tests")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Modify test collection based on available resources."""
    # The Qt bridge only needs QtCore, so no display is required
    try:
        import PySide6.QtCore  # noqa: F401
    except ImportError:
        skip_gui = pytest.mark.skip(reason="PySide6 not available")
        for item in items:
            if "gui" in item.keywords:
                item.add_marker(skip_gui)


@pytest.fixture
def qapp() -> Generator["QCoreApplication", None, None]:
    """Create a Qt application for signal tests."""
    try:
        from PySide6.QtCore import QCoreApplication

        # Check if app already exists
        app = QCoreApplication.instance()
        if app is None:
            app = QCoreApplication([])

        yield app

        # Don't quit the app as it may be reused
    except ImportError:
        pytest.skip("PySide6 not available")
