"""Shared pytest configuration and fixtures for the power bench test suite."""

import sys
import textwrap
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring powermetrics and sudo"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require a real powermetrics",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Shared Fixtures
# =============================================================================

POWERMETRICS_EXCERPT = textwrap.dedent(
    """\
    Machine model: Mac14,2
    OS version: 23F79

    *** Sampled system activity (Wed Oct 15 10:00:00 2025 +0200) (502.11ms elapsed) ***

    **** Processor usage ****

    E-Cluster HW active frequency: 1020 MHz
    CPU Power: 812 mW
    GPU Power: 35 mW
    ANE Power: 0 mW
    Combined Power (CPU + GPU + ANE): 847 mW

    *** Sampled system activity (Wed Oct 15 10:00:00 2025 +0200) (500.87ms elapsed) ***

    CPU Power: 1190 mW
    GPU Power: 12 mW
    ANE Power: 0 mW
    Combined Power (CPU + GPU + ANE): 1202 mW
    """
)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def powermetrics_excerpt() -> str:
    """Two sampling blocks as printed by ``powermetrics --samplers cpu_power``."""
    return POWERMETRICS_EXCERPT


@pytest.fixture
def emitter_command():
    """Build argv for a Python child that prints ``lines`` then optionally lingers.

    Stands in for powermetrics in tracker tests.
    """

    def _build(lines, *, linger: float = 0.0, trailing_newline: bool = True, chunked: bool = False):
        body = "\n".join(lines) + ("\n" if trailing_newline and lines else "")
        script = textwrap.dedent(
            f"""\
            import sys, time
            data = {body!r}.encode()
            out = sys.stdout.buffer
            if {chunked!r}:
                for i in range(0, len(data), 7):
                    out.write(data[i:i + 7])
                    out.flush()
                    time.sleep(0.005)
            else:
                out.write(data)
                out.flush()
            time.sleep({linger!r})
            """
        )
        return [sys.executable, "-c", script]

    return _build
