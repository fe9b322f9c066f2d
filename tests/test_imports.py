import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]


@pytest.mark.parametrize(
    "module",
    [
        "helpdesk.main",
        "helpdesk.events",
        "helpdesk.ports",
        "helpdesk.notifications",
        "helpdesk.automation",
        "helpdesk.sla",
        "helpdesk.tickets",
    ],
)
def test_module_imports_first_in_fresh_interpreter(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=ROOT,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0, result.stderr
