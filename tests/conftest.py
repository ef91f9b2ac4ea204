import io
import os
import sys

import pytest
from hypothesis import HealthCheck, settings

# Strict CI profile: heavy exploration for regression/CI
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=200,
    suppress_health_check=[HealthCheck.too_slow],
    derandomize=False,
    print_blob=True,
)

# Light profile for mutation testing: faster per-mutant; still meaningful
settings.register_profile(
    "mutation",
    max_examples=25,
    deadline=100,
    suppress_health_check=[HealthCheck.too_slow],
    derandomize=True,
)

# Default to CI unless caller overrides with HYPOTHESIS_PROFILE
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


class Terminal(io.StringIO):
    """Interactive stdin: nothing is piped in."""

    def isatty(self) -> bool:
        return True


@pytest.fixture
def data_path(tmp_path, monkeypatch):
    """Point clip at a private history file and detach stdin from any pipe."""
    path = tmp_path / "share" / "clip" / "data.json"
    monkeypatch.setenv("CLIP_DATA_FILE", str(path))
    monkeypatch.setattr(sys, "stdin", Terminal())
    return path
