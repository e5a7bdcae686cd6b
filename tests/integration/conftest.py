"""Fixtures for integration tests."""

import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from cypress_utils.engines.cypress.config import CypressEngineConfig


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., Path]:
    """Return a function creating empty files under a directory of tmp_path."""

    def _make(root: str, *files: str) -> Path:
        base = tmp_path / root
        base.mkdir(parents=True, exist_ok=True)
        for name in files:
            path = base / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("")
        return base

    return _make


@pytest.fixture
def fake_node(tmp_path: Path) -> Callable[[str], CypressEngineConfig]:
    """Return a function building an engine config backed by a Python script.

    The script body receives ``options`` (the decoded module API options) and
    ``output_path``, mirroring what the Node bridge gets.
    """

    def _make(body: str) -> CypressEngineConfig:
        script = tmp_path / "fake_node.py"
        script.write_text(
            "import json, sys\n"
            "options_path, output_path = sys.argv[-2:]\n"
            "with open(options_path) as f:\n"
            "    options = json.load(f)\n" + textwrap.dedent(body)
        )
        return CypressEngineConfig(node_command=[sys.executable, str(script)])

    return _make
