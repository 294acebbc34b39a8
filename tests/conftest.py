from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Shared fixtures for configuration dictionaries and directory trees.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def mock_config_dict(tmp_path: Path) -> Dict[str, Any]:
    """
    Return a valid, complete configuration dictionary for testing.

    Reflects the structure defined in 'dirun.domain.config'.
    """
    return {
        "root_path": str(tmp_path),
        "file_pattern": "*.*",
        "recurse": True,
        "working_directory": "",
        "pass_code": 0,
        "report_file_name": False,
        "verbose": False,
        "collect_stdout": False,
        "collect_stderr": False,
        "log_level": "WARNING",
    }


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """
    Create a small directory tree.

    Structure:
    /tree
      a.txt
      b.log
      /sub
        c.txt
        /deep
          d.txt
      /empty
    """
    root = tmp_path / "tree"
    (root / "sub" / "deep").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "a.txt").write_text("alpha\n", encoding="utf-8")
    (root / "b.log").write_text("bravo\n", encoding="utf-8")
    (root / "sub" / "c.txt").write_text("charlie\n", encoding="utf-8")
    (root / "sub" / "deep" / "d.txt").write_text("delta\n", encoding="utf-8")
    return root

