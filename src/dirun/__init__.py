from __future__ import annotations

"""
dirun: run a command chain against every file found under a directory tree.
"""

__version__ = "1.0.0"
