"""Module entrypoint for python -m engage_feature_access."""

from __future__ import annotations

from engage_feature_access.cli import app

if __name__ == "__main__":
    app(prog_name="engage-access")
