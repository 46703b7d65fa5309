"""Module entrypoint for running pandocflow as ``python -m pandocflow``."""

from __future__ import annotations

from pandocflow.cli import main


if __name__ == "__main__":
    main()
