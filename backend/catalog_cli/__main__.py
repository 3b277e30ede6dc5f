"""Console entry point for the catalog CLI (``python -m backend.catalog_cli``)."""
from __future__ import annotations

from .app import app

PROG_NAME = "catalog-cli"


def main() -> None:
    """Run the Typer application under the installed script name."""

    app(prog_name=PROG_NAME)


if __name__ == "__main__":
    main()
