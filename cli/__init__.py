"""Command line client for the sensor service and the chart dashboard."""

from importlib import import_module


def run() -> None:
    """Console-script entry point; imports lazily so ``cli.app`` stays patchable."""
    import_module("cli.app").app()


__all__ = ["run"]
