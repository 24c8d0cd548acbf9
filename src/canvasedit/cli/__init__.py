"""Command line entry point for canvasedit."""

__all__ = ["cli"]


def __getattr__(name: str):
    """Import the click group on first access."""
    if name == "cli":
        from canvasedit.cli.main import cli
        return cli
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
