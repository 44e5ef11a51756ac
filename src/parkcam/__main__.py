"""Allow running as ``python -m parkcam``."""

from parkcam.cli import app

if __name__ == "__main__":
    app()
