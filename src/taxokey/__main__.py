"""Allow ``python -m taxokey``."""

from taxokey.cli import app

if __name__ == "__main__":
    app()
