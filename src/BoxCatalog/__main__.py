"""Allow ``python -m BoxCatalog``."""

from .cli import app

if __name__ == "__main__":
    app()
