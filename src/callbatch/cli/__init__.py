"""callbatch CLI: ``callbatch decode|response|failure|selectors``."""

from callbatch.cli.app import app

__all__ = ["app"]
