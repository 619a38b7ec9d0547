"""ghexport - export GitHub pull requests, issues and Actions runs as Markdown."""

from .__version__ import __version__

__all__ = ["__version__"]
