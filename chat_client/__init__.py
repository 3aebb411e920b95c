"""linechat client: terminal front end for the linechat server."""

__version__ = "1.0.0"
