"""linechat server: LOGIN-gated TCP chat with broadcast fan-out."""

__version__ = "1.0.0"
