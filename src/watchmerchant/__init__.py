"""watchmerchant - demo watch merchant backend."""

__version__ = "1.0.0"
