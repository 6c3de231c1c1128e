"""
HTTP client implementations for rawhttp.

This package contains the RAW-capable httpx transports, the raw wire
exchange underneath them and the client wrappers built on top.
"""
