"""
TLS utilities for rawhttp.

This module provides helper functions for setting up TLS connections for the
raw wire path and for the httpx delegate.
"""

import ssl
from typing import Optional


def create_ssl_context(
    alpn_protocols: Optional[list[str]] = None,
    verify: bool = True,
    ca_file: Optional[str] = None,
    cert_file: Optional[str] = None,
    key_file: Optional[str] = None,
) -> ssl.SSLContext:
    """Create an SSL context for HTTP connections.

    Args:
        alpn_protocols: List of ALPN protocols to advertise (e.g., ['http/1.1'])
        verify: Whether to verify server certificates
        ca_file: Optional CA bundle used instead of the system store
        cert_file: Optional client certificate (PEM)
        key_file: Optional private key for cert_file

    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=ca_file)

    # Self-signed and otherwise broken endpoints are fair game when testing
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if cert_file:
        context.load_cert_chain(cert_file, key_file)

    if alpn_protocols:
        context.set_alpn_protocols(alpn_protocols)

    return context


def get_http1_ssl_context(verify: bool = True, **kwargs) -> ssl.SSLContext:
    """Get an SSL context that only offers HTTP/1.1 via ALPN.

    The raw path always speaks HTTP/1.x on the wire, so the server must not be
    allowed to pick h2.
    """
    return create_ssl_context(alpn_protocols=['http/1.1'], verify=verify, **kwargs)


def get_negotiated_protocol(ssl_object) -> Optional[str]:
    """Get the negotiated ALPN protocol from an SSL socket or SSL object.

    Returns:
        Negotiated protocol or None if not available
    """
    try:
        return ssl_object.selected_alpn_protocol()
    except AttributeError:
        return None
