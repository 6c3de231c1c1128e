"""Tests for transport configuration and TLS context construction."""

import dataclasses
import ssl

import httpx
import pytest

from rawhttp.config import TLSSettings, TransportConfiguration
from rawhttp.utils import tls


def test_configuration_is_immutable():
    config = TransportConfiguration()

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.http2 = True
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.tls.verify = False


def test_defaults():
    config = TransportConfiguration()

    assert config.tls.verify is True
    assert config.http2 is False
    assert config.limits == httpx.Limits(max_connections=100, max_keepalive_connections=20, keepalive_expiry=90.0)


def test_disabling_keep_alives_empties_the_idle_pool():
    config = TransportConfiguration(disable_keep_alives=True, max_keepalive_connections=50)

    assert config.limits.max_keepalive_connections == 0


def test_delegates():
    config = TransportConfiguration(http2=True)

    delegate = config.build_delegate()
    async_delegate = config.build_async_delegate()

    assert isinstance(delegate, httpx.HTTPTransport)
    assert isinstance(async_delegate, httpx.AsyncHTTPTransport)
    delegate.close()


def test_raw_context_verifies_by_default():
    context = TLSSettings().raw_ssl_context()

    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname


def test_raw_context_without_verification():
    context = TLSSettings(verify=False).raw_ssl_context()

    assert context.verify_mode == ssl.CERT_NONE
    assert not context.check_hostname


def test_every_call_builds_a_new_context():
    settings = TLSSettings()

    assert settings.raw_ssl_context() is not settings.raw_ssl_context()
    assert settings.ssl_context() is not settings.ssl_context()


def test_raw_context_only_offers_http1(monkeypatch):
    offered = []
    create = tls.create_ssl_context

    def spy(alpn_protocols=None, **kwargs):
        offered.append(alpn_protocols)
        return create(alpn_protocols=alpn_protocols, **kwargs)

    monkeypatch.setattr(tls, 'create_ssl_context', spy)

    TLSSettings().raw_ssl_context()

    assert offered == [['http/1.1']]


def test_negotiated_protocol_of_a_plain_object():
    assert tls.get_negotiated_protocol(object()) is None
