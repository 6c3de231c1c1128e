"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from rawhttp.cli.main import cli

from conftest import echo_target, http_response


@pytest.fixture
def runner():
    return CliRunner()


def test_raw_request_from_file(runner, canned_server, tmp_path):
    server = canned_server(echo_target)
    request_file = tmp_path / 'request.txt'
    request_file.write_bytes(b'GET /from-cli HTTP/1.1\r\nHost: test\r\n\r\n')

    result = runner.invoke(cli, ['request', server.url(), '--raw', str(request_file), '-v'])

    assert result.exit_code == 0, result.output
    assert 'Status: 200 OK' in result.output
    assert 'target=/from-cli' in result.output
    assert server.requests == [b'GET /from-cli HTTP/1.1\r\nHost: test\r\n\r\n']


def test_ordinary_request(runner, canned_server):
    server = canned_server(lambda request: http_response('201 Created', b'made'))

    result = runner.invoke(cli, ['request', server.url('/things'), '-m', 'post', '-d', 'x=1', '-H', 'X-A: b'])

    assert result.exit_code == 0, result.output
    assert 'Status: 201 Created' in result.output
    assert server.requests[0].startswith(b'POST /things HTTP/1.1\r\n')
    assert b'\r\nX-A: b\r\n' in server.requests[0]


def test_response_body_saved_to_file(runner, canned_server, tmp_path):
    server = canned_server(echo_target)
    request_file = tmp_path / 'request.txt'
    request_file.write_bytes(b'GET /saved HTTP/1.1\r\n\r\n')
    output = tmp_path / 'body.bin'

    result = runner.invoke(cli, ['request', server.url(), '--raw', str(request_file), '-o', str(output)])

    assert result.exit_code == 0, result.output
    assert output.read_bytes() == b'target=/saved'


def test_raw_method_needs_a_request_file(runner):
    result = runner.invoke(cli, ['request', 'http://127.0.0.1:1/', '-m', 'RAW'])

    assert result.exit_code == 1
    assert '--raw' in result.output


def test_unsupported_scheme(runner):
    result = runner.invoke(cli, ['request', 'ftp://example.org/'])

    assert result.exit_code == 1
    assert 'Invalid URL scheme' in result.output


def test_connection_failure_exits_non_zero(runner, unused_port, tmp_path):
    request_file = tmp_path / 'request.txt'
    request_file.write_bytes(b'GET / HTTP/1.1\r\n\r\n')

    result = runner.invoke(cli, ['request', f'http://127.0.0.1:{unused_port}/', '--raw', str(request_file)])

    assert result.exit_code == 1
    assert 'Failed to connect' in result.output
