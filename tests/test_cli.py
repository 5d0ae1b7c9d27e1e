"""Tests for the command line interface."""

import sys

import pytest
from click.testing import CliRunner

from jsxfer import cli as cli_module
from jsxfer.cli import cli, main
from jsxfer.errors import BrokerConnectionError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_connect(monkeypatch, broker):
    """Route the CLI's broker connection to the in-memory broker."""
    seen = []

    async def _connect(config):
        seen.append(config)
        broker.closed = False
        return broker

    monkeypatch.setattr(cli_module, 'connect', _connect)
    return seen


def test_put_then_get(runner, broker, fake_connect, tmp_path):
    source = tmp_path / 'notes.txt'
    source.write_bytes(b'x' * 200000)
    out_dir = tmp_path / 'out'
    out_dir.mkdir()

    put = runner.invoke(cli, ['put', str(source)])
    assert put.exit_code == 0, put.output
    assert 'notes_txt' in broker.streams
    assert broker.closed

    get = runner.invoke(cli, ['get', 'notes.txt', '-o', str(out_dir)])
    assert get.exit_code == 0, get.output
    assert (out_dir / 'notes_txt').read_bytes() == source.read_bytes()


def test_server_and_creds_options(runner, fake_connect, tmp_path):
    source = tmp_path / 'f'
    source.write_bytes(b'1')

    result = runner.invoke(cli, ['-s', 'nats://a:1,nats://b:2', '--creds', 'my.creds',
                                 'put', str(source), '--replicas', '3'])

    assert result.exit_code == 0, result.output
    config = fake_connect[0]
    assert config.servers == ['nats://a:1', 'nats://b:2']
    assert str(config.creds) == 'my.creds'
    assert config.replicas == 3


def test_put_missing_file_exits_1(runner, fake_connect, tmp_path):
    result = runner.invoke(cli, ['put', str(tmp_path / 'absent.bin')])

    assert result.exit_code == 1
    assert 'Error opening' in result.output


def test_put_existing_stream_exits_1(runner, broker, fake_connect, tmp_path):
    broker.add_stream('dup', [b'old'])
    source = tmp_path / 'dup'
    source.write_bytes(b'new')

    result = runner.invoke(cli, ['put', str(source)])

    assert result.exit_code == 1
    assert 'already exists' in result.output
    assert broker.streams['dup'].messages == [b'old']


def test_get_missing_stream_exits_1(runner, fake_connect, tmp_path):
    result = runner.invoke(cli, ['get', 'nothing', '-o', str(tmp_path)])

    assert result.exit_code == 1
    assert 'Could not find stream' in result.output


def test_connection_failure_exits_1(runner, monkeypatch, tmp_path):
    async def _refuse(config):
        raise BrokerConnectionError("Could not connect to nats://nowhere:4222")

    monkeypatch.setattr(cli_module, 'connect', _refuse)
    source = tmp_path / 'f'
    source.write_bytes(b'1')

    result = runner.invoke(cli, ['put', str(source)])

    assert result.exit_code == 1
    assert 'Could not connect' in result.output


def test_invalid_replicas_is_usage_error(runner, fake_connect, tmp_path):
    source = tmp_path / 'f'
    source.write_bytes(b'1')

    result = runner.invoke(cli, ['put', str(source), '--replicas', '0'])

    assert result.exit_code != 0
    assert fake_connect == []


def test_command_name_is_case_insensitive(runner, broker, fake_connect, tmp_path):
    source = tmp_path / 'Loud.TXT'
    source.write_bytes(b'shout')

    result = runner.invoke(cli, ['PUT', str(source)])

    assert result.exit_code == 0, result.output
    assert broker.streams['Loud_TXT'].messages == [b'shout']


def test_no_command_is_usage_error(runner, fake_connect):
    result = runner.invoke(cli, [])

    assert result.exit_code == 2
    assert 'Missing command' in result.output
    assert fake_connect == []


@pytest.mark.parametrize('argv', [
    ['jsxfer'],
    ['jsxfer', 'put'],
    ['jsxfer', 'fetch', 'x'],
    ['jsxfer', '--bogus', 'get', 'x'],
])
def test_malformed_invocation_exits_1(monkeypatch, argv):
    monkeypatch.setattr(sys, 'argv', argv)

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 1


def test_help_exits_0(monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['jsxfer', '-h'])

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0
