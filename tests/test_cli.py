"""
Tests for the interactive shell and configuration.
"""

import argparse
import io
import socket
import time
from pathlib import Path

import pytest

from cosmicmind import CosmicMind
from cosmicmind.cli import (
    HELP_TEXT,
    Shell,
    build_parser,
    default_self_concept,
    main,
    parse_peer,
    start_network,
)
from cosmicmind.config import MindConfig
from cosmicmind.knowledge.synthesis import GREETING_PRINCIPLE

from conftest import make_self_concept


def make_shell(mind):
    output = []
    return Shell(mind, out=output.append), output


class TestShell:
    """Test shell command handling."""

    def test_help(self, mind):
        shell, output = make_shell(mind)

        assert shell.handle_line("help") is True
        assert output == [HELP_TEXT]

    def test_unknown_input_is_ingested(self, mind):
        shell, _ = make_shell(mind)
        shell.handle_line("Hello?")

        assert [f.raw_input for f in mind.list_frames()] == ["Hello?"]

    def test_say(self, mind):
        shell, output = make_shell(mind)
        shell.handle_line("say 2,3,5")
        shell.handle_line("say")

        assert [f.raw_input for f in mind.list_frames()] == ["2,3,5"]
        assert output == ["Usage: say <text>"]

    def test_think_and_truths(self, mind):
        shell, output = make_shell(mind)
        shell.handle_line("truths")
        for _ in range(3):
            shell.handle_line("say Hello?")
        shell.handle_line("think")
        shell.handle_line("truths")

        assert output[0] == "No derived truths yet."
        assert output[1].startswith("ACTION: [RespondToGreeting]")
        assert "(confidence: 0.90)" in output[2]

    def test_think_without_goals(self):
        shell, output = make_shell(CosmicMind("t", make_self_concept([]), agent_id="idle"))
        shell.handle_line("think")

        assert output == ["No actions decided this cycle."]

    def test_inspect(self, mind):
        shell, output = make_shell(mind)
        frame = mind.ingest("Hello?")
        shell.handle_line(f"inspect frame {frame.id}")
        shell.handle_line("inspect truth missing")
        shell.handle_line("inspect frame")

        assert output[0].startswith("Frame raw: Hello?")
        assert output[1] == "Not found."
        assert output[2] == "Usage: inspect <truth|frame> <id>"

    def test_persist_disabled(self, mind):
        shell, output = make_shell(mind)
        shell.handle_line("persist")

        assert output == ["Persist failed or disabled."]

    def test_persist(self, persistent_mind, store):
        shell, output = make_shell(persistent_mind)
        shell.handle_line("persist")

        assert output == ["Persist requested."]
        assert store.exists()

    def test_quit_runs_final_cycle(self, mind):
        shell, _ = make_shell(mind)

        assert shell.handle_line("quit") is False
        assert mind.cycle_count == 1

    def test_run_stops_at_exit(self, mind):
        shell, output = make_shell(mind)
        shell.run(["say one\n", "exit\n", "say two\n"])

        assert [f.raw_input for f in mind.list_frames()] == ["one"]
        assert "Identity: TestUnit" in output[0]

    def test_frames_listing(self, mind):
        shell, output = make_shell(mind)
        for i in range(25):
            mind.ingest(f"event {i}")
        shell.handle_line("frames")

        assert len(output) == 21
        assert output[-1] == "... 5 more frames."


class TestConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch, tmp_path):
        for name in ["COSMICMIND_AGENT_ID", "COSMICMIND_STATE_DIR", "COSMICMIND_CYCLE_INTERVAL",
                     "COSMICMIND_FOCUS_SIZE", "COSMICMIND_LOG_LEVEL"]:
            monkeypatch.delenv(name, raising=False)
        config = MindConfig.from_env(tmp_path / "missing.env")

        assert config.cycle_interval == 6.0
        assert config.focus_size == 12
        assert config.state_dir == Path.home() / ".cosmicmind"
        assert config.log_level == "INFO"
        assert config.agent_id

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COSMICMIND_AGENT_ID", "unit-7")
        monkeypatch.setenv("COSMICMIND_STATE_DIR", str(tmp_path))
        monkeypatch.setenv("COSMICMIND_CYCLE_INTERVAL", "0.5")
        monkeypatch.setenv("COSMICMIND_LOG_LEVEL", "debug")
        config = MindConfig.from_env(tmp_path / "missing.env")

        assert config.agent_id == "unit-7"
        assert config.state_dir == tmp_path
        assert config.cycle_interval == 0.5
        assert config.log_level == "DEBUG"

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("COSMICMIND_SHARE_TRUST", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("COSMICMIND_SHARE_TRUST=0.25\n")
        config = MindConfig.from_env(env_file)
        monkeypatch.delenv("COSMICMIND_SHARE_TRUST", raising=False)

        assert config.share_trust == 0.25


class TestParser:

    def test_flags(self):
        args = build_parser().parse_args(["--agent-id", "x", "--no-background", "--interval", "2"])

        assert args.agent_id == "x"
        assert args.no_background
        assert args.interval == 2.0

    def test_network_flags(self):
        args = build_parser().parse_args([
            "--no-network", "--peer-port", "0", "--peer", "10.0.0.2:4000", "--peer", "host:44444",
        ])

        assert args.no_network
        assert args.peer_port == 0
        assert args.peer == [("10.0.0.2", 4000), ("host", 44444)]

    def test_network_on_by_default(self):
        args = build_parser().parse_args([])

        assert not args.no_network
        assert args.peer == []

    @pytest.mark.parametrize("value", ["nohost", ":4000", "host:", "host:port"])
    def test_bad_peer_address(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_peer(value)

    def test_default_self_concept(self):
        concept = default_self_concept()

        assert concept.identity == "Unit-X535"
        assert [g.priority for g in concept.active_goals()] == [0.9]


class TestNetworkStartup:
    """Test the peer listener started alongside the shell."""

    def test_peers_exchange_truths(self):
        a = CosmicMind("t", make_self_concept(), agent_id="net-a")
        for _ in range(3):
            a.ingest("Hello?")
        a.cognize()
        b = CosmicMind("t", make_self_concept(), agent_id="net-b")

        server = start_network(a, MindConfig(peer_port=0))
        assert server is not None and server.running
        client = None
        try:
            client = start_network(b, MindConfig(peer_port=0),
                                   [("127.0.0.1", server.transport.port)])
            deadline = time.time() + 5
            while not b.list_truths() and time.time() < deadline:
                time.sleep(0.02)
        finally:
            if client is not None:
                client.stop()
            server.stop()

        assert [t.principle for t in b.list_truths()] == [GREETING_PRINCIPLE]
        assert "net-b" in a.peer_sync.known_peers
        assert not server.running

    def test_port_in_use(self, mind):
        with socket.socket() as busy:
            busy.bind(("127.0.0.1", 0))
            busy.listen()
            port = busy.getsockname()[1]

            assert start_network(mind, MindConfig(peer_port=port)) is None

    def test_unreachable_peer_is_skipped(self, mind):
        with socket.socket() as closed:
            closed.bind(("127.0.0.1", 0))
            port = closed.getsockname()[1]
        service = start_network(mind, MindConfig(peer_port=0), [("127.0.0.1", port)])
        try:
            assert service.running
            assert service.transport.peers() == []
        finally:
            service.stop()

    @pytest.mark.parametrize("extra", [[], ["--no-network"]])
    def test_main_session(self, monkeypatch, tmp_path, extra):
        monkeypatch.setenv("COSMICMIND_STATE_DIR", str(tmp_path))
        monkeypatch.setenv("COSMICMIND_PEER_PORT", "0")
        monkeypatch.setattr("sys.stdin", io.StringIO("say Hello?\nexit\n"))

        assert main(["--agent-id", "cli-test", "--no-background"] + extra) == 0
        assert (tmp_path / "cosmicMind.cli-test.v3.json").exists()
