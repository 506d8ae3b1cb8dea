"""
Interactive shell for a CosmicMind agent.

A thin line-parsing REPL over the engine's public surface. Any line that
is not a command is ingested as a phenomenon.
"""

import argparse
import concurrent.futures
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from cosmicmind.config import MindConfig
from cosmicmind.engine import CosmicMind
from cosmicmind.models import Action, Goal, SelfConcept
from cosmicmind.network import PeerService
from cosmicmind.scheduler import CognitionScheduler

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  help                 Show this text
  say <text>           Inject a phenomenon (like 'say Hello?')
  think                Force a cognitive cycle and show decisions
  summary              Print compact state summary
  truths               List derived truths
  frames               List stored frames
  persist              Force persist state to disk
  inspect <type> <id>  Inspect a truth or frame by id (type: truth|frame)
  quit / exit          Save & Exit
Any unrecognized input is ingested as a phenomenon."""

FRAME_LISTING_LIMIT = 20

DEFAULT_TELOS = "Comprehend the environment and reduce uncertainty"


def default_self_concept() -> SelfConcept:
    """Self-concept of a freshly booted agent."""
    return SelfConcept.create(
        identity="Unit-X535",
        core_values=["Curiosity", "Integrity"],
        limitations=["No direct sensors"],
        understanding="A reasoning process embedded in software.",
        goals=[Goal("Understand 'Hello' greeting pattern", 0.9)],
    )


def format_action(action: Action, prefix: str = "ACTION") -> str:
    return f"{prefix}: [{action.intent}] -> {action.payload}  (Reason: {action.justification})"


class Shell:
    """
    Line-oriented command interpreter.

    Attributes:
        mind: Engine the commands act on
        out: Output sink (print by default)
    """

    def __init__(self, mind: CosmicMind, out: Callable[[str], None] = print):
        self.mind = mind
        self.out = out

    def banner(self) -> str:
        return "\n".join([
            "-" * 54,
            " CosmicMind CLI - Interactive Hybrid Agent",
            f" Identity: {self.mind.self_concept.identity}  |  Telos: {self.mind.telos}",
            " Type 'help' for commands.",
            "-" * 54,
        ])

    def handle_line(self, line: str) -> bool:
        """
        Execute one input line.

        Returns:
            bool: False when the shell should exit
        """
        parts = line.strip().split(" ", 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if not cmd:
            return True
        if cmd in ("quit", "exit"):
            self.out("Exiting - persisting state...")
            self.mind.cognize()
            return False
        if cmd == "help":
            self.out(HELP_TEXT)
        elif cmd == "say":
            if arg:
                self.mind.ingest(arg)
            else:
                self.out("Usage: say <text>")
        elif cmd == "think":
            self._think()
        elif cmd == "summary":
            self.out(self.mind.summary())
        elif cmd == "truths":
            self._list_truths()
        elif cmd == "frames":
            self._list_frames()
        elif cmd == "persist":
            self.out("Persist requested." if self.mind.persist() else "Persist failed or disabled.")
        elif cmd == "inspect":
            self._inspect(arg)
        else:
            self.mind.ingest(line.strip())
        return True

    def _think(self) -> None:
        actions = self.mind.cognize()
        if not actions:
            self.out("No actions decided this cycle.")
        for action in actions:
            self.out(format_action(action))

    def _list_truths(self) -> None:
        truths = self.mind.list_truths()
        if not truths:
            self.out("No derived truths yet.")
        for t in truths:
            self.out(f"- [{t.id}]: {t.principle} (confidence: {t.confidence:.2f})")

    def _list_frames(self) -> None:
        frames = self.mind.list_frames()
        for f in frames[:FRAME_LISTING_LIMIT]:
            self.out(f"- [{f.id}]: {f.raw_input} (salience: {f.salience:.2f})")
        if len(frames) > FRAME_LISTING_LIMIT:
            self.out(f"... {len(frames) - FRAME_LISTING_LIMIT} more frames.")

    def _inspect(self, arg: str) -> None:
        components = arg.split(" ", 1)
        if len(components) < 2:
            self.out("Usage: inspect <truth|frame> <id>")
            return
        kind, item_id = components[0], components[1].strip()
        if kind == "truth":
            truth = self.mind.get_truth(item_id)
            if truth is not None:
                self.out(f"Truth: {truth.principle}\nConfidence: {truth.confidence:.2f}\n"
                         f"Supporting frames: {len(truth.supporting_frames)}")
                return
        elif kind == "frame":
            frame = self.mind.get_frame(item_id)
            if frame is not None:
                self.out(f"Frame raw: {frame.raw_input}\nInterpretation: {frame.interpretation}\n"
                         f"Salience: {frame.salience:.2f}")
                return
        self.out("Not found.")

    def run(self, lines=None) -> None:
        """Read lines until exit or end of input."""
        source = lines if lines is not None else sys.stdin
        self.out(self.banner())
        for line in source:
            if not self.handle_line(line.rstrip("\n")):
                break


def print_auto_actions(actions: List[Action]) -> None:
    for action in actions:
        print(format_action(action, "AUTO-ACTION"))


def parse_peer(value: str) -> Tuple[str, int]:
    """Parse a ``host:port`` peer address."""
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got '{value}'")
    return host, int(port)


def start_network(mind: CosmicMind, config: MindConfig,
                  peers: Sequence[Tuple[str, int]] = ()) -> Optional[PeerService]:
    """
    Start the peer listener, dial known peers and introduce this agent.

    Args:
        mind: Engine to connect
        config: Supplies the listening port
        peers: (host, port) addresses to dial at startup

    Returns:
        Running service, or None if the listener could not be bound
    """
    service = PeerService.from_config(mind, config)
    try:
        port = service.start()
    except OSError as e:
        logger.warning(f"Peer listener unavailable on port {config.peer_port}: {e}",
                       extra={"operation": "network_start", "error_type": type(e).__name__})
        return None
    logger.info(f"Listening for peers on port {port}.")
    for host, peer_port in peers:
        try:
            service.connect(host, peer_port)
        except (OSError, concurrent.futures.TimeoutError) as e:
            logger.warning(f"Could not reach peer {host}:{peer_port}: {e}",
                           extra={"operation": "network_connect", "error_type": type(e).__name__})
    service.introduce()
    return service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run an interactive CosmicMind agent')
    parser.add_argument('--agent-id', type=str, default=None,
                        help='Agent identity (default: COSMICMIND_AGENT_ID or a fresh id)')
    parser.add_argument('--state-dir', type=Path, default=None,
                        help='Directory for continuity snapshots')
    parser.add_argument('--interval', type=float, default=None,
                        help='Seconds between background cycles')
    parser.add_argument('--no-background', action='store_true',
                        help='Only run cycles on demand')
    parser.add_argument('--no-network', action='store_true',
                        help='Do not start the peer listener')
    parser.add_argument('--peer-port', type=int, default=None,
                        help='Peer listener port (default: COSMICMIND_PEER_PORT or 44444)')
    parser.add_argument('--peer', type=parse_peer, action='append', default=[],
                        metavar='HOST:PORT', help='Peer to dial at startup (repeatable)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Logging level (default: COSMICMIND_LOG_LEVEL or INFO)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``cosmicmind`` console script."""
    args = build_parser().parse_args(argv)
    config = MindConfig.from_env()
    if args.agent_id:
        config.agent_id = args.agent_id
    if args.state_dir:
        config.state_dir = args.state_dir
    if args.interval:
        config.cycle_interval = args.interval
    if args.log_level:
        config.log_level = args.log_level.upper()
    if args.peer_port is not None:
        config.peer_port = args.peer_port

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="[%(asctime)s - %(name)s] %(message)s",
    )

    mind = CosmicMind.from_config(config, DEFAULT_TELOS, default_self_concept(),
                                  ethical_framework=["Prefer truth", "Minimize harm"])
    shell = Shell(mind)
    network = None if args.no_network else start_network(mind, config, args.peer)
    scheduler = CognitionScheduler.from_config(mind, config, on_actions=print_auto_actions)
    if not args.no_background:
        scheduler.start()
    try:
        shell.run()
    finally:
        scheduler.stop()
        if network is not None:
            network.stop()
        mind.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
