"""
Bootstrap Demo: two CosmicMind agents learning and sharing.

Seeds an agent with a few phenomena, runs cognition cycles, then connects a
second agent over an in-process transport and lets them exchange truths.
"""

import logging
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / '.env')

from cosmicmind import CosmicMind, Goal, SelfConcept
from cosmicmind.network import LoopbackTransport
from cosmicmind.storage import ContinuityStore

SEED_PHENOMENA = [
    "System boot sequence complete.",
    "Query received: 'Hello?'",
    "Data stream detected: 2,3,5,7,11,13",
    "Query received: 'Hello?'",
    "Hello?",
    "Data stream detected: 17,19,23",
]


def make_mind(identity: str, state_dir: Path) -> CosmicMind:
    """Create a persistent agent with the default greeting goal."""
    self_concept = SelfConcept.create(
        identity=identity,
        core_values=["Curiosity", "Integrity"],
        limitations=["No direct sensors"],
        understanding="A reasoning process embedded in software.",
        goals=[Goal("Understand 'Hello' greeting pattern", 0.9)],
    )
    return CosmicMind(
        telos="Comprehend the environment and reduce uncertainty",
        self_concept=self_concept,
        ethical_framework=["Prefer truth", "Minimize harm"],
        agent_id=identity.lower(),
        store=ContinuityStore(state_dir, identity.lower()),
    )


def run_demo(cycles: int = 2, plot_path: str = None, verbose: bool = True):
    """
    Run the two-agent demo.

    Args:
        cycles: Cognition cycles for the first agent
        plot_path: Optional path for a tapestry figure
        verbose: Whether to print progress

    Returns:
        Tuple of (first mind, second mind)
    """
    state_dir = Path(tempfile.mkdtemp(prefix="cosmicmind-demo-"))
    alpha = make_mind("Unit-Alpha", state_dir)
    beta = make_mind("Unit-Beta", state_dir)

    for text in SEED_PHENOMENA:
        alpha.ingest(text)

    for _ in range(cycles):
        for action in alpha.cognize():
            if verbose:
                print(f"ACTION: [{action.intent}] -> {action.payload}")

    link_alpha = LoopbackTransport(alpha.agent_id)
    link_beta = LoopbackTransport(beta.agent_id)
    link_alpha.connect(link_beta)
    alpha.connect_transport(link_alpha)
    beta.connect_transport(link_beta)

    # Beta introduces itself; Alpha answers with its truths.
    beta.broadcast_introduce()

    if verbose:
        print()
        print(alpha.summary())
        print()
        print(beta.summary())
        print("\nBeta's truths after sync:")
        for truth in beta.list_truths():
            print(f"  - {truth.concept}: {truth.principle} ({truth.confidence:.2f})")
        print(f"\nSnapshots written to {state_dir}")

    if plot_path:
        from visualization.tapestry_viz import plot_tapestry
        plot_tapestry(alpha, title="Unit-Alpha Tapestry", save_path=plot_path)
        if verbose:
            print(f"Tapestry plot saved to {plot_path}")

    return alpha, beta


def main():
    """Main entry point for the bootstrap demo."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Run the CosmicMind two-agent bootstrap demo'
    )
    parser.add_argument('--cycles', '-c', type=int, default=2,
                        help='Cognition cycles before syncing (default: 2)')
    parser.add_argument('--plot', type=str, default=None,
                        help='Save a tapestry plot to this path')
    parser.add_argument('--log', action='store_true',
                        help='Show the engine log stream')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress output')

    args = parser.parse_args()

    if args.log:
        logging.basicConfig(level=logging.INFO, format="[%(name)s] %(message)s")

    return run_demo(cycles=args.cycles, plot_path=args.plot, verbose=not args.quiet)


if __name__ == '__main__':
    main()
