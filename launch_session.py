"""
Session launcher.

Runs the dot-motion experiment headlessly with a simulated participant.
Useful for piloting the persistence pipeline against a real or mock backend.

Usage:
    python launch_session.py --debug
    python launch_session.py --config session.json --url "https://host/?PROLIFIC_PID=p1&SESSION_ID=s1"
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import pyglet

# Add project directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.session import SessionConfigHandler
from core.display import ConsoleDisplay
from core.errors import ConstructionError
from core.execution.engine import ScriptedEngine, random_responder
from core.execution.randomization import make_rng
from core.experiment import ExperimentRunner
from core.persistence import MockStore, create_store
from experiments import build_dot_motion_timeline


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a dot-motion session with a simulated participant")
    parser.add_argument('--config', help="Path to session config JSON")
    parser.add_argument('--url', help="Launch URL or query string with participant identity")
    parser.add_argument('--debug', action='store_true', help="Force debug mode")
    parser.add_argument('--seed', type=int, help="Randomization seed")
    parser.add_argument('--shuffle-units', action='store_true',
                        help="Shuffle the 18 test units individually instead of whole items")
    parser.add_argument('--accuracy', type=float, default=0.8, help="Simulated participant accuracy")
    parser.add_argument('--timeout', type=float, default=30.0, help="Seconds to wait for the final save")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    handler = SessionConfigHandler(args.config)
    if args.debug:
        handler.config['debug'] = True
    if args.seed is not None:
        handler.config['seed'] = args.seed
    config = handler.resolve(args.url)

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    print("=" * 70)
    print(f"Session: {config.experiment_name}  backend: {config.store_backend}  debug: {config.debug}")
    print("=" * 70)

    store = create_store(config)

    def update_debug_panel():
        if isinstance(store, MockStore):
            snapshot = store.snapshot()
            print(f"[DebugPanel] partial records stored: {len(snapshot['partial'])}")

    rng = make_rng(config.seed)
    runner = ExperimentRunner(
        timeline=build_dot_motion_timeline(seed=config.seed, rng=rng, group_items=not args.shuffle_units),
        engine=ScriptedEngine(random_responder(rng, accuracy=args.accuracy)),
        store=store,
        config=config,
        display=ConsoleDisplay(),
        update_debug_panel=update_debug_panel,
    )

    try:
        runner.start()
    except ConstructionError as e:
        print(f"✗ {e}")
        store.shutdown(wait=False)
        return 1

    if not runner.wait(timeout=args.timeout):
        print(f"✗ Final save did not resolve within {args.timeout}s")
        store.shutdown(wait=False)
        return 1

    # Let the scheduled redirect / data display fire. The clock is only ticked
    # after wait(), since the runner schedules from a save worker thread.
    delay = config.display_data_delay if config.debug and not runner.redirect_scheduled else config.exit_delay
    deadline = time.time() + delay + 0.5
    while time.time() < deadline:
        pyglet.clock.tick()
        time.sleep(0.05)

    if runner.summary:
        print(f"[Debrief] accuracy={runner.summary.accuracy}% "
              f"rt={runner.summary.reaction_time if runner.summary.reaction_time is not None else 'N/A'}")

    store.shutdown(wait=True)
    print(f"Session ended: {runner.state.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
