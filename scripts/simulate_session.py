"""Simulate a voting session against an in-memory store.

Creates participants with fake names (faker, fixed seed), starts the
session, lets every participant vote and change their mind at random on a
virtual clock, ticks their score accumulators until the window closes, and
prints the final tally, the top 3 and the score leaderboard.

Usage:
    python scripts/simulate_session.py
    python scripts/simulate_session.py --participants 40 --window 120 --target 5
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from faker import Faker

sys.path.insert(0, str(Path(__file__).parent.parent))

from whodunit.clock import SessionClock
from whodunit.config import Settings
from whodunit.dashboard import Dashboard, DashboardSnapshot
from whodunit.session import ParticipantClient
from whodunit.stores.memory import MemoryStore
from whodunit.suspects import build_gallery, find_suspect

SEED = 20250613


def simulate(settings: Settings, participants: int, switch_chance: float,
             seed: int = SEED) -> tuple[Dashboard, DashboardSnapshot]:
    """Run a whole session on a virtual clock.

    Returns the dashboard and its final snapshot.
    """
    rng = random.Random(seed)
    fake = Faker()
    fake.seed_instance(seed)

    store = MemoryStore()
    gallery = build_gallery()
    admin_clock = SessionClock(store, settings.window_seconds, settings.session_id)
    dashboard = Dashboard(store, gallery, settings.history_limit)

    names = set()
    while len(names) < participants:
        names.add(fake.first_name())
    clients = [ParticipantClient(name, store, settings, gallery) for name in sorted(names)]

    now = 0
    admin_clock.start(now)
    tick_ms = int(settings.tick_interval * 1000)
    poll_ms = int(settings.poll_interval * 1000)
    end = now + settings.window_ms + tick_ms
    next_poll = now

    while now <= end:
        for client in clients:
            if client.tracker.current_vote(client.participant) is None or rng.random() < switch_chance:
                client.vote(rng.choice(gallery).id, now)
            client.step(now)
        if now >= next_poll:
            dashboard.poll(now)
            next_poll += poll_ms
        now += tick_ms

    return dashboard, dashboard.poll(now)


def main():
    arg_parser = argparse.ArgumentParser(description=__doc__.split("\n")[0])
    arg_parser.add_argument("--participants", type=int, default=20,
                            help="Number of simulated participants")
    arg_parser.add_argument("--window", type=float, default=60.0,
                            help="Evaluation window in seconds")
    arg_parser.add_argument("--target", type=int, default=1,
                            help="Id of the culprit suspect")
    arg_parser.add_argument("--switch-chance", type=float, default=0.05,
                            help="Probability a participant changes vote at each tick")
    arg_parser.add_argument("--seed", type=int, default=SEED)
    arg_parser.add_argument("-v", "--verbose", action="store_true")
    args = arg_parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    settings = Settings(window_seconds=args.window, target_suspect_id=args.target)
    dashboard, snapshot = simulate(settings, args.participants, args.switch_chance, args.seed)

    gallery = dashboard.gallery
    print(f"Final tally ({snapshot.total} ballots):")
    for suspect_id, count in snapshot.counts.items():
        print(f"  {find_suspect(gallery, suspect_id).name:<20} {count}")

    print("Top 3:")
    for entry in snapshot.top:
        print(f"  {entry.suspect.name:<20} {entry.count} ({entry.share:.1f}%)")

    target = find_suspect(gallery, args.target)
    print(f"Scores (culprit: {target.name if target else args.target}):")
    for record in dashboard.leaderboard():
        print(f"  {record.participant:<20} {record.percentage:6.2f}%")


if __name__ == "__main__":
    main()
