"""Load demo tournaments for trying out the rankings service.

Every tournament goes through the same commit path as an uploaded sheet, so
competitor matching, duplicate checks and audit entries all apply. Running the
script twice skips tournaments that already exist.
"""

from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


DEMO_COMPETITORS = [
    ("Alice Chen", "alice.chen@email.com"),
    ("Bob Martinez", "bob.martinez@email.com"),
    ("Carmen Rodriguez", "carmen.rodriguez@email.com"),
    ("David Park", "david.park@email.com"),
    ("Elena Volkov", "elena.volkov@email.com"),
    ("Frank Johnson", "frank.johnson@email.com"),
    ("Grace Kim", "grace.kim@email.com"),
    ("Hassan Ali", "hassan.ali@email.com"),
    ("Isabella Torres", "isabella.torres@email.com"),
    ("Jake Wilson", "jake.wilson@email.com"),
    ("Katherine Liu", "katherine.liu@email.com"),
    ("Luis Garcia", "luis.garcia@email.com"),
    ("Maya Patel", "maya.patel@email.com"),
    ("Nick Thompson", "nick.thompson@email.com"),
    ("Olivia Brown", "olivia.brown@email.com"),
    ("Pavel Novak", "pavel.novak@email.com"),
    ("Quinn O'Connor", "quinn.oconnor@email.com"),
    ("Rachel Green", "rachel.green@email.com"),
    ("Sam Anderson", "sam.anderson@email.com"),
    ("Tara Singh", "tara.singh@email.com"),
]

DEMO_TOURNAMENTS = [
    {
        "name": "Spring Championship 2024",
        "date": "2024-03-15",
        "events": ["knockdowns", "distance", "speed", "woods"],
        "total_points": 120,
    },
    {
        "name": "Summer Regional 2024",
        "date": "2024-07-20",
        "events": ["knockdowns", "distance", "speed"],
        "total_points": 100,
    },
    {
        "name": "Fall Invitational 2024",
        "date": "2024-10-12",
        "events": ["knockdowns", "distance", "speed", "woods"],
        "total_points": 150,
    },
]


def _random_score(rng: random.Random, max_points: float, skill: float) -> float:
    base = max_points * skill
    spread = max_points * 0.15
    score = base + (rng.random() - 0.5) * spread * 2
    return max(0.0, min(max_points, round(score, 2)))


def _build_rows(rng: random.Random, tournament: dict, skills: dict, perfect: str | None) -> list:
    total = tournament["total_points"]
    count = int(len(DEMO_COMPETITORS) * (0.6 + rng.random() * 0.3))
    participants = rng.sample(DEMO_COMPETITORS, count)
    if perfect and perfect not in {name for name, _ in participants}:
        participants.append(next(c for c in DEMO_COMPETITORS if c[0] == perfect))

    rows = []
    for name, email in participants:
        row = {"name": name, "email": email}
        for event in tournament["events"]:
            row[f"{event}_earned"] = total if name == perfect else _random_score(rng, total, skills[name])
        rows.append(row)
    return rows


def seed(seed_value: int | None = None) -> dict:
    from app import create_app
    from database import db
    from services.errors import ConflictError
    from services.tournament_commit import commit_tournament

    rng = random.Random(seed_value)
    skills = {name: 0.4 + rng.random() * 0.5 for name, _ in DEMO_COMPETITORS}
    summary = {"created": [], "skipped": []}

    app = create_app()
    with app.app_context():
        for index, tournament in enumerate(DEMO_TOURNAMENTS):
            # First tournament carries a perfect scorer
            rows = _build_rows(rng, tournament, skills, "Alice Chen" if index == 0 else None)
            try:
                outcome = commit_tournament(
                    db.session,
                    {"name": tournament["name"], "date": tournament["date"]},
                    tournament["events"],
                    {event: tournament["total_points"] for event in tournament["events"]},
                    rows,
                    authorized=True,
                )
            except ConflictError:
                summary["skipped"].append(tournament["name"])
                continue
            summary["created"].append({
                "name": tournament["name"],
                "tournament_id": outcome.tournament_id,
                "new_competitors": len(outcome.new_competitors),
                "results": len(rows),
            })
    return summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Load demo tournaments and competitors.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible scores.")
    args = parser.parse_args()

    summary = seed(args.seed)
    for entry in summary["created"]:
        print(f"Added {entry['name']} (id {entry['tournament_id']}): "
              f"{entry['results']} results, {entry['new_competitors']} new competitors")
    for name in summary["skipped"]:
        print(f"Skipped {name}: already loaded")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
