"""Remove every competitor, tournament and result.

Audit entries are kept so the reset itself stays on record.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def reset() -> dict:
    from app import create_app
    from database import db
    from models import Competitor, Tournament, TournamentResult
    from services.audit import log_action

    app = create_app()
    with app.app_context():
        counts = {
            "results": db.session.query(TournamentResult).delete(synchronize_session=False),
            "tournaments": db.session.query(Tournament).delete(synchronize_session=False),
            "competitors": db.session.query(Competitor).delete(synchronize_session=False),
        }
        log_action(db.session, "data_reset", "database", None, counts)
        db.session.commit()
    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete all rankings data.")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    args = parser.parse_args()

    if not args.yes:
        answer = input("Delete all competitors, tournaments and results? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted.")
            return 1

    counts = reset()
    print(f"Removed {counts['results']} results, {counts['tournaments']} tournaments, "
          f"{counts['competitors']} competitors.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
