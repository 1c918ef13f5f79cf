from __future__ import annotations

import csv
import io
import os
import random
from datetime import date, timedelta
from typing import Dict, List, Optional, Set, Tuple

from voter_analytics.database import init_db, session_scope
from voter_analytics.models.voter_contact import IDENTITY_FIELDS, NUMERIC_FIELDS
from voter_analytics.services.batch_uploader import UploadUser
from voter_analytics.services.ingest import import_csv

DEMO_TEAMS = ["Team A", "Team B", "Team C", "Team D"]
DEMO_TACTICS = ["Phone", "Canvas", "SMS"]
DEMO_FIRST_NAMES = ["John", "Jane", "Michael", "Sarah", "David", "Lisa", "Robert", "Emily", "James", "Maria"]
DEMO_LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Rodriguez", "Martinez"]

CSV_COLUMNS = ["first_name", "last_name", "team", "date", "tactic", *NUMERIC_FIELDS]


def generate_demo_rows(days: int = 30, seed: Optional[int] = None, today: Optional[date] = None) -> List[Dict[str, object]]:
    """
    3-8 records per day for the last `days` days.

    Outcomes always add up: contacts + not_home + refusal + bad_data == attempts,
    support + oppose + undecided == contacts. Identities are unique per day/tactic.
    """
    rng = random.Random(seed)
    today = today or date.today()
    rows: List[Dict[str, object]] = []
    seen: Set[Tuple[object, ...]] = set()

    for i in range(days):
        day = (today - timedelta(days=i)).isoformat()

        for _ in range(rng.randint(3, 8)):
            attempts = rng.randint(1, 5)
            contacts = rng.randint(0, min(attempts, 2))
            not_home = rng.randint(0, attempts - contacts)
            refusal = rng.randint(0, attempts - contacts - not_home)
            bad_data = attempts - contacts - not_home - refusal

            support = rng.randint(0, contacts)
            oppose = rng.randint(0, contacts - support)
            undecided = contacts - support - oppose

            row: Dict[str, object] = {
                "first_name": rng.choice(DEMO_FIRST_NAMES),
                "last_name": rng.choice(DEMO_LAST_NAMES),
                "team": rng.choice(DEMO_TEAMS),
                "date": day,
                "tactic": rng.choice(DEMO_TACTICS),
                "attempts": attempts,
                "contacts": contacts,
                "not_home": not_home,
                "refusal": refusal,
                "bad_data": bad_data,
                "support": support,
                "oppose": oppose,
                "undecided": undecided,
            }

            identity = tuple(row[f] for f in IDENTITY_FIELDS)
            if identity in seen:
                continue
            seen.add(identity)
            rows.append(row)

    rows.sort(key=lambda r: str(r["date"]), reverse=True)
    return rows


def rows_to_csv(rows: List[Dict[str, object]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def main() -> None:
    # Ensure tables exist (local dev)
    init_db()

    user = UploadUser(
        user_id=os.getenv("DEMO_USER_ID", "demo"),
        email=os.getenv("DEMO_USER_EMAIL", "demo@example.com"),
    )
    seed = os.getenv("DEMO_SEED")
    content = rows_to_csv(generate_demo_rows(seed=int(seed) if seed else None))

    with session_scope() as session:
        summary = import_csv(session, content, user, file_name="demo.csv")

    print(f"Seeded demo data for {user.user_id}: {summary.message}")


if __name__ == "__main__":
    main()
