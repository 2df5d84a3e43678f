#!/usr/bin/env python3
"""
Seed the database with users and hiring requests at every workflow stage.

Drops all tables, recreates them, registers one user per role, drives a
handful of requests through the approval chain and fulfillment pipeline via
the command gateway, and prints the resulting dashboard counters.

Usage:
  python3 scripts/seed_data.py [--db-url URL] [--config NAME]

The database URL defaults to HIRING_DATABASE_URL, then to the config set's
database.default_url.
"""

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Reset the hiring database and load demo data")
    p.add_argument("--config", default="default", help="Config set name (default: 'default')")
    p.add_argument("--db-url", default=None, help="Database URL (overrides config and env)")
    return p.parse_args()


def _require(result, what: str):
    if not result.ok:
        raise SystemExit(f"{what} failed: {json.dumps(result.error, indent=2)}")
    return result.data


def main() -> int:
    args = _parse_args()

    from hiring_config import get_active_config
    from hiring_kernel.db.engine import create_tables, drop_tables, init_engine_from_url
    from hiring_services import HiringGateway

    config = get_active_config(args.config)
    db_url = args.db_url or config.database.resolve_url()
    init_engine_from_url(db_url, echo=config.database.echo, pool_size=config.database.pool_size)
    drop_tables()
    create_tables()

    gw = HiringGateway(config=config)

    bu_head = _require(
        gw.create_user("Priya Raman", "priya@example.com", "BU Head", "Engineering", "5000000"),
        "create BU Head",
    )
    hr_head = _require(gw.create_user("Arjun Mehta", "arjun@example.com", "HR HEAD"), "create HR Head")
    admin = _require(gw.create_user("Sara Khan", "sara@example.com", "Admin"), "create Admin")

    def submit(kind: str, payload: dict) -> str:
        return _require(gw.submit_request(kind, bu_head["id"], payload), f"submit {kind}")["id"]

    def approve_both(kind: str, rid: str) -> None:
        _require(gw.approve_request(kind, rid, hr_head["id"], "ok"), "HR approve")
        _require(gw.approve_request(kind, rid, admin["id"], "ok"), "Admin approve")

    # Awaiting HR approval
    submit("new-hire", {"position_title": "Data Engineer", "ctc_offered": "1800000"})

    # Joined: full pipeline
    joined = submit("new-hire", {
        "position_title": "Backend Engineer",
        "candidate_skills": "python, sql, kafka",
        "ctc_offered": "1000000",
    })
    approve_both("new-hire", joined)
    _require(gw.enter_tentative_details("new-hire", joined, bu_head["id"], {
        "tentative_candidate_name": "A. Kumar", "tentative_join_date": "2025-01-01",
    }), "tentative")
    _require(gw.enter_final_details("new-hire", joined, hr_head["id"], {
        "exact_join_date": "2025-02-01", "exact_salary": "1200000", "employee_id": "E1",
    }), "final")
    _require(gw.confirm_join("new-hire", joined, bu_head["id"], {"status": "Joined"}), "confirm join")

    # Replacement waiting for tentative details
    replacement = submit("replacement", {
        "outgoing_employee_name": "R. Das",
        "last_working_date": "2025-03-31",
        "replacement_skills": "['java', 'spring']",
    })
    approve_both("replacement", replacement)

    # Rejected by HR
    rejected = submit("new-hire", {"position_title": "Intern"})
    _require(gw.reject_request("new-hire", rejected, hr_head["id"], "No headcount"), "reject")

    metrics = _require(gw.read_metrics(bu_head["id"]), "read metrics")
    budget = _require(gw.get_team_budget(bu_head["id"]), "read budget")
    print(json.dumps({"metrics": metrics, "budget": budget}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
