#!/usr/bin/env python3
"""
Create a trajet directly in the configured database (tables are created first if missing).

Usage:
  python scripts/add_trajet.py --from Casablanca --to Rabat --date 2024-06-01T08:00 --mode van \
      [--driver <driver id>] [--attr seats=3 --attr price=120]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make the package importable when run from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trajet_api.db.create_tables import create_all  # noqa: E402
from trajet_api.services.errors import ServiceError  # noqa: E402
from trajet_api.services.trajet_service import TrajetService  # noqa: E402


def parse_attrs(pairs: list[str] | None) -> dict:
    attrs = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise SystemExit(f"Invalid attribute '{pair}' (expected key=value)")
        attrs[key.strip()] = value.strip()
    return attrs


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a trajet")
    ap.add_argument("--from", dest="origin", required=True, help="Pickup point")
    ap.add_argument("--to", dest="destination", required=True, help="Delivery point")
    ap.add_argument("--date", required=True, help="ISO date/time of the trajet (UTC when no offset)")
    ap.add_argument("--mode", required=True, help="Transport mode (ex.: van, truck)")
    ap.add_argument("--driver", help="Owning driver id")
    ap.add_argument("--attr", action="append", help="Extra attribute key=value (repeatable)")
    args = ap.parse_args()

    values = parse_attrs(args.attr)
    values.update(
        {
            "point_ramassage": args.origin,
            "point_livraison": args.destination,
            "date_traject": args.date,
            "mode_transport": args.mode,
        }
    )
    if args.driver:
        values["driver_id"] = args.driver

    create_all()
    try:
        trajet = TrajetService().create(values)
    except ServiceError as exc:
        raise SystemExit(f"Error: {exc.message}") from exc
    print("OK: trajet created")
    print(f"  ID: {trajet.id}")
    print(f"  {trajet.point_ramassage} -> {trajet.point_livraison} ({trajet.mode_transport})")
    print(f"  Date: {trajet.date_traject.isoformat()}")
    if trajet.driver_id:
        print(f"  Driver: {trajet.driver_id}")


if __name__ == "__main__":
    main()
