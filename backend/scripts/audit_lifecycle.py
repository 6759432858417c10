from __future__ import annotations

import argparse
import sys

from opsdesk.core.db import SessionLocal
from opsdesk.core.errors import DataIntegrityError
from opsdesk.models import Order, ReturnRequest
from opsdesk.services.lifecycle import ORDER_LIFECYCLE, RETURN_LIFECYCLE
from opsdesk.services.record_store import RecordStore


def audit(store: RecordStore) -> list[str]:
    problems = []
    for model, lifecycle in ((Order, ORDER_LIFECYCLE), (ReturnRequest, RETURN_LIFECYCLE)):
        for row in store.query(model, order_by=model.id.asc()):
            try:
                lifecycle.check(row)
            except DataIntegrityError as exc:
                problems.append(exc.message)
    return problems


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check that every order and return agrees with its timestamps.")
    parser.parse_args(argv)

    db = SessionLocal()
    try:
        problems = audit(RecordStore(db))
    finally:
        db.close()

    for line in problems:
        print(line)
    print(f"\n{len(problems)} record(s) with problems")
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
