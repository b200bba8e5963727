"""
db/seed.py

Purpose of this file:
1) create the tables (init_db)
2) load the reference data (locations + demo hospital accounts) from seed_data/

How to run:
python -m db.seed
"""

from db.auth import AuthService
from db.client import BackendClient
from db.relational import DATABASE_URL, get_engine, init_db


def seed() -> dict:
    from tools.bootstrap_seed import bootstrap_if_empty  # local import: tools depends on navigator

    engine = get_engine()
    init_db(engine)
    report = bootstrap_if_empty(BackendClient(engine), AuthService(engine))

    if report.get("skipped"):
        print(f"✅ {DATABASE_URL} already has data. Skipping seed.")
    else:
        print(
            f"✅ Seed completed: {report['imported_locations']} locations, "
            f"{report['imported_hospitals']} hospitals."
        )
    return report


if __name__ == "__main__":
    seed()
