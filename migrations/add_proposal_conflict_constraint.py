"""
Add the scheduling-conflict exclusion constraint to the proposals table (PostgreSQL)

Two non-finished proposals of the same (service_id, requester_id) pair may not
be scheduled 120 minutes or less apart. Each row is expanded to the closed
range [scheduled_at - 60min, scheduled_at + 60min]; two such ranges overlap
exactly when the scheduled times are at most 120 minutes apart.

The application checks the window itself under a row lock; this constraint
is the database-level backstop. Its name must match CONFLICT_CONSTRAINT in
cleanbook/domain/bookings/service.py.

Run with: python migrations/add_proposal_conflict_constraint.py [--down]
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from cleanbook.database import engine
from cleanbook.domain.bookings.service import CONFLICT_CONSTRAINT


def upgrade():
    """Install btree_gist and the exclusion constraint"""
    if engine.dialect.name != "postgresql":
        print(f"ℹ️  Skipping: exclusion constraints need PostgreSQL (got {engine.dialect.name})")
        return

    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))

        result = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": CONFLICT_CONSTRAINT},
        )
        if result.first():
            print(f"ℹ️  {CONFLICT_CONSTRAINT} already exists")
            return

        conn.execute(text(f"""
            ALTER TABLE proposals
            ADD CONSTRAINT {CONFLICT_CONSTRAINT}
            EXCLUDE USING gist (
                service_id WITH =,
                requester_id WITH =,
                tsrange(
                    scheduled_at - interval '60 minutes',
                    scheduled_at + interval '60 minutes',
                    '[]'
                ) WITH &&
            )
            WHERE (status <> 'finished')
        """))
        conn.commit()
        print(f"✅ Added {CONFLICT_CONSTRAINT}")
        print("\n✅ Migration completed successfully!")


def downgrade():
    """Remove the exclusion constraint"""
    if engine.dialect.name != "postgresql":
        return

    with engine.connect() as conn:
        conn.execute(text(f"ALTER TABLE proposals DROP CONSTRAINT IF EXISTS {CONFLICT_CONSTRAINT}"))
        conn.commit()
        print("✅ Migration rolled back successfully!")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage the proposals conflict constraint migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        print("Rolling back migration...")
        downgrade()
    else:
        print("Running migration...")
        upgrade()
