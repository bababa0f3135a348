"""
Wipe the NPS store: every history entry, stored evaluation, upload log row
and backup snapshot.

No backup is taken first. Use ``DELETE /history`` for a recoverable clear.
"""

from __future__ import annotations

import argparse
import json

from sqlalchemy import delete

from app.config import get_backup_settings
from app.repositories.backup_storage import LocalBackupStorage
from db.models import EvaluationRecord, NPSHistoryEntry, UploadRecord
from db.session import SessionLocal


def _confirm() -> bool:
    answer = input("This permanently deletes all NPS data and backups. Type 'yes' to continue: ")
    return answer.strip().lower() == "yes"


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete all NPS rows and backup snapshots.")
    parser.add_argument(
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Skip the interactive confirmation prompt.",
    )
    args = parser.parse_args()

    if not args.assume_yes and not _confirm():
        print("Aborted.")
        return 1

    with SessionLocal() as db:
        with db.begin():
            evaluations = db.execute(delete(EvaluationRecord)).rowcount
            history = db.execute(delete(NPSHistoryEntry)).rowcount
            uploads = db.execute(delete(UploadRecord)).rowcount

    settings = get_backup_settings()
    removed = LocalBackupStorage(settings.backup_dir, retention=settings.retention).delete_all()

    payload = {
        "evaluations_deleted": evaluations,
        "history_entries_deleted": history,
        "uploads_deleted": uploads,
        "backups_deleted": [path.name for path in removed],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
