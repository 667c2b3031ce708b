"""
A changeset that fails with a recoverable error, followed by a healthy one.
"""

from pymongo.database import Database

from changelog_calls import CALLS
from mongrate import ChangesetExecutionError, QueryHelper, changelog, changeset


@changelog(order=1)
class FailingChangelog:
    @changeset(id="broken", author="dev", order=1)
    def broken(self):
        CALLS.append("broken")
        raise ChangesetExecutionError("cannot convert price field")

    @changeset(id="duplicate-insert", author="dev", order=2)
    def duplicate_insert(self, helper: QueryHelper):
        CALLS.append("duplicate-insert")
        helper.insert("things", {"_id": 1})
        helper.insert("things", {"_id": 1})

    @changeset(id="after-broken", author="dev", order=3)
    def after_broken(self, db: Database):
        CALLS.append("after-broken")
        db.others.insert_one({"ok": True})
