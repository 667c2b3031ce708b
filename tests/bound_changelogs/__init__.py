"""
Changesets declared as classmethods and staticmethods, in both decorator orders.
"""

from pymongo.database import Database

from changelog_calls import CALLS
from mongrate import QueryHelper, changelog, changeset


@changelog(order=1)
class BoundChangelog:
    @classmethod
    @changeset(id="class-level", author="dev", order=1)
    def class_level(cls, db: Database):
        CALLS.append(f"class-level:{cls.__name__}")

    @changeset(id="static-level", author="dev", order=2)
    @staticmethod
    def static_level(helper: QueryHelper):
        CALLS.append("static-level")

    @changeset(id="plain", author="dev", order=3)
    def plain(self):
        CALLS.append("plain")
