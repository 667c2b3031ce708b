"""
A changeset raising an unexpected error, which aborts the run.
"""

from changelog_calls import CALLS
from mongrate import changelog, changeset


@changelog(order=1)
class ExplodingChangelog:
    @changeset(id="explode", author="dev", order=1)
    def explode(self):
        CALLS.append("explode")
        raise RuntimeError("boom")

    @changeset(id="never-reached", author="dev", order=2)
    def never_reached(self):
        CALLS.append("never-reached")
