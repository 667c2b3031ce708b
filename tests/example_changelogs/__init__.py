"""
Two changesets: A applied once, B re-run on every execution.
"""

from changelog_calls import CALLS
from mongrate import changelog, changeset


@changelog(order=1)
class ExampleChangelog:
    @changeset(id="A", author="dev", order=1)
    def a(self):
        CALLS.append("A")

    @changeset(id="B", author="dev", order=2, run_always=True)
    def b(self):
        CALLS.append("B")
