from pymongo.database import Database

from mongrate import changelog, changeset


@changelog(order=1)
class BadSignatureChangelog:
    @changeset(id="two-args", author="dev", order=1)
    def two_args(self, db: Database, extra: int):
        pass
