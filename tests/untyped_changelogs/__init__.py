from mongrate import changelog, changeset


@changelog(order=1)
class UntypedChangelog:
    @changeset(id="untyped", author="dev", order=1)
    def untyped(self, db):
        pass
