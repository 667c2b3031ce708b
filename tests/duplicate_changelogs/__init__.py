from mongrate import Changelog

first = Changelog("first", order=1)
second = Changelog("second", order=2)


@first.changeset(id="same", author="dev", order=1)
def one():
    pass


@second.changeset(id="same", author="dev", order=1)
def two():
    pass
