"""
A decorated function that no changelog owns.
"""

from mongrate import Changelog, changeset

registered = Changelog("registered")


@registered.changeset(id="kept", author="dev", order=1)
def kept():
    pass


@changeset(id="forgotten", author="dev", order=2)
def forgotten():
    pass
