"""
Fixture changelogs: a decorated class (001) and a builder module (002).
"""
