"""
Changelog discovery.

Imports every module under a scan target and collects changelog classes
(@changelog) and module-level Changelog builders, producing a deterministic
changeset sequence. Discovery never touches the database.
"""

import importlib
import inspect
import pkgutil
from types import ModuleType
from typing import Any

from mongrate.core.changelog import (
    CHANGELOG_ATTR,
    CHANGESET_ATTR,
    Changelog,
    check_unique_ids,
    resolve_invocation_shape,
    sort_changesets,
)
from mongrate.core.types import ChangelogDefinition, ChangesetDefinition, ChangesetDescriptor, order_key
from mongrate.exceptions import DiscoveryError
from mongrate.utils.logging import get_logger

logger = get_logger("mongrate.discovery")


def discover(scan_target: str) -> list[ChangesetDefinition]:
    """
    Discover the ordered changeset sequence under a module path.

    Args:
        scan_target: Dotted module or package path (e.g. "myapp.migrations")

    Returns:
        Changesets in execution order

    Raises:
        DiscoveryError: If a module cannot be imported or a definition is invalid
    """
    changelogs = load_changelogs(scan_target)
    changesets = [cs for cl in changelogs for cs in cl.changesets]

    seen: dict[tuple[str, str], ChangesetDefinition] = {}
    for cs in changesets:
        if cs.key in seen:
            other = seen[cs.key]
            raise DiscoveryError(
                f"Changeset id '{cs.id}' by '{cs.author}' is declared twice: "
                f"{other.changelog}.{other.name} and {cs.changelog}.{cs.name}",
                details={"changeset_id": cs.id, "author": cs.author},
            )
        seen[cs.key] = cs

    logger.debug(f"Discovered {len(changesets)} changeset(s) in {len(changelogs)} changelog(s) under {scan_target}")
    return changesets


def load_changelogs(scan_target: str) -> list[ChangelogDefinition]:
    """
    Collect changelogs under a module path, sorted by (order, name).

    Args:
        scan_target: Dotted module or package path

    Returns:
        Changelog definitions in execution order
    """
    if not scan_target or not scan_target.strip():
        raise DiscoveryError("Changelog scan target is empty")

    changelogs: dict[str, ChangelogDefinition] = {}
    for module in _import_modules(scan_target.strip()):
        for definition in _changelogs_in_module(module):
            if definition.name in changelogs:
                raise DiscoveryError(
                    f"Changelog name '{definition.name}' is declared twice",
                    details={"changelog": definition.name},
                )
            changelogs[definition.name] = definition

    return sorted(changelogs.values(), key=lambda cl: (order_key(cl.order), cl.name))


def _import_modules(scan_target: str) -> list[ModuleType]:
    """Import the target and, for packages, every submodule in name order."""
    root = _import(scan_target)
    modules = [root]

    search_path = getattr(root, "__path__", None)
    if search_path is not None:
        names = sorted(
            info.name
            for info in pkgutil.walk_packages(search_path, prefix=f"{root.__name__}.", onerror=_walk_error)
        )
        modules.extend(_import(name) for name in names)

    return modules


def _import(name: str) -> ModuleType:
    try:
        return importlib.import_module(name)
    except DiscoveryError:
        raise
    except Exception as e:
        raise DiscoveryError(f"Cannot import changelog module '{name}': {e}", details={"module": name}) from e


def _walk_error(name: str) -> None:
    raise DiscoveryError(f"Cannot import changelog package '{name}'", details={"module": name})


def _changelogs_in_module(module: ModuleType) -> list[ChangelogDefinition]:
    found = []
    seen: set[int] = set()
    loose: list[Any] = []
    for _, obj in sorted(vars(module).items()):
        # Aliases bind the same object twice; imports bind objects defined elsewhere
        if id(obj) in seen:
            continue
        if inspect.isclass(obj) and CHANGELOG_ATTR in vars(obj):
            if obj.__module__ == module.__name__:
                seen.add(id(obj))
                found.append(_definition_from_class(obj))
        elif isinstance(obj, Changelog) and obj.module == module.__name__:
            seen.add(id(obj))
            found.append(obj.build())
        elif inspect.isfunction(obj) and hasattr(obj, CHANGESET_ATTR) and obj.__module__ == module.__name__:
            loose.append(obj)

    owned = {id(cs.func) for definition in found for cs in definition.changesets}
    for func in loose:
        if id(func) not in owned:
            descriptor = getattr(func, CHANGESET_ATTR)
            raise DiscoveryError(
                f"Changeset '{descriptor.id}' ({module.__name__}.{func.__name__}) is not part of a changelog. "
                f"Define it inside a @changelog class or register it with Changelog.changeset",
                details={"changeset_id": descriptor.id, "module": module.__name__},
            )
    return found


def _changeset_members(cls: type) -> dict[str, ChangesetDescriptor]:
    """Changeset descriptors declared on ``cls`` or its bases, subclasses overriding."""
    members: dict[str, ChangesetDescriptor] = {}
    for klass in reversed(cls.__mro__):
        for attr_name, member in vars(klass).items():
            # @changeset may sit above or below @classmethod / @staticmethod
            descriptor = getattr(member, CHANGESET_ATTR, None)
            if descriptor is None and isinstance(member, classmethod | staticmethod):
                descriptor = getattr(member.__func__, CHANGESET_ATTR, None)
            if descriptor is not None:
                members[attr_name] = descriptor
            else:
                members.pop(attr_name, None)
    return members


def _definition_from_class(cls: type) -> ChangelogDefinition:
    descriptor = vars(cls)[CHANGELOG_ATTR]
    name = descriptor.name or f"{cls.__module__}.{cls.__qualname__}"

    try:
        instance = cls()
    except Exception as e:
        raise DiscoveryError(
            f"Changelog class {name} cannot be instantiated without arguments: {e}",
            details={"changelog": name},
        ) from e

    changesets = []
    for attr_name, descriptor_cs in sorted(_changeset_members(cls).items()):
        # Instance methods, classmethods and staticmethods all come back callable without self/cls
        bound: Any = getattr(instance, attr_name)
        if not callable(bound):
            raise DiscoveryError(
                f"Changeset '{descriptor_cs.id}' on {name}.{attr_name} is not callable",
                details={"changelog": name, "changeset_id": descriptor_cs.id},
            )
        shape = resolve_invocation_shape(bound, f"{name}.{attr_name}")
        changesets.append(
            ChangesetDefinition(
                id=descriptor_cs.id,
                author=descriptor_cs.author,
                order=descriptor_cs.order,
                run_always=descriptor_cs.run_always,
                func=bound,
                shape=shape,
                changelog=name,
                name=attr_name,
            )
        )

    ordered = sort_changesets(changesets)
    check_unique_ids(name, ordered)
    return ChangelogDefinition(name=name, order=descriptor.order, changesets=ordered)
