"""
Changelog and changeset registration.

Two ways to declare migrations:

    @changelog(order="001")
    class UserChangelog:
        @changeset(id="add-email-index", author="ops", order="001")
        def add_email_index(self, db: Database):
            db.users.create_index("email", unique=True)

    products = Changelog("products", order="002")

    @products.changeset(id="backfill-sku", author="ops", order=1)
    def backfill_sku(helper: QueryHelper):
        helper.update("products", {"sku": None}, {"$set": {"sku": ""}}, many=True)

Signatures are checked against the supported invocation shapes when a
changeset is registered with a Changelog builder, and when discovery binds a
decorated method.
"""

from __future__ import annotations

import inspect
import sys
import typing
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pymongo.database import Database

from mongrate.core.helper import QueryHelper
from mongrate.core.types import (
    ChangelogDefinition,
    ChangelogDescriptor,
    ChangesetDefinition,
    ChangesetDescriptor,
    InvocationShape,
    OrderValue,
    order_key,
)
from mongrate.exceptions import DiscoveryError

CHANGELOG_ATTR = "__mongrate_changelog__"
CHANGESET_ATTR = "__mongrate_changeset__"

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


def changelog(order: OrderValue = "", name: str | None = None) -> Callable[[type[T]], type[T]]:
    """Mark a class as a changelog. The class needs a no-argument constructor."""
    descriptor = ChangelogDescriptor(order=order, name=name)
    order_key(order)

    def decorator(cls: type[T]) -> type[T]:
        if not inspect.isclass(cls):
            raise DiscoveryError(f"@changelog can only decorate classes, got {cls!r}")
        setattr(cls, CHANGELOG_ATTR, descriptor)
        return cls

    return decorator


def changeset(id: str, author: str, order: OrderValue, run_always: bool = False) -> Callable[[F], F]:
    """Attach changeset metadata to a changelog method."""
    descriptor = _make_descriptor(id, author, order, run_always)

    def decorator(func: F) -> F:
        setattr(func, CHANGESET_ATTR, descriptor)
        return func

    return decorator


def _make_descriptor(id: str, author: str, order: OrderValue, run_always: bool) -> ChangesetDescriptor:
    try:
        return ChangesetDescriptor(id=id, author=author, order=order, run_always=bool(run_always))
    except (TypeError, ValueError) as e:
        raise DiscoveryError(f"Invalid changeset declaration (id={id!r}, author={author!r}): {e}") from e


def resolve_invocation_shape(func: Callable[..., Any], label: str | None = None) -> InvocationShape:
    """
    Work out how a changeset must be called.

    Bound methods are inspected without ``self``. A single parameter must be
    annotated with pymongo's Database or with QueryHelper.

    Raises:
        DiscoveryError: For any other signature
    """
    label = label or getattr(func, "__qualname__", repr(func))
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise DiscoveryError(f"Cannot inspect changeset {label}: {e}") from e

    params = list(signature.parameters.values())
    if not params:
        return InvocationShape.NO_ARGS

    if len(params) == 1 and params[0].kind in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        annotation = _resolve_annotation(func, params[0], label)
        if _is_type(annotation, QueryHelper):
            return InvocationShape.HELPER
        if _is_type(annotation, Database):
            return InvocationShape.DATABASE

    raise DiscoveryError(
        f"Changeset method {label} has wrong arguments list. "
        f"Expected no arguments, or one argument annotated as Database or QueryHelper",
        details={"changeset": label, "signature": str(signature)},
    )


def _resolve_annotation(func: Callable[..., Any], param: inspect.Parameter, label: str) -> Any:
    annotation = param.annotation
    if annotation is inspect.Parameter.empty:
        return None
    if not isinstance(annotation, str):
        return annotation

    # Postponed annotations (from __future__ import annotations)
    target = inspect.unwrap(getattr(func, "__func__", func))
    try:
        hints = typing.get_type_hints(target)
    except Exception as e:
        raise DiscoveryError(f"Cannot resolve annotation {annotation!r} of changeset {label}: {e}") from e
    return hints.get(param.name)


def _is_type(annotation: Any, expected: type) -> bool:
    candidate = typing.get_origin(annotation) or annotation
    return inspect.isclass(candidate) and issubclass(candidate, expected)


def sort_changesets(changesets: Iterable[ChangesetDefinition]) -> tuple[ChangesetDefinition, ...]:
    """Declared order first, callable name as tie-break."""
    return tuple(sorted(changesets, key=lambda cs: (order_key(cs.order), cs.name)))


def check_unique_ids(changelog_name: str, changesets: Iterable[ChangesetDefinition]) -> None:
    seen: set[str] = set()
    for cs in changesets:
        if cs.id in seen:
            raise DiscoveryError(
                f"Duplicate changeset id '{cs.id}' in changelog {changelog_name}",
                details={"changelog": changelog_name, "changeset_id": cs.id},
            )
        seen.add(cs.id)


class Changelog:
    """Explicit changelog builder for plain functions."""

    def __init__(self, name: str, order: OrderValue = "", module: str | None = None):
        if not name:
            raise DiscoveryError("Changelog name must be non-empty")
        order_key(order)
        self.name = name
        self.order = order
        # Defining module; discovery ignores re-exports elsewhere
        self.module = module or sys._getframe(1).f_globals.get("__name__", "__main__")
        self._changesets: list[ChangesetDefinition] = []

    def changeset(self, id: str, author: str, order: OrderValue, run_always: bool = False) -> Callable[[F], F]:
        """Decorator form of add()."""

        def decorator(func: F) -> F:
            self.add(func, id=id, author=author, order=order, run_always=run_always)
            return func

        return decorator

    def add(
        self,
        func: Callable[..., Any],
        *,
        id: str,
        author: str,
        order: OrderValue,
        run_always: bool = False,
    ) -> Changelog:
        descriptor = _make_descriptor(id, author, order, run_always)
        label = f"{self.name}.{getattr(func, '__name__', repr(func))}"
        shape = resolve_invocation_shape(func, label)
        self._changesets.append(
            ChangesetDefinition(
                id=descriptor.id,
                author=descriptor.author,
                order=descriptor.order,
                run_always=descriptor.run_always,
                func=func,
                shape=shape,
                changelog=self.name,
                name=getattr(func, "__name__", repr(func)),
            )
        )
        return self

    def build(self) -> ChangelogDefinition:
        changesets = sort_changesets(self._changesets)
        check_unique_ids(self.name, changesets)
        return ChangelogDefinition(name=self.name, order=self.order, changesets=changesets)

    def __len__(self) -> int:
        return len(self._changesets)

    def __repr__(self) -> str:
        return f"Changelog(name={self.name!r}, order={self.order!r}, changesets={len(self._changesets)})"
