"""Quantity resolution over an item type's groupings.

A grouping is a named bulk unit ("box" = 16 units). Requests either carry a
raw count or a ``(group_name, group_count)`` pair; both resolve to the number
of individual items the request is about. Nothing here touches the database.
"""

from dataclasses import dataclass
from typing import Iterable, Protocol, Union

from app.invtrack.core.error_catalog import AppError, ErrorCatalog


class GroupingLike(Protocol):
    name: str
    units_per_group: int


@dataclass(frozen=True)
class Grouping:
    name: str
    units_per_group: int
    weight_label: str | None = None


@dataclass(frozen=True)
class RawQuantity:
    count: int


@dataclass(frozen=True)
class GroupedQuantity:
    group_name: str
    group_count: int


QuantityRequest = Union[RawQuantity, GroupedQuantity]


def _is_whole_number(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_name(name: str) -> str:
    return name.strip().casefold()


def find_grouping(groupings: Iterable[GroupingLike], name: str) -> GroupingLike | None:
    wanted = _normalize_name(name)
    for grouping in groupings:
        if _normalize_name(grouping.name) == wanted:
            return grouping
    return None


def resolve_quantity(
    groupings: Iterable[GroupingLike],
    request: QuantityRequest,
    *,
    max_quantity: int | None = None,
) -> int:
    if isinstance(request, RawQuantity):
        if not _is_whole_number(request.count) or request.count < 1:
            raise AppError(ErrorCatalog.INVALID_QUANTITY, details={"quantity": request.count})
        resolved = request.count
    else:
        if not _is_whole_number(request.group_count) or request.group_count < 1:
            raise AppError(
                ErrorCatalog.INVALID_QUANTITY,
                details={"group_name": request.group_name, "group_count": request.group_count},
            )
        groupings = list(groupings)
        grouping = find_grouping(groupings, request.group_name)
        if grouping is None:
            raise AppError(
                ErrorCatalog.UNKNOWN_GROUPING,
                details={
                    "group_name": request.group_name,
                    "available": [defined.name for defined in groupings],
                },
            )
        resolved = request.group_count * grouping.units_per_group

    if max_quantity is not None and resolved > max_quantity:
        raise AppError(
            ErrorCatalog.INVALID_QUANTITY,
            details={"quantity": resolved, "max_quantity": max_quantity},
        )
    return resolved


def validate_groupings(groupings: Iterable[Grouping]) -> list[Grouping]:
    """Check a grouping list before it is stored on an item type.

    Names must be non-empty and unique ignoring case, and every grouping must
    stand for at least one unit. Returns the groupings with names stripped,
    in their original order.
    """
    cleaned: list[Grouping] = []
    seen: set[str] = set()
    for grouping in groupings:
        name = (grouping.name or "").strip()
        if not name:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "grouping name must not be empty"},
            )
        if not _is_whole_number(grouping.units_per_group) or grouping.units_per_group < 1:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={
                    "message": "units_per_group must be at least 1",
                    "grouping": name,
                    "units_per_group": grouping.units_per_group,
                },
            )
        key = _normalize_name(name)
        if key in seen:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "duplicate grouping name", "grouping": name},
            )
        seen.add(key)
        cleaned.append(Grouping(name=name, units_per_group=grouping.units_per_group, weight_label=grouping.weight_label))
    return cleaned
