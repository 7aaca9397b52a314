"""Structured list queries: ``where``, ``sort``, ``select``, ``skip``, ``limit``, ``count``.

Clients send the structured parts as JSON-encoded query parameters using
document-store syntax, e.g.::

    GET /api/tasks?where={"completed": false, "assignedUser": {"$in": ["..."]}}
                  &sort={"deadline": 1}&select={"name": 1}&limit=20

``parse_list_query`` turns the raw strings into a :class:`ListQuery`;
``build_filter`` and ``build_sort`` translate it into SQLAlchemy clauses
against a model that declares ``FIELDS`` (wire name -> column attribute)
and ``LIST_FIELDS`` (wire name -> one-to-many relationship whose target
exposes a ``value`` column). Anything that cannot be translated raises
:class:`QueryError`, which the HTTP layer reports as a 400.
"""
import json
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy import and_, or_, not_, true, false, func, select as sa_select, Boolean, DateTime

from taskroster.utils.dates import parse_datetime, to_utc_naive

ID_ALIASES = {"_id": "id"}

BOOL_STRINGS = {"true": True, "false": False, "1": True, "0": False}

SORT_DIRECTIONS = {
    1: 1, -1: -1,
    "asc": 1, "ascending": 1,
    "desc": -1, "descending": -1,
}


class QueryError(ValueError):
    pass


@dataclass
class ListQuery:
    where: dict
    sort: Optional[dict] = None
    select: Optional[dict] = None
    skip: int = 0
    limit: Optional[int] = None
    count: bool = False


def parse_json_param(raw: Optional[str], message: str = "Invalid JSON in query") -> Optional[dict]:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise QueryError(message)
    if not isinstance(value, dict):
        raise QueryError(message)
    return value


def parse_bool(raw) -> bool:
    return str(raw).lower() == "true"


def parse_list_query(model, where=None, sort=None, select=None, skip=None, limit=None,
                     count=None, default_limit=None, default_sort=None) -> ListQuery:
    query = ListQuery(
        where=parse_json_param(where) or {},
        sort=parse_json_param(sort),
        select=parse_json_param(select),
        skip=skip or 0,
        limit=limit if limit is not None else default_limit,
        count=parse_bool(count),
    )
    if query.skip < 0:
        raise QueryError("skip must not be negative")
    if query.limit is not None:
        # a negative limit behaves like its absolute value, 0 means no limit
        query.limit = abs(query.limit) or None
    if not query.sort:
        query.sort = default_sort
    # validate eagerly so a bad expression is a 400 even in count mode
    build_filter(model, query.where)
    if query.sort:
        build_sort(model, query.sort)
    if query.select:
        check_projection(model, query.select)
    return query


def parse_select(model, raw: Optional[str]) -> Optional[dict]:
    select = parse_json_param(raw, "Invalid JSON in select")
    if select:
        check_projection(model, select)
    return select


def _resolve(model, key):
    key = ID_ALIASES.get(key, key)
    if key in model.FIELDS:
        return key, getattr(model, model.FIELDS[key]), False
    if key in model.LIST_FIELDS:
        return key, getattr(model, model.LIST_FIELDS[key]), True
    raise QueryError(f"Unknown field: {key}")


def build_filter(model, where: dict):
    if not isinstance(where, dict):
        raise QueryError("Filter must be an object")
    clauses = [_clause(model, key, value) for key, value in where.items()]
    if not clauses:
        return true()
    return and_(*clauses)


def _clause(model, key, value):
    if key in ("$and", "$or", "$nor"):
        if not isinstance(value, list) or not value:
            raise QueryError(f"{key} expects a non-empty list")
        parts = [build_filter(model, sub) for sub in value]
        if key == "$and":
            return and_(*parts)
        if key == "$or":
            return or_(*parts)
        return not_(or_(*parts))
    if key.startswith("$"):
        raise QueryError(f"Unknown operator: {key}")

    name, attr, is_list = _resolve(model, key)
    if is_list:
        return _list_clause(attr, value)
    if _is_operator_doc(value):
        return and_(*[_column_op(attr, op, arg) for op, arg in value.items()])
    if isinstance(value, (dict, list)):
        raise QueryError(f"Unsupported value for field: {name}")
    return attr == _coerce(attr, value)


def _is_operator_doc(value) -> bool:
    return isinstance(value, dict) and bool(value) and all(k.startswith("$") for k in value)


def _coerce(column, value):
    """Cast a filter value to the column's type the way the document store would.

    Objects and arrays never fit a scalar column; anything that cannot be cast
    is a client error rather than a driver failure.
    """
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise QueryError(f"Unsupported value for field: {column.key}")
    if isinstance(column.type, DateTime):
        return _coerce_datetime(column, value)
    if isinstance(column.type, Boolean):
        return _coerce_bool(column, value)
    return _coerce_text(column, value)


def _coerce_datetime(column, value):
    if isinstance(value, str):
        try:
            return parse_datetime(value)
        except ValueError:
            raise QueryError(f"Invalid date for {column.key}: {value}")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # numbers are epoch milliseconds
        try:
            return to_utc_naive(datetime.fromtimestamp(value / 1000, UTC))
        except (OverflowError, OSError, ValueError):
            raise QueryError(f"Invalid date for {column.key}: {value}")
    raise QueryError(f"Invalid date for {column.key}: {value}")


def _coerce_bool(column, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in BOOL_STRINGS:
        return BOOL_STRINGS[value.lower()]
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise QueryError(f"Invalid boolean for {column.key}: {value}")


def _coerce_text(column, value):
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise QueryError(f"Invalid value for {column.key}: {value}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    raise QueryError(f"Invalid value for {column.key}: {value}")


def _coerce_list(column, op, values):
    if not isinstance(values, list):
        raise QueryError(f"{op} expects a list")
    return [_coerce(column, v) for v in values]


def _column_op(column, op, arg):
    if op == "$eq":
        return column == _coerce(column, arg)
    if op == "$ne":
        return column != _coerce(column, arg)
    if op == "$gt":
        return column > _coerce(column, arg)
    if op == "$gte":
        return column >= _coerce(column, arg)
    if op == "$lt":
        return column < _coerce(column, arg)
    if op == "$lte":
        return column <= _coerce(column, arg)
    if op == "$in":
        return column.in_(_coerce_list(column, op, arg))
    if op == "$nin":
        return column.not_in(_coerce_list(column, op, arg))
    if op == "$exists":
        # every declared column exists on every row
        return true() if arg else false()
    raise QueryError(f"Unknown operator: {op}")


def _member_value(value):
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise QueryError(f"Invalid list member: {value!r}")


def _list_clause(relation, value):
    member = relation.property.mapper.class_
    if isinstance(value, list):
        if value:
            raise QueryError("Only an empty list can be matched exactly")
        return not_(relation.any())
    if not _is_operator_doc(value):
        if isinstance(value, dict):
            raise QueryError("Unsupported list filter")
        return relation.any(member.value == _member_value(value))

    clauses = []
    for op, arg in value.items():
        if op in ("$eq", "$ne"):
            if isinstance(arg, (list, dict)):
                raise QueryError(f"Unsupported list filter: {op}")
            match = relation.any(member.value == _member_value(arg))
            clauses.append(match if op == "$eq" else not_(match))
        elif op in ("$in", "$nin"):
            if not isinstance(arg, list):
                raise QueryError(f"{op} expects a list")
            match = relation.any(member.value.in_([_member_value(v) for v in arg]))
            clauses.append(match if op == "$in" else not_(match))
        elif op == "$all":
            if not isinstance(arg, list):
                raise QueryError("$all expects a list")
            clauses.extend(relation.any(member.value == _member_value(v)) for v in arg)
        elif op == "$size":
            if not isinstance(arg, int) or isinstance(arg, bool) or arg < 0:
                raise QueryError("$size expects a non-negative integer")
            size = (
                sa_select(func.count())
                .select_from(member.__table__)
                .where(relation.property.primaryjoin)
                .scalar_subquery()
            )
            clauses.append(size == arg)
        elif op == "$exists":
            clauses.append(true() if arg else false())
        else:
            raise QueryError(f"Unknown operator: {op}")
    if not clauses:
        return true()
    return and_(*clauses)


def build_sort(model, sort: Optional[dict]) -> list:
    if not sort:
        return []
    order = []
    for key, direction in sort.items():
        name, attr, is_list = _resolve(model, key)
        if is_list:
            raise QueryError(f"Cannot sort on list field: {name}")
        if isinstance(direction, str):
            direction = direction.lower()
        if isinstance(direction, bool) or not isinstance(direction, (int, str)) or direction not in SORT_DIRECTIONS:
            raise QueryError(f"Invalid sort direction for {name}")
        order.append(attr.asc() if SORT_DIRECTIONS[direction] == 1 else attr.desc())
    return order


def check_projection(model, select: dict):
    modes = set()
    for key, flag in select.items():
        name, _, _ = _resolve(model, key)
        if flag not in (0, 1):
            raise QueryError(f"Invalid projection value for {name}")
        if name != "id":
            modes.add(bool(flag))
    if len(modes) > 1:
        raise QueryError("Cannot mix inclusion and exclusion in select")


def project(doc: dict, select: Optional[dict]) -> dict:
    """Apply a checked projection to a serialized record."""
    if not select:
        return doc
    flags = {ID_ALIASES.get(k, k): bool(v) for k, v in select.items()}
    include_id = flags.pop("id", True)
    if not flags:
        # only the id was named: {"id": 1} keeps just the id, {"id": 0} drops it
        if include_id:
            return {"id": doc.get("id")}
        return {k: v for k, v in doc.items() if k != "id"}
    if any(flags.values()):
        out = {k: v for k, v in doc.items() if flags.get(k)}
    else:
        out = {k: v for k, v in doc.items() if k not in flags}
    if include_id and "id" in doc:
        out = {"id": doc["id"], **out}
    else:
        out.pop("id", None)
    return out
