"""Record predicates shared by the lookup, filter and search operations."""

from typing import Any, Callable, Dict, Iterable, List, Mapping

Record = Dict[str, Any]
Predicate = Callable[[Mapping[str, Any]], bool]


def matches_where(record: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """True if every key of ``where`` is present in ``record`` with an equal value."""
    for key, expected in where.items():
        if key not in record:
            return False
        actual = record[key]
        # 1 == True in Python; JSON keeps booleans and numbers apart
        if isinstance(actual, bool) != isinstance(expected, bool):
            return False
        if actual != expected:
            return False
    return True


def has_field(record: Mapping[str, Any], key: str) -> bool:
    return key in record


def contains_text(record: Mapping[str, Any], field: str, keyword: Any) -> bool:
    """Case-insensitive substring test over the string form of one field."""
    if field not in record:
        return False
    value = record[field]
    if value is None:
        return False
    return str(keyword).lower() in str(value).lower()


def where_predicate(where: Mapping[str, Any]) -> Predicate:
    """Build an equality-filter predicate, rejecting empty filters."""
    if not isinstance(where, Mapping):
        raise ValueError("Filter must be a mapping of field names to values")
    if not where:
        raise ValueError("No conditions passed to the filter")
    return lambda record: matches_where(record, where)


def id_predicate(row_id: int) -> Predicate:
    return where_predicate({'id': row_id})


def filter_records(records: Iterable[Record], predicate: Predicate) -> List[Record]:
    """Records for which ``predicate`` holds, in table order."""
    return [record for record in records if isinstance(record, Mapping) and predicate(record)]


def matching_indices(records: List[Record], predicate: Predicate) -> List[int]:
    """Positions of the records for which ``predicate`` holds."""
    return [
        index for index, record in enumerate(records)
        if isinstance(record, Mapping) and predicate(record)
    ]
