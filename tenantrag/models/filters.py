"""Vector filter algebra: a small, immutable expression language.

A :data:`VectorFilter` is one of four node types::

    FilterPredicate(field, operator, value)   -- leaf comparison
    AndFilter(filters)                        -- all children match
    OrFilter(filters)                         -- any child matches
    NotFilter(filter)                         -- child does not match

Trees are built once per query -- usually through
:class:`VectorFilterBuilder` -- and translated by each vector-store adapter
into its native query language (see ``chromadb_provider.translate_filter``).
:func:`evaluate_filter` is the reference semantics, used by the in-memory
store.

The builder is value-returning: every call produces a new builder, so a
partially built filter can be shared and extended without aliasing bugs::

    base = VectorFilterBuilder().equal("docId", "doc1")
    v1 = base.equal("versionId", "v1").build()
    v2 = base.equal("versionId", "v2").build()   # base is unchanged
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Mapping, Union

from tenantrag.models.metadata import TENANT_ID, MetadataValue, parse_timestamp
from tenantrag.utils.errors import ConfigurationError


class FilterOperator(str, Enum):  # noqa: UP042
    """Comparison operators available to :class:`FilterPredicate`."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"


@dataclass(frozen=True)
class FilterPredicate:
    """Leaf node: ``metadata[field] <operator> value``."""

    field: str
    operator: FilterOperator
    value: MetadataValue


@dataclass(frozen=True)
class AndFilter:
    """All child filters must match."""

    filters: tuple[VectorFilter, ...]


@dataclass(frozen=True)
class OrFilter:
    """At least one child filter must match."""

    filters: tuple[VectorFilter, ...]


@dataclass(frozen=True)
class NotFilter:
    """The child filter must not match."""

    filter: VectorFilter


VectorFilter = Union[FilterPredicate, AndFilter, OrFilter, NotFilter]


def tenant_filter(tenant_id: str) -> FilterPredicate:
    """Return the predicate that scopes a query to *tenant_id*."""
    return FilterPredicate(field=TENANT_ID, operator=FilterOperator.EQ, value=tenant_id)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VectorFilterBuilder:
    """Fluent, immutable builder for :data:`VectorFilter` trees.

    Leaf methods append a predicate; ``and_group`` / ``or_group`` append a
    nested combination.  The terminal methods ``and_``, ``or_``, ``not_``
    and ``build`` combine everything accumulated so far.  A single node is
    returned unwrapped; an empty builder is a usage error.
    """

    nodes: tuple[VectorFilter, ...] = ()

    def _append(self, node: VectorFilter) -> VectorFilterBuilder:
        return VectorFilterBuilder(self.nodes + (node,))

    def _predicate(
        self, field: str, operator: FilterOperator, value: MetadataValue
    ) -> VectorFilterBuilder:
        return self._append(FilterPredicate(field=field, operator=operator, value=value))

    # -- leaves ---------------------------------------------------------

    def equal(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.EQ, value)

    def not_equal(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.NE, value)

    def greater_than(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.GT, value)

    def greater_than_or_equal(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.GTE, value)

    def less_than(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.LT, value)

    def less_than_or_equal(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.LTE, value)

    def contains(self, field: str, value: MetadataValue) -> VectorFilterBuilder:
        return self._predicate(field, FilterOperator.CONTAINS, value)

    def range(self, field: str, low: MetadataValue, high: MetadataValue) -> VectorFilterBuilder:
        """Append ``low <= field <= high`` as two inclusive bound predicates."""
        return self.greater_than_or_equal(field, low).less_than_or_equal(field, high)

    # -- groups ---------------------------------------------------------

    def and_group(
        self, build: Callable[[VectorFilterBuilder], VectorFilterBuilder]
    ) -> VectorFilterBuilder:
        """Append the AND-combination of a nested builder as one node."""
        return self._append(build(VectorFilterBuilder()).and_())

    def or_group(
        self, build: Callable[[VectorFilterBuilder], VectorFilterBuilder]
    ) -> VectorFilterBuilder:
        """Append the OR-combination of a nested builder as one node."""
        return self._append(build(VectorFilterBuilder()).or_())

    # -- terminals ------------------------------------------------------

    def and_(self) -> VectorFilter:
        self._require_nodes("and")
        if len(self.nodes) == 1:
            return self.nodes[0]
        return AndFilter(self.nodes)

    def or_(self) -> VectorFilter:
        self._require_nodes("or")
        if len(self.nodes) == 1:
            return self.nodes[0]
        return OrFilter(self.nodes)

    def not_(self) -> VectorFilter:
        self._require_nodes("not")
        return NotFilter(self.and_())

    def build(self) -> VectorFilter:
        """Equivalent to :meth:`and_`."""
        return self.and_()

    def _require_nodes(self, combinator: str) -> None:
        if not self.nodes:
            raise ConfigurationError(
                message=f"Cannot apply '{combinator}' to an empty filter builder"
            )


# ---------------------------------------------------------------------------
# Reference evaluation
# ---------------------------------------------------------------------------


def evaluate_filter(
    vector_filter: VectorFilter | None, metadata: Mapping[str, MetadataValue] | None
) -> bool:
    """Return ``True`` if *metadata* satisfies *vector_filter*.

    ``None`` filters match everything.  A missing field never satisfies
    ``EQ``, ordering comparisons or ``CONTAINS``, and always satisfies
    ``NE``.
    """
    if vector_filter is None:
        return True
    metadata = metadata or {}

    if isinstance(vector_filter, FilterPredicate):
        return _evaluate_predicate(vector_filter, metadata)
    if isinstance(vector_filter, AndFilter):
        return all(evaluate_filter(f, metadata) for f in vector_filter.filters)
    if isinstance(vector_filter, OrFilter):
        return any(evaluate_filter(f, metadata) for f in vector_filter.filters)
    if isinstance(vector_filter, NotFilter):
        return not evaluate_filter(vector_filter.filter, metadata)
    raise TypeError(f"Unsupported filter node: {type(vector_filter).__name__}")


def _evaluate_predicate(
    predicate: FilterPredicate, metadata: Mapping[str, MetadataValue]
) -> bool:
    present = predicate.field in metadata and metadata[predicate.field] is not None
    actual = metadata.get(predicate.field)
    expected = predicate.value
    op = predicate.operator

    if op is FilterOperator.NE:
        return not present or not _equals(actual, expected)
    if not present:
        return False
    if op is FilterOperator.EQ:
        return _equals(actual, expected)
    if op is FilterOperator.CONTAINS:
        if isinstance(actual, (list, tuple, set)):
            return expected in actual
        return str(expected) in str(actual)

    ordered = _comparable(actual, expected)
    if ordered is None:
        return False
    left, right = ordered
    if op is FilterOperator.GT:
        return left > right
    if op is FilterOperator.GTE:
        return left >= right
    if op is FilterOperator.LT:
        return left < right
    if op is FilterOperator.LTE:
        return left <= right
    raise ValueError(f"Unsupported operator: {op}")


def _equals(actual: object, expected: object) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if isinstance(actual, datetime) or isinstance(expected, datetime):
        pair = _comparable(actual, expected)
        return pair is not None and pair[0] == pair[1]
    return actual == expected


def _comparable(actual: object, expected: object) -> tuple[object, object] | None:
    """Coerce two values into a pair that supports ordering, or ``None``."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return None
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual, expected
    if isinstance(actual, datetime) or isinstance(expected, datetime):
        left = parse_timestamp(actual)  # type: ignore[arg-type]
        right = parse_timestamp(expected)  # type: ignore[arg-type]
        if left is None or right is None:
            return None
        return left, right
    if isinstance(actual, str) and isinstance(expected, str):
        return actual, expected
    return None
