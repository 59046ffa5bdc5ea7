"""Batched user-reference enrichment.

Records such as expenses and group memberships carry user ids: on the record
itself (``paidBy``, ``createdBy``) and on the items of a child collection
(each participant's ``userId``). :func:`enrich` collects the distinct ids
across a whole result set, resolves them with a single batched fetch and
attaches the resolved views next to the ids.

Resolution is best-effort. Ids the fetch does not return get the layout's
empty view, and records are never dropped or reordered. A failing fetch is
not caught here; the caller fails the request.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)

FetchBatch = Callable[[List[str]], Mapping[str, Any]]


@dataclass(frozen=True)
class ReferenceField:
    """An id attribute and the attribute its resolved view is written to."""

    id_field: str
    view_field: str


@dataclass(frozen=True)
class ChildReferences:
    collection: str
    fields: Tuple[ReferenceField, ...]


@dataclass(frozen=True)
class ReferenceLayout:
    fields: Tuple[ReferenceField, ...] = ()
    children: Tuple[ChildReferences, ...] = ()
    empty: Optional[Callable[[], Any]] = None

    def slots(self, entity) -> Iterator[Tuple[Any, ReferenceField]]:
        for reference in self.fields:
            yield entity, reference
        for child in self.children:
            for item in getattr(entity, child.collection, None) or ():
                for reference in child.fields:
                    yield item, reference


def _layout_for(entity, layout: Optional[ReferenceLayout]) -> ReferenceLayout:
    if layout is not None:
        return layout
    found = getattr(type(entity), "references", None)
    if not isinstance(found, ReferenceLayout):
        raise TypeError(f"{type(entity).__name__} does not declare user references")
    return found


def collect_ids(entities: Iterable[Any], layout: Optional[ReferenceLayout] = None) -> Set[str]:
    ids = set()
    for entity in entities:
        for target, reference in _layout_for(entity, layout).slots(entity):
            value = getattr(target, reference.id_field, None)
            if value:
                ids.add(value)
    return ids


def enrich(
    entities: Sequence[Any],
    fetch_batch: FetchBatch,
    layout: Optional[ReferenceLayout] = None,
) -> Dict[str, Any]:
    """Attach resolved user views to ``entities`` in place.

    ``fetch_batch`` receives the sorted distinct ids and returns a mapping of
    id -> view; missing ids are allowed. It is called at most once, and not at
    all when no entity references a user. Returns the resolved mapping.
    """
    ids = collect_ids(entities, layout)
    if not ids:
        return {}

    resolved = dict(fetch_batch(sorted(ids)))

    for entity in entities:
        entity_layout = _layout_for(entity, layout)
        for target, reference in entity_layout.slots(entity):
            user_id = getattr(target, reference.id_field, None)
            if user_id in resolved:
                setattr(target, reference.view_field, resolved[user_id])
            elif entity_layout.empty is not None:
                setattr(target, reference.view_field, entity_layout.empty())

    logger.info(
        json.dumps(
            {
                "event": "UsersEnriched",
                "entities": len(entities),
                "requested": len(ids),
                "resolved": len(ids & resolved.keys()),
            }
        )
    )
    return resolved
