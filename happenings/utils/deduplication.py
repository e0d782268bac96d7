import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping

logger = logging.getLogger(__name__)

# Deduplication configuration constants
IGNORE_CASE = True  # Whether to ignore case in title comparisons
NORMALIZE_WHITESPACE = True  # Whether to collapse whitespace in titles


def normalize_string(text: str) -> str:
    """Normalize string based on configuration constants"""
    if not text:
        return ""
    if IGNORE_CASE:
        text = text.lower()
    if NORMALIZE_WHITESPACE:
        text = ' '.join(text.split())
    return text


# Points a record earns for each field that makes it the more complete listing
COMPLETENESS_WEIGHTS: Dict[str, Callable[[Mapping[str, Any]], int]] = {
    'recurrence_rule': lambda e: 2 if e.get('recurrence_rule') else 0,
    'start_time': lambda e: 1 if e.get('start_time') else 0,
}


def completeness_score(event: Mapping[str, Any]) -> int:
    """Score how complete an event record is"""
    return sum(weight(event) for weight in COMPLETENESS_WEIGHTS.values())


def dedupe_events_by_title(events: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """
    Collapse events that share a normalized title into one record.

    The record with the highest completeness score survives; on a tie the
    first one encountered is kept. Survivors keep the position of the first
    record with their title, so input order is preserved.
    Events without a title are never merged with each other.
    """
    kept: List[Mapping[str, Any]] = []
    index_by_title: Dict[str, int] = {}
    removed = 0

    for event in events:
        title = normalize_string(event.get('title') or '')
        if not title:
            kept.append(event)
            continue

        if title not in index_by_title:
            index_by_title[title] = len(kept)
            kept.append(event)
            continue

        removed += 1
        position = index_by_title[title]
        if completeness_score(event) > completeness_score(kept[position]):
            logger.debug(f"Replacing duplicate event {kept[position].get('id')} with {event.get('id')} for title '{title}'")
            kept[position] = event

    if removed:
        logger.info(f"Removed {removed} duplicate events by title")
    return kept
