"""Pull schema-tagged sub-documents out of an Event's JSON columns."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from hit_loader.errors import InvalidJsonError
from hit_loader.parser import CONTEXTS_FIELD, UNSTRUCT_FIELD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawContext:
    schema: Any
    document: Mapping[str, Any]


def _to_context(entry, evt, source):
    if not isinstance(entry, dict) or not isinstance(entry.get("data"), dict):
        logger.warning(
            "Event %s: skipping %s entry without a data object: %s",
            evt.get("event_id"),
            source,
            json.dumps(entry),
        )
        return None
    return RawContext(schema=entry.get("schema"), document=entry["data"])


def extract_contexts(evt):
    """Return the RawContexts of an event, contexts column first.

    Raises InvalidJsonError when the contexts column is present but is not
    a JSON object with a data array. A bad unstruct_event column is logged
    and skipped so the event itself still loads.
    """
    result = []

    raw_contexts = evt.get(CONTEXTS_FIELD)
    if raw_contexts is not None:
        try:
            payload = json.loads(raw_contexts)
        except (TypeError, ValueError) as exc:
            raise InvalidJsonError(
                f"Event {evt.get('event_id')}: contexts column is not valid JSON: {exc}"
            ) from exc
        if payload is not None:
            entries = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(entries, list):
                raise InvalidJsonError(
                    f"Event {evt.get('event_id')}: contexts column has no data array"
                )
            for entry in entries:
                context = _to_context(entry, evt, CONTEXTS_FIELD)
                if context is not None:
                    result.append(context)

    raw_unstruct = evt.get(UNSTRUCT_FIELD)
    if raw_unstruct is not None:
        try:
            payload = json.loads(raw_unstruct)
        except (TypeError, ValueError):
            logger.warning(
                "Event %s (%s): unstruct_event is not valid JSON, skipping",
                evt.get("event_id"),
                evt.get("event_name"),
            )
            payload = None

        if isinstance(payload, dict) and payload.get("data"):
            context = _to_context(payload["data"], evt, UNSTRUCT_FIELD)
            if context is not None:
                result.append(context)
        elif payload is not None:
            logger.warning(
                "Event %s has this data: %s",
                evt.get("event_name"),
                json.dumps(payload, indent=2),
            )

    return result
