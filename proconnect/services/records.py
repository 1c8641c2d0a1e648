"""
Boundary parsing for rows coming back from the backend.

Rows are validated into typed records as soon as they arrive so a missing
or malformed column fails here instead of deep inside a store.
"""
import logging
from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from proconnect.errors import RecordParseError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_record(model: Type[RecordT], row: Any) -> RecordT:
    """Validate a single row into `model`, raising RecordParseError on mismatch."""
    try:
        return model.model_validate(row)
    except ValidationError as e:
        logger.error(f"Malformed {model.__name__} record from backend: {e}")
        raise RecordParseError(
            f"Received an invalid {model.__name__.lower()} record from the server"
        ) from e


def parse_records(model: Type[RecordT], rows: Iterable[Any]) -> List[RecordT]:
    """Validate every row, dropping later duplicates of an id already seen."""
    records: List[RecordT] = []
    seen = set()
    for row in rows:
        record = parse_record(model, row)
        record_id = getattr(record, "id", None)
        if record_id is not None:
            if record_id in seen:
                logger.warning(f"Duplicate {model.__name__} id {record_id} in backend response, skipping")
                continue
            seen.add(record_id)
        records.append(record)
    return records


def validation_message(exc: ValidationError) -> str:
    """First validation problem of a locally built payload, phrased for an alert."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    message = first.get("msg", "Invalid input")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {message}" if field else message
