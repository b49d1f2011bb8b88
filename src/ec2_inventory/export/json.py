from __future__ import annotations

from pathlib import Path
from typing import IO, Iterable

from ..logging import get_logger
from ..normalize.schema import Details
from ..normalize.transform import stable_json_dumps
from ..util.errors import ExportError

LOG = get_logger(__name__)


def open_output(path: Path) -> IO[str]:
    """
    Create (or truncate) the output file. Raises ExportError if it cannot be created.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return path.open("w", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"couldn't create {path}: {e}") from e


def serialize_details(details: Iterable[Details]) -> str:
    """
    Render records as a single JSON array with sorted keys.
    Falls back to an empty payload if serialization fails.
    """
    # TODO: surface serialization failures as ExportError instead of writing an empty file.
    try:
        return stable_json_dumps([d.to_dict() for d in details])
    except (TypeError, ValueError) as e:
        LOG.warning("Failed to serialize instance results; writing empty payload", extra={"error": str(e)})
        return ""


def write_instance_results(details: Iterable[Details], fh: IO[str], path: Path) -> int:
    """
    Write the serialized records to an already opened output file.
    Returns the number of characters written.
    """
    payload = serialize_details(details)
    try:
        written = fh.write(payload)
        fh.flush()
    except OSError as e:
        raise ExportError(f"couldn't write to {path}: {e}") from e
    return written
