from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .schema import (
    ENVIRONMENT_TAG,
    NAME_TAG,
    PROJECT_TAG,
    Details,
    RawInstance,
    RawReservation,
    TagProjection,
)

# Tag key -> TagProjection slot
_TAG_SLOTS: Dict[str, str] = {
    NAME_TAG: "name",
    PROJECT_TAG: "project",
    ENVIRONMENT_TAG: "environment",
}


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def project_tags(tags: Optional[Iterable[Mapping[str, Any]]]) -> TagProjection:
    """
    Reduce a raw tag list ([{"Key": ..., "Value": ...}, ...]) to the Name/Project/Environment slots.
    Keys must match exactly; unknown or missing keys are skipped. When a key repeats,
    the last occurrence in list order wins.
    """
    slots: Dict[str, Optional[str]] = {}
    for tag in tags or []:
        slot = _TAG_SLOTS.get(tag.get("Key"))  # type: ignore[arg-type]
        if slot is None:
            continue
        slots[slot] = tag.get("Value")
    return TagProjection(**slots)


def normalize_instance(instance: RawInstance, region: str) -> Details:
    """
    Build a Details record from a raw describe_instances instance dict.
    Every instance yields a record; absent fields stay None.
    """
    tags = project_tags(instance.get("Tags"))
    state = instance.get("State")
    return Details(
        region=region,
        instance_id=instance.get("InstanceId"),
        instance_type=instance.get("InstanceType"),
        key_name=instance.get("KeyName"),
        launch_time=_as_text(instance.get("LaunchTime")),
        state=state.get("Name") if state is not None else None,
        source_dest_check=instance.get("SourceDestCheck"),
        name=tags.name,
        project=tags.project,
        environment=tags.environment,
    )


def flatten_reservations(
    reservations: Optional[Iterable[RawReservation]],
    region: str,
) -> Optional[List[Details]]:
    """
    Flatten a page of reservations into Details in reservation/instance order.

    Returns None only when the reservation list itself is absent. A present list
    always yields a list, empty when no reservation carries instances.
    """
    if reservations is None:
        return None
    out: List[Details] = []
    for reservation in reservations:
        for instance in reservation.get("Instances") or []:
            out.append(normalize_instance(instance, region))
    return out


def stable_json_dumps(obj: Any) -> str:
    """
    Dump JSON with sort_keys=True and separators to ensure stable output.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
