from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

DEFAULT_PAGE_SIZE = 25
DEFAULT_OUTPUT_NAME = "instance_results.json"

# Raw boto3 shapes: describe_instances reservations and instances are plain dicts.
RawReservation = Dict[str, Any]
RawInstance = Dict[str, Any]

# Tag keys projected onto Details, in slot order.
NAME_TAG = "Name"
PROJECT_TAG = "Project"
ENVIRONMENT_TAG = "Environment"

# Field order used for stable JSON output (alphabetical).
DETAILS_FIELDS: List[str] = [
    "environment",
    "instance_id",
    "instance_type",
    "key_name",
    "launch_time",
    "name",
    "project",
    "region",
    "source_dest_check",
    "state",
]


@dataclass(frozen=True)
class TagProjection:
    name: Optional[str] = None
    project: Optional[str] = None
    environment: Optional[str] = None


@dataclass(frozen=True)
class Details:
    """
    Canonical flattened record of one EC2 instance.
    region is stamped by the collector for the region that was queried and is
    never read from the instance payload.
    """

    region: str
    instance_id: Optional[str] = None
    instance_type: Optional[str] = None
    key_name: Optional[str] = None
    launch_time: Optional[str] = None
    state: Optional[str] = None
    source_dest_check: Optional[bool] = None
    name: Optional[str] = None
    project: Optional[str] = None
    environment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {f: getattr(self, f) for f in DETAILS_FIELDS}


@dataclass(frozen=True)
class PageRequest:
    max_results: Optional[int] = DEFAULT_PAGE_SIZE
    next_token: Optional[str] = None

    def with_token(self, token: Optional[str]) -> PageRequest:
        return PageRequest(max_results=self.max_results, next_token=token)


@dataclass(frozen=True)
class PageResult:
    reservations: Optional[List[RawReservation]] = None
    next_token: Optional[str] = None
