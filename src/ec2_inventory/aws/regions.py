from __future__ import annotations

from typing import List, Optional, Tuple

from ..util.errors import ConfigError

ALL_REGIONS = "all"

# Order is significant: "all" collects regions in exactly this order.
REGION_CATALOG: Tuple[str, ...] = (
    "ap-east-1",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-northeast-3",
    "ap-south-1",
    "ap-southeast-1",
    "ap-southeast-2",
    "ca-central-1",
    "eu-central-1",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "eu-north-1",
    "eu-south-1",
    "me-south-1",
    "sa-east-1",
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "cn-north-1",
    "cn-northwest-1",
    "af-south-1",
)


def is_valid_selector(selector: Optional[str]) -> bool:
    return selector == ALL_REGIONS or selector in REGION_CATALOG


def resolve_regions(selector: Optional[str]) -> List[str]:
    """
    Expand a region selector into the ordered list of regions to query.
    - 'all' expands to the full catalog in declared order.
    - A catalog region expands to itself.
    Anything else raises ConfigError listing the valid choices.
    """
    if not selector:
        raise ConfigError(
            f"no region was provided; please provide a valid region or '{ALL_REGIONS}' "
            "to get an output from every available region"
        )
    if not is_valid_selector(selector):
        choices = ",\n".join(REGION_CATALOG + (ALL_REGIONS,))
        raise ConfigError(f"The supplied region '{selector}' does not match any of the available options:\n{choices}")
    if selector == ALL_REGIONS:
        return list(REGION_CATALOG)
    return [selector]
