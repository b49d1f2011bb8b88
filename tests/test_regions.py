from __future__ import annotations

import pytest

from ec2_inventory.aws.regions import ALL_REGIONS, REGION_CATALOG, is_valid_selector, resolve_regions
from ec2_inventory.util.errors import ConfigError


def test_catalog_order_and_size() -> None:
    assert len(REGION_CATALOG) == 23
    assert len(set(REGION_CATALOG)) == 23
    assert REGION_CATALOG[0] == "ap-east-1"
    assert REGION_CATALOG[-1] == "af-south-1"
    assert REGION_CATALOG.index("eu-north-1") < REGION_CATALOG.index("eu-south-1")


def test_resolve_all_returns_catalog_copy() -> None:
    regions = resolve_regions(ALL_REGIONS)
    assert regions == list(REGION_CATALOG)
    regions.append("x")
    assert resolve_regions(ALL_REGIONS) == list(REGION_CATALOG)


def test_resolve_single_region() -> None:
    assert resolve_regions("cn-north-1") == ["cn-north-1"]


@pytest.mark.parametrize("selector", ["mars-1", "ALL", "us-east-1 ", "us-gov-west-1"])
def test_resolve_rejects_unknown_selectors(selector) -> None:
    assert not is_valid_selector(selector)
    with pytest.raises(ConfigError) as excinfo:
        resolve_regions(selector)
    for region in REGION_CATALOG:
        assert region in str(excinfo.value)


@pytest.mark.parametrize("selector", [None, ""])
def test_resolve_requires_a_selector(selector) -> None:
    with pytest.raises(ConfigError, match="no region was provided"):
        resolve_regions(selector)
