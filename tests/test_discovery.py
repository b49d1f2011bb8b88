from __future__ import annotations

from typing import List, Sequence, Union

import pytest

from ec2_inventory.aws.discovery import collect_instances, collect_region, iter_instance_pages
from ec2_inventory.aws.regions import REGION_CATALOG
from ec2_inventory.normalize.schema import Details, PageRequest, PageResult
from ec2_inventory.util.errors import ConfigError


class ScriptedFetcher:
    """Return scripted pages (or raise scripted errors) and record every request."""

    def __init__(self, outcomes: Sequence[Union[PageResult, Exception]]) -> None:
        self._outcomes = list(outcomes)
        self.requests: List[PageRequest] = []

    def __call__(self, request: PageRequest) -> PageResult:
        self.requests.append(request)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _page(*instance_ids: str, token: str | None = None) -> PageResult:
    return PageResult(
        reservations=[{"Instances": [{"InstanceId": i} for i in instance_ids]}],
        next_token=token,
    )


def test_paginator_threads_tokens_and_stops_without_one() -> None:
    fetcher = ScriptedFetcher([_page("i-1", token="t1"), _page("i-2", token="t2"), _page("i-3")])

    pages = list(iter_instance_pages(fetcher, "us-east-1"))

    assert len(pages) == 3
    assert [[d.instance_id for d in p] for p in pages] == [["i-1"], ["i-2"], ["i-3"]]
    assert fetcher.requests == [
        PageRequest(max_results=25, next_token=None),
        PageRequest(max_results=25, next_token="t1"),
        PageRequest(max_results=25, next_token="t2"),
    ]


def test_paginator_uses_configured_page_size() -> None:
    fetcher = ScriptedFetcher([_page("i-1")])

    list(iter_instance_pages(fetcher, "us-east-1", page_size=5))

    assert fetcher.requests == [PageRequest(max_results=5)]


def test_paginator_emits_none_for_page_without_reservations() -> None:
    fetcher = ScriptedFetcher([PageResult(reservations=None, next_token="t1"), PageResult(reservations=[])])

    assert list(iter_instance_pages(fetcher, "us-east-1")) == [None, []]


def test_region_aggregator_truncates_on_fetch_failure() -> None:
    fetcher = ScriptedFetcher([_page("i-1", "i-2", token="t1"), RuntimeError("throttled"), _page("i-9")])

    details = collect_region("eu-west-1", fetcher)

    assert [d.instance_id for d in details] == ["i-1", "i-2"]
    assert len(fetcher.requests) == 2


def test_region_aggregator_first_page_failure_returns_empty() -> None:
    fetcher = ScriptedFetcher([RuntimeError("denied")])

    assert collect_region("eu-west-1", fetcher) == []


def test_region_aggregator_skips_absent_pages() -> None:
    fetcher = ScriptedFetcher([_page("i-1", token="t1"), PageResult(reservations=None, next_token="t2"), _page("i-2")])

    details = collect_region("sa-east-1", fetcher)

    assert [d.instance_id for d in details] == ["i-1", "i-2"]


def test_single_region_end_to_end() -> None:
    fetcher = ScriptedFetcher(
        [PageResult(reservations=[{"Instances": [{"InstanceId": "i-1", "Tags": [{"Key": "Name", "Value": "svc"}]}]}])]
    )
    created = []

    def make_fetcher(region):
        created.append(region)
        return fetcher

    details = collect_instances("us-west-2", make_fetcher)

    assert created == ["us-west-2"]
    assert details == [Details(region="us-west-2", instance_id="i-1", name="svc")]
    assert details[0].to_dict() == {
        "environment": None,
        "instance_id": "i-1",
        "instance_type": None,
        "key_name": None,
        "launch_time": None,
        "name": "svc",
        "project": None,
        "region": "us-west-2",
        "source_dest_check": None,
        "state": None,
    }


def test_region_is_stamped_from_request_not_payload() -> None:
    fetcher = ScriptedFetcher(
        [PageResult(reservations=[{"Instances": [{"InstanceId": "i-1", "Placement": {"AvailabilityZone": "eu-west-1a"}}]}])]
    )

    details = collect_instances("ca-central-1", lambda _region: fetcher)

    assert [d.region for d in details] == ["ca-central-1"]


def _per_region_fetcher(region: str) -> ScriptedFetcher:
    if region == "eu-west-2":
        return ScriptedFetcher([RuntimeError("region disabled")])
    return ScriptedFetcher([_page(f"{region}-a", token="t1"), _page(f"{region}-b")])


@pytest.mark.parametrize("workers", [1, 4])
def test_all_regions_concatenates_in_catalog_order(workers) -> None:
    done = []

    details = collect_instances(
        "all",
        _per_region_fetcher,
        max_workers=workers,
        on_region_done=lambda region, count: done.append((region, count)),
    )

    expected = []
    for region in REGION_CATALOG:
        expected.extend(collect_region(region, _per_region_fetcher(region)))
    assert details == expected
    assert [d.region for d in details][:2] == ["ap-east-1", "ap-east-1"]
    assert not any(d.region == "eu-west-2" for d in details)
    assert sorted(done) == sorted((r, 0 if r == "eu-west-2" else 2) for r in REGION_CATALOG)


def test_invalid_selector_fails_before_any_fetcher_is_created() -> None:
    created = []

    with pytest.raises(ConfigError) as excinfo:
        collect_instances("mars-1", lambda region: created.append(region))

    assert created == []
    assert "us-east-1" in str(excinfo.value)
    assert "all" in str(excinfo.value)


def test_malformed_payload_is_not_treated_as_fetch_failure() -> None:
    fetcher = ScriptedFetcher(
        [PageResult(reservations=[{"Instances": [{"InstanceId": "i-1", "Tags": ["Name=svc"]}]}], next_token="t1")]
    )

    with pytest.raises(AttributeError):
        collect_region("us-east-1", fetcher)

    assert len(fetcher.requests) == 1
