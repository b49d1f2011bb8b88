from __future__ import annotations

import os
import threading
from typing import Any, Callable, Dict, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import NoCredentialsError, ProfileNotFound

from ..logging import get_logger
from ..normalize.schema import PageRequest, PageResult
from ..util.errors import AuthResolutionError, map_aws_error

LOG = get_logger(__name__)

# Standard retry config with exponential backoff (transport-level only)
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "standard",
    },
    connect_timeout=5,
    read_timeout=10,
)

PageFetcher = Callable[[PageRequest], PageResult]
FetcherFactory = Callable[[str], PageFetcher]

_CLIENT_CACHE: Dict[Tuple[int, str], Any] = {}
_CLIENT_CACHE_LOCK = threading.Lock()


def make_session(profile: Optional[str] = None) -> boto3.Session:
    """
    Create a boto3 Session, optionally bound to a named profile.
    Credentials are resolved lazily by botocore; only an unknown profile fails here.
    """
    try:
        return boto3.Session(profile_name=profile) if profile else boto3.Session()
    except ProfileNotFound as e:
        raise AuthResolutionError(f"AWS profile not found: {profile}") from e


def clear_client_cache() -> None:
    with _CLIENT_CACHE_LOCK:
        _CLIENT_CACHE.clear()


def get_ec2_client(session: boto3.Session, region: str) -> Any:
    """
    Return an EC2 client for the region, reusing one per (session, region)
    unless EC2_INV_DISABLE_CLIENT_CACHE is set.
    """
    if os.getenv("EC2_INV_DISABLE_CLIENT_CACHE"):
        return session.client("ec2", region_name=region, config=RETRY_CONFIG)
    key = (id(session), region)
    with _CLIENT_CACHE_LOCK:
        client = _CLIENT_CACHE.get(key)
        if client is None:
            client = session.client("ec2", region_name=region, config=RETRY_CONFIG)
            _CLIENT_CACHE[key] = client
        return client


class InstancePageFetcher:
    """
    Fetch one describe_instances page for a single region.

    Only MaxResults and NextToken are ever sent; DryRun, Filters and
    InstanceIds are left unset.
    """

    def __init__(self, client: Any, region: str) -> None:
        self._client = client
        self.region = region

    def __call__(self, request: PageRequest) -> PageResult:
        kwargs: Dict[str, Any] = {}
        if request.max_results is not None:
            kwargs["MaxResults"] = request.max_results
        if request.next_token is not None:
            kwargs["NextToken"] = request.next_token
        try:
            resp = self._client.describe_instances(**kwargs)
        except NoCredentialsError as e:
            raise AuthResolutionError(f"No AWS credentials available for {self.region}") from e
        except Exception as e:
            mapped = map_aws_error(e, f"AWS SDK error while describing instances in {self.region}")
            if mapped:
                raise mapped from e
            raise
        return PageResult(
            reservations=resp.get("Reservations"),
            next_token=resp.get("NextToken"),
        )


def fetcher_factory(session: boto3.Session) -> FetcherFactory:
    """
    Return a callable building one InstancePageFetcher per region.
    """

    def _for_region(region: str) -> PageFetcher:
        LOG.debug("Creating EC2 client", extra={"region": region})
        return InstancePageFetcher(get_ec2_client(session, region), region)

    return _for_region
