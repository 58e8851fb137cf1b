"""
Pure helpers for picking objects of a given kind out of a mixed set of
manifests
"""

# Standard
from typing import Callable, Iterable, List, Tuple

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("FLTER")

# Type definition for the signature of an object predicate
OBJECT_PREDICATE = Callable[[dict], bool]  # pylint: disable=invalid-name


def split_api_version(api_version: str) -> Tuple[str, str]:
    """Split an apiVersion into (group, version). Core kinds (e.g. "v1") have
    an empty group.
    """
    if not api_version:
        return "", ""
    group, _, version = api_version.rpartition("/")
    return group, version


def filter_objects(objects: Iterable[dict], predicate: OBJECT_PREDICATE) -> List[dict]:
    """Return the objects that match the predicate, preserving their order.
    The input objects are not copied or modified.
    """
    return [obj for obj in objects if predicate(obj)]


def match_gvk(group: str, version: str, kind: str) -> OBJECT_PREDICATE:
    """Build a predicate that matches objects of exactly the given
    group/version/kind
    """

    def _matches(obj: dict) -> bool:
        return obj.get("kind") == kind and split_api_version(
            obj.get("apiVersion")
        ) == (group, version)

    return _matches


def classify_by_kind(
    objects: Iterable[dict],
    group: str,
    version: str,
    kind: str,
) -> List[dict]:
    """Select the objects of the given group/version/kind"""
    matches = filter_objects(objects, match_gvk(group, version, kind))
    log.debug3("Found %d %s/%s/%s objects", len(matches), group, version, kind)
    return matches


def filter_subscriptions(objects: Iterable[dict]) -> List[dict]:
    """Select the OLM Subscriptions out of a set of manifests"""
    return classify_by_kind(
        objects,
        constants.OLM_GROUP,
        constants.OLM_VERSION,
        constants.SUBSCRIPTION_KIND,
    )


def filter_cluster_service_versions(objects: Iterable[dict]) -> List[dict]:
    """Select the OLM ClusterServiceVersions out of a set of manifests"""
    return classify_by_kind(
        objects,
        constants.OLM_GROUP,
        constants.OLM_VERSION,
        constants.CLUSTER_SERVICE_VERSION_KIND,
    )
