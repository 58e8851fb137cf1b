"""
Tests for the InstallRequest and manifest building
"""

# Standard
import dataclasses

# Third Party
import pytest

# Local
from olm_installer import constants
from olm_installer.exceptions import ConfigError
from olm_installer.managed_object import ManagedObject, ObjectKey
from olm_installer.manifest import (
    InstallRequest,
    build_manifest,
    build_subscription,
    csv_reference,
)
from olm_installer.test_helpers.helpers import library_config, make_subscription

## InstallRequest ##############################################################


def test_request_defaults():
    """Make sure unset fields come from the library config"""
    request = InstallRequest(name="etcd-operator", channel="stable")
    assert request.namespace == "operators"
    assert request.source_catalog == "operatorhubio-catalog"
    assert request.source_catalog_namespace == "olm"
    assert request.approval_mode == "Automatic"


def test_request_defaults_follow_config():
    """Make sure a config override changes the defaults of new requests"""
    with library_config(defaults={"namespace": "elsewhere"}):
        assert InstallRequest(name="foo", channel="alpha").namespace == "elsewhere"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "", "channel": "stable"},
        {"name": "foo", "channel": ""},
        {"name": "foo", "channel": "stable", "namespace": ""},
        {"name": "foo", "channel": "stable", "approval_mode": "Sometimes"},
    ],
)
def test_request_invalid(kwargs):
    """Make sure invalid requests are rejected with a ConfigError"""
    with pytest.raises(ConfigError):
        InstallRequest(**kwargs)


def test_request_is_frozen():
    """Make sure a request can't be changed once made"""
    request = InstallRequest(name="foo", channel="stable")
    with pytest.raises(dataclasses.FrozenInstanceError):
        request.channel = "alpha"


def test_request_from_dict_aliases():
    """Make sure the Subscription spec names are accepted and None values fall
    back to the defaults
    """
    request = InstallRequest.from_dict(
        {
            "name": "foo",
            "channel": "stable",
            "namespace": None,
            "source": "my-catalog",
            "sourceNamespace": "catalogs",
            "installPlanApproval": "Manual",
        }
    )
    assert request == InstallRequest(
        name="foo",
        channel="stable",
        source_catalog="my-catalog",
        source_catalog_namespace="catalogs",
        approval_mode="Manual",
    )


def test_subscription_key():
    request = InstallRequest(name="foo", channel="stable", namespace="bar")
    assert request.subscription_key == ObjectKey("bar", "foo")


## build_manifest ##############################################################


def test_build_subscription_content():
    """Make sure the Subscription carries every field of the request"""
    request = InstallRequest(
        name="etcd-operator",
        channel="stable",
        namespace="operators",
        source_catalog="community",
        source_catalog_namespace="catalogs",
        approval_mode="Manual",
    )
    assert build_subscription(request) == {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "Subscription",
        "metadata": {"name": "etcd-operator", "namespace": "operators"},
        "spec": {
            "channel": "stable",
            "name": "etcd-operator",
            "source": "community",
            "sourceNamespace": "catalogs",
            "installPlanApproval": "Manual",
        },
    }


def test_build_manifest_is_pure():
    """Make sure equal requests give equal but independent manifests"""
    request = InstallRequest(name="etcd-operator", channel="stable")
    first = build_manifest(request)
    second = build_manifest(InstallRequest(name="etcd-operator", channel="stable"))
    assert first == second
    first[0]["spec"]["channel"] = "changed"
    assert build_manifest(request)[0]["spec"]["channel"] == "stable"
    assert second[0]["spec"]["channel"] == "stable"


def test_build_manifest_single_subscription():
    manifest = build_manifest(InstallRequest(name="foo", channel="stable"))
    assert [ManagedObject(obj).kind for obj in manifest] == [
        constants.SUBSCRIPTION_KIND
    ]


## csv_reference ###############################################################


def test_csv_reference_current():
    """Make sure the current CSV is used and inherits the namespace"""
    subscription = make_subscription("foo", "bar", current_csv="foo.v1.0.0")
    assert csv_reference(subscription) == ObjectKey("bar", "foo.v1.0.0")


def test_csv_reference_installed_fallback():
    """Make sure the installed CSV is used when the current one is missing"""
    subscription = make_subscription("foo", "bar")
    subscription["status"] = {"installedCSV": "foo.v0.9.0"}
    assert csv_reference(subscription, namespace="bar") == ObjectKey(
        "bar", "foo.v0.9.0"
    )


@pytest.mark.parametrize("status", [None, {}, {"currentCSV": ""}])
def test_csv_reference_unresolved(status):
    subscription = make_subscription("foo", "bar")
    if status is not None:
        subscription["status"] = status
    assert csv_reference(subscription) is None


## ManagedObject ###############################################################


def test_managed_object_identity():
    """Make sure identity ignores content"""
    first = ManagedObject(make_subscription("foo", "bar", channel="stable"))
    second = ManagedObject(make_subscription("foo", "bar", channel="alpha"))
    assert first == second
    assert len({first, second}) == 1
    assert first.key == ObjectKey("bar", "foo")
    assert str(first) == "operators.coreos.com/v1alpha1/Subscription/bar/foo"


def test_managed_object_requires_name():
    with pytest.raises(AssertionError):
        ManagedObject({"apiVersion": "v1", "kind": "Namespace", "metadata": {}})
