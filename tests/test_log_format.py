"""
Tests for the custom json log format
"""

# Standard
import json
import logging

# Local
from olm_installer.log_format import InstallerJsonFormatter
from olm_installer.test_helpers.helpers import make_subscription

## Helpers #####################################################################


def make_record(**extras):
    record = logging.LogRecord(
        name="INSTL",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Installing %s",
        args=("etcd-operator",),
        exc_info=None,
    )
    for key, val in extras.items():
        setattr(record, key, val)
    return record


## Tests #######################################################################


def test_resource_fields_from_record():
    """Make sure a resource given with the record is identified in the log"""
    formatted = json.loads(
        InstallerJsonFormatter().format(
            make_record(resource=make_subscription("foo", "bar"))
        )
    )
    assert formatted["kind"] == "Subscription"
    assert formatted["apiVersion"] == "operators.coreos.com/v1alpha1"
    assert formatted["resourceName"] == "foo"
    assert formatted["resourceNamespace"] == "bar"
    assert "threadName" in formatted


def test_resource_fields_from_formatter():
    """Make sure the formatter's own resource and operation are used when the
    record has none
    """
    formatted = json.loads(
        InstallerJsonFormatter(
            resource=make_subscription("foo", "bar"), operation="install"
        ).format(make_record())
    )
    assert formatted["resourceName"] == "foo"
    assert formatted["operation"] == "install"


def test_no_resource():
    formatted = json.loads(InstallerJsonFormatter().format(make_record()))
    assert formatted.get("kind") is None
    assert formatted.get("operation") is None
