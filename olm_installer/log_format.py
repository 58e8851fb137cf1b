"""
Custom logging formats that carry the identity of the object being worked on
"""

# First Party
from alog import AlogJsonFormatter


class InstallerJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the identity of
    the cluster object a log line is about, along with thread information
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceName",
        "resourceNamespace",
        "operation",
    ]

    def __init__(self, resource=None, operation=None):
        super().__init__()
        self.resource = resource
        self.operation = operation

    def format(self, record):
        if self.operation and not getattr(record, "operation", None):
            record.operation = self.operation

        if resource := getattr(record, "resource", self.resource):
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata", {})
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")

        return super().format(record)
