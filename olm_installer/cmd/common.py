"""
Argument groups and helpers shared by the commands
"""

# Standard
import argparse
import json
import sys

# Third Party
import yaml

# First Party
import alog

# Local
from .. import constants
from ..cluster_gateway import (
    ClusterGatewayBase,
    DryRunClusterGateway,
    OpenshiftClusterGateway,
)
from ..config import library_config
from ..manifest import InstallRequest

log = alog.use_channel("MAIN")

OUTPUT_FORMATS = ["yaml", "json"]


def add_cluster_args(parser: argparse.ArgumentParser):
    """Add the args controlling the connection to the cluster"""
    cluster_args = parser.add_argument_group("Cluster Connection")
    cluster_args.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to the kubeconfig file. Defaults to in-cluster or ~/.kube/config",
    )
    cluster_args.add_argument(
        "--context",
        default=None,
        help="Name of the kubeconfig context to use",
    )
    cluster_args.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run against an in-memory cluster instead of a live one",
    )
    cluster_args.add_argument(
        "--output",
        "-o",
        choices=OUTPUT_FORMATS,
        default="yaml",
        help="Output format",
    )


def add_request_args(parser: argparse.ArgumentParser, channel_required: bool):
    """Add the args which make up an InstallRequest"""
    request_args = parser.add_argument_group("Install Request")
    request_args.add_argument("name", help="Name of the operator package")
    request_args.add_argument(
        "--channel",
        "-c",
        required=channel_required,
        default=None,
        help="Subscription channel to install from",
    )
    request_args.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace for the Subscription",
    )
    request_args.add_argument(
        "--source",
        default=None,
        help="Name of the CatalogSource providing the package",
    )
    request_args.add_argument(
        "--source-namespace",
        default=None,
        help="Namespace of the CatalogSource",
    )
    request_args.add_argument(
        "--approval",
        choices=constants.APPROVAL_MODES,
        default=None,
        help="Install plan approval mode",
    )


def request_from_args(args: argparse.Namespace) -> InstallRequest:
    """Build the InstallRequest from parsed args. The channel is not needed to
    find the Subscription, so commands that only look it up accept any value.
    """
    return InstallRequest.from_dict(
        {
            "name": args.name,
            "channel": args.channel or "-",
            "namespace": args.namespace,
            "source": args.source,
            "sourceNamespace": args.source_namespace,
            "installPlanApproval": args.approval,
        }
    )


def gateway_from_args(args: argparse.Namespace) -> ClusterGatewayBase:
    """Set up the gateway selected by the cluster args"""
    if args.dry_run:
        log.info("Running DRY RUN")
        return DryRunClusterGateway()

    if args.kubeconfig is not None:
        library_config.cluster["kubeconfig"] = args.kubeconfig
    if args.context is not None:
        library_config.cluster["context"] = args.context
    return OpenshiftClusterGateway(library_config.cluster)


def print_output(content, output_format: str):
    """Print a plain python object in the requested format"""
    if output_format == "json":
        sys.stdout.write(json.dumps(content, indent=2) + "\n")
    else:
        sys.stdout.write(yaml.safe_dump(content, sort_keys=False))
