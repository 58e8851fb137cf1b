"""
List the Subscriptions in the cluster along with their CSVs and phases
"""

# Standard
import argparse

# First Party
import alog

# Local
from .. import constants
from ..exceptions import ObjectNotFoundError
from ..manifest import csv_reference
from ..utils import nested_get
from .base import CmdBase
from .common import add_cluster_args, gateway_from_args, print_output

log = alog.use_channel("MAIN")


class ListCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("list", help=__doc__)
        parser.add_argument(
            "--namespace",
            "-n",
            default=None,
            help="Only list Subscriptions in this namespace. Defaults to all.",
        )
        parser.add_argument(
            "--selector",
            "-l",
            default=None,
            help="Label selector for the Subscriptions",
        )
        add_cluster_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace):
        gateway = gateway_from_args(args)
        subscriptions = gateway.list(
            kind=constants.SUBSCRIPTION_KIND,
            namespace=args.namespace,
            api_version=constants.OLM_API_VERSION,
            label_selector=args.selector,
        )
        rows = []
        for subscription in subscriptions:
            metadata = subscription.get("metadata", {})
            csv_key = csv_reference(subscription)
            phase = None
            if csv_key is not None:
                try:
                    csv = gateway.get(
                        kind=constants.CLUSTER_SERVICE_VERSION_KIND,
                        name=csv_key.name,
                        namespace=csv_key.namespace,
                        api_version=constants.OLM_API_VERSION,
                    )
                    phase = nested_get(csv, constants.CSV_PHASE_FIELD)
                except ObjectNotFoundError:
                    log.debug("CSV [%s] not found", csv_key)
            rows.append(
                {
                    "name": metadata.get("name"),
                    "namespace": metadata.get("namespace"),
                    "channel": nested_get(subscription, "spec.channel"),
                    "csv": csv_key.name if csv_key is not None else None,
                    "phase": phase,
                }
            )
        print_output(rows, args.output)
        return 0
