"""
This module holds all of the command classes for olm_installer's main
entrypoint
"""

# Local
from .base import CmdBase
from .install_cmd import InstallCmd
from .list_cmd import ListCmd
from .status_cmd import StatusCmd
from .uninstall_cmd import UninstallCmd
