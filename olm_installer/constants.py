"""
Shared module to hold constant values for the library
"""

# API group served by the Operator Lifecycle Manager
OLM_GROUP = "operators.coreos.com"
OLM_VERSION = "v1alpha1"
OLM_API_VERSION = f"{OLM_GROUP}/{OLM_VERSION}"

# Kinds in the Subscription lineage
SUBSCRIPTION_KIND = "Subscription"
CLUSTER_SERVICE_VERSION_KIND = "ClusterServiceVersion"

# Status fields on a Subscription that point at the CSV it resolved to. The
# current CSV is populated first, the installed CSV once the install plan runs.
SUBSCRIPTION_CURRENT_CSV_FIELD = "status.currentCSV"
SUBSCRIPTION_INSTALLED_CSV_FIELD = "status.installedCSV"
SUBSCRIPTION_STATE_FIELD = "status.state"

# CSV lifecycle
CSV_PHASE_FIELD = "status.phase"
CSV_PHASE_SUCCEEDED = "Succeeded"
CSV_PHASE_FAILED = "Failed"

# Install plan approval strategies
APPROVAL_AUTOMATIC = "Automatic"
APPROVAL_MANUAL = "Manual"
APPROVAL_MODES = [APPROVAL_AUTOMATIC, APPROVAL_MANUAL]

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
