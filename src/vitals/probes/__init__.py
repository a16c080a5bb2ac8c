"""Section probes: one collector per metrics section."""

from vitals.model import APP, ASSISTANT_ACTIVITY, GIT, INFRASTRUCTURE
from vitals.probes.app import probe_app
from vitals.probes.assistant import probe_assistant_activity
from vitals.probes.base import Probe, ProbeContext, ProbeResult, ProbeStatus
from vitals.probes.git import probe_git
from vitals.probes.infrastructure import probe_infrastructure
from vitals.probes.pull_requests import PullRequestLookup, lookup_merged_pull_requests

DEFAULT_PROBES: dict[str, Probe] = {
    GIT: probe_git,
    ASSISTANT_ACTIVITY: probe_assistant_activity,
    INFRASTRUCTURE: probe_infrastructure,
    APP: probe_app,
}

__all__ = [
    "DEFAULT_PROBES",
    "Probe",
    "ProbeContext",
    "ProbeResult",
    "ProbeStatus",
    "PullRequestLookup",
    "lookup_merged_pull_requests",
]
