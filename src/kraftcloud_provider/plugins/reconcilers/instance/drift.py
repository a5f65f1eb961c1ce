"""
Drift classification between observed and desired run states.

The remote API and the Instance record use separate run state vocabularies.
Remote states are mapped onto desired states explicitly; any remote state
without a mapping (an instance mid-transition, for example) never counts as
up to date and never triggers a transition.
"""

from enum import Enum
from typing import Dict, Optional

from kraftcloud_provider.apis.instance import InstanceState
from kraftcloud_provider.plugins.reconcilers.instance.client import RemoteInstanceState

REMOTE_TO_INSTANCE_STATE: Dict[RemoteInstanceState, Optional[InstanceState]] = {
    RemoteInstanceState.RUNNING: InstanceState.RUNNING,
    RemoteInstanceState.STOPPED: InstanceState.STOPPED,
    RemoteInstanceState.STARTING: None,
    RemoteInstanceState.STOPPING: None,
    RemoteInstanceState.DRAINING: None,
    RemoteInstanceState.STANDBY: None,
    RemoteInstanceState.UNKNOWN: None,
}


class Transition(Enum):
    """Corrective action for a run state mismatch."""

    NONE = "none"
    START = "start"
    STOP = "stop"


def to_instance_state(remote: RemoteInstanceState) -> Optional[InstanceState]:
    """Map a remote run state onto the Instance vocabulary, if it has a counterpart."""
    return REMOTE_TO_INSTANCE_STATE[remote]


def is_up_to_date(remote: RemoteInstanceState, desired: InstanceState) -> bool:
    return to_instance_state(remote) == desired


def plan_transition(remote: RemoteInstanceState, desired: InstanceState) -> Transition:
    """
    Decide the single transition that moves the remote instance towards
    the desired state.

    Only running -> stopped and stopped -> running are handled.
    """
    observed = to_instance_state(remote)
    if observed == InstanceState.RUNNING and desired == InstanceState.STOPPED:
        return Transition.STOP
    if observed == InstanceState.STOPPED and desired == InstanceState.RUNNING:
        return Transition.START
    return Transition.NONE
