"""Unit tests for drift classification."""

import pytest

from kraftcloud_provider.apis.instance import InstanceState
from kraftcloud_provider.plugins.reconcilers.instance.client import RemoteInstanceState
from kraftcloud_provider.plugins.reconcilers.instance.drift import (
    REMOTE_TO_INSTANCE_STATE,
    Transition,
    is_up_to_date,
    plan_transition,
    to_instance_state,
)


class TestToInstanceState:
    def test_mapping_covers_every_remote_state(self):
        assert set(REMOTE_TO_INSTANCE_STATE) == set(RemoteInstanceState)

    def test_terminal_states_map(self):
        assert to_instance_state(RemoteInstanceState.RUNNING) == InstanceState.RUNNING
        assert to_instance_state(RemoteInstanceState.STOPPED) == InstanceState.STOPPED

    @pytest.mark.parametrize(
        "remote",
        [
            RemoteInstanceState.STARTING,
            RemoteInstanceState.STOPPING,
            RemoteInstanceState.DRAINING,
            RemoteInstanceState.STANDBY,
            RemoteInstanceState.UNKNOWN,
        ],
    )
    def test_intermediate_states_have_no_counterpart(self, remote):
        assert to_instance_state(remote) is None

    def test_unrecognised_remote_value_is_unknown(self):
        assert RemoteInstanceState("hibernating") == RemoteInstanceState.UNKNOWN


class TestIsUpToDate:
    @pytest.mark.parametrize(
        "remote,desired,expected",
        [
            (RemoteInstanceState.RUNNING, InstanceState.RUNNING, True),
            (RemoteInstanceState.STOPPED, InstanceState.STOPPED, True),
            (RemoteInstanceState.RUNNING, InstanceState.STOPPED, False),
            (RemoteInstanceState.STOPPED, InstanceState.RUNNING, False),
            (RemoteInstanceState.STARTING, InstanceState.RUNNING, False),
            (RemoteInstanceState.STOPPING, InstanceState.STOPPED, False),
        ],
    )
    def test_verdict(self, remote, desired, expected):
        assert is_up_to_date(remote, desired) is expected


class TestPlanTransition:
    def test_running_to_stopped(self):
        assert (
            plan_transition(RemoteInstanceState.RUNNING, InstanceState.STOPPED)
            == Transition.STOP
        )

    def test_stopped_to_running(self):
        assert (
            plan_transition(RemoteInstanceState.STOPPED, InstanceState.RUNNING)
            == Transition.START
        )

    @pytest.mark.parametrize("desired", list(InstanceState))
    def test_matching_state_needs_nothing(self, desired):
        remote = RemoteInstanceState(desired.value)
        assert plan_transition(remote, desired) == Transition.NONE

    @pytest.mark.parametrize(
        "remote",
        [RemoteInstanceState.DRAINING, RemoteInstanceState.STARTING],
    )
    @pytest.mark.parametrize("desired", list(InstanceState))
    def test_intermediate_states_are_left_alone(self, remote, desired):
        assert plan_transition(remote, desired) == Transition.NONE
