import pytest

from learning_timeline.common.exceptions import InvalidTransitionError
from learning_timeline.common.models import (EngagementStatus, ProcessingStatus, RefinementStatus, can_transition,
                                             transition)


@pytest.mark.parametrize("current, target", [
    (ProcessingStatus.UPLOADED, ProcessingStatus.PROCESSING),
    (ProcessingStatus.PROCESSING, ProcessingStatus.READY),
    (ProcessingStatus.PROCESSING, ProcessingStatus.ERROR),
    (ProcessingStatus.READY, ProcessingStatus.PROCESSING),
    (ProcessingStatus.ERROR, ProcessingStatus.PROCESSING),
    (RefinementStatus.IDLE, RefinementStatus.REFINING),
    (RefinementStatus.REFINING, RefinementStatus.REFINING),
    (RefinementStatus.COMPLETE, RefinementStatus.REFINING),
    (EngagementStatus.ERROR, EngagementStatus.ANALYZING),
])
def test_allowed_transitions(current, target):
    assert transition(current, target) is target


@pytest.mark.parametrize("current, target", [
    (ProcessingStatus.PROCESSING, ProcessingStatus.PROCESSING),
    (ProcessingStatus.UPLOADED, ProcessingStatus.READY),
    (ProcessingStatus.READY, ProcessingStatus.ERROR),
    (ProcessingStatus.ERROR, ProcessingStatus.READY),
    (RefinementStatus.IDLE, RefinementStatus.COMPLETE),
    (EngagementStatus.COMPLETE, EngagementStatus.ERROR),
])
def test_illegal_transitions_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        transition(current, target)


def test_statuses_of_different_machines_never_mix():
    assert not can_transition(RefinementStatus.IDLE, EngagementStatus.ANALYZING)


def test_parse_treats_missing_status_as_initial():
    assert ProcessingStatus.parse(None) is ProcessingStatus.UPLOADED
    assert ProcessingStatus.parse("uploading") is ProcessingStatus.UPLOADED
    assert ProcessingStatus.parse("ready") is ProcessingStatus.READY
    assert RefinementStatus.parse(None) is RefinementStatus.IDLE
    assert EngagementStatus.parse("") is EngagementStatus.IDLE


def test_parse_rejects_unknown_status():
    with pytest.raises(ValueError):
        ProcessingStatus.parse("archived")
