from dataclasses import FrozenInstanceError

import pytest

from buildrelay.core.enums import BuildResult, DispatchState
from buildrelay.features.build_dispatch.domain.models import (
    AcceptanceResponse, BuildHandle, BuildStatus, DispatchConfig, JobSubmission, QueueItem
)


def test_queue_item_matches_job_and_parameter_values():
    submission = JobSubmission("demo", {"MSG": "hi", "TARGET": "staging"})

    assert QueueItem("demo", "\nMSG=hi\nTARGET=staging").matches(submission)
    # Order and keys do not matter, only that each value appears
    assert QueueItem("demo", "\nTARGET=staging\nOTHER=hi").matches(submission)
    assert not QueueItem("demo", "\nMSG=hi").matches(submission)
    assert not QueueItem("demo-nightly", "\nMSG=hi\nTARGET=staging").matches(submission)


def test_queue_item_without_submitted_parameters_matches_on_name():
    assert QueueItem("demo", "").matches(JobSubmission("demo"))
    assert QueueItem("demo", "\nMSG=anything").matches(JobSubmission("demo"))


def test_submission_is_immutable_and_validated():
    submission = JobSubmission("demo", {"MSG": "hi"})
    with pytest.raises(FrozenInstanceError):
        submission.job_name = "other"

    with pytest.raises(ValueError):
        JobSubmission("")
    with pytest.raises(ValueError):
        JobSubmission("demo", {"COUNT": 3})


def test_acceptance_codes():
    assert AcceptanceResponse(201).accepted
    assert AcceptanceResponse(302).accepted
    assert not AcceptanceResponse(303).accepted
    assert not AcceptanceResponse(500, "boom").accepted


def test_build_result_parsing():
    assert BuildResult.parse("SUCCESS") == BuildResult.SUCCESS
    assert BuildResult.parse("failure") == BuildResult.FAILURE
    assert BuildResult.parse("SOMETHING_NEW") == BuildResult.UNKNOWN
    assert BuildResult.parse(None) is None


def test_build_status_duration_rounding():
    assert BuildStatus(number=1, running=False, duration_ms=5499).duration_seconds == 5
    assert BuildStatus(number=1, running=True).duration_seconds == 0


def test_handles_compare_by_value():
    assert BuildHandle("demo", 42) == BuildHandle("demo", 42)
    assert BuildHandle("demo", 42) != BuildHandle("demo", 43)


def test_terminal_states():
    assert DispatchState.SUCCEEDED.is_terminal
    assert DispatchState.CANCELLED.is_terminal
    assert not DispatchState.TRACKING.is_terminal
    assert not DispatchState.IDLE.is_terminal


def test_dispatch_config_validation():
    with pytest.raises(ValueError):
        DispatchConfig(queue_poll_interval=-1)
    with pytest.raises(ValueError):
        DispatchConfig(resolution_timeout=0)
    with pytest.raises(ValueError):
        DispatchConfig(max_resolution_attempts=0)


def test_dispatch_config_from_settings():
    class FakeSettings:
        JENKINS_QUEUE_POLL_SECONDS = 1.5
        JENKINS_BUILD_POLL_SECONDS = 4.0
        JENKINS_RESOLUTION_TIMEOUT_SECONDS = 0

    config = DispatchConfig.from_settings(FakeSettings)

    assert config.queue_poll_interval == 1.5
    assert config.build_poll_interval == 4.0
    # 0 means "no ceiling"
    assert config.resolution_timeout is None
