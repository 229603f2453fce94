import pytest

from clusterops.errors import PipelineError, UnsupportedRollbackError
from clusterops.observers.dispatcher import EventBus
from clusterops.observers.events import (
    PipelineSummary,
    RollbackResult,
    TaskFailed,
    TaskSucceeded,
)
from clusterops.task.context import Context
from clusterops.task.pipeline import Pipeline
from clusterops.task.task import Func, Task

from fakes import Capture, make_settings


class Recorder(Task):
    def __init__(self, name, calls, fail=False, rollback_error=None):
        self.name = name
        self.calls = calls
        self.fail = fail
        self.rollback_error = rollback_error

    def execute(self, ctx):
        self.calls.append(("execute", self.name))
        if self.fail:
            raise RuntimeError(f"boom {self.name}")

    def rollback(self, ctx):
        self.calls.append(("rollback", self.name))
        if self.rollback_error is not None:
            raise self.rollback_error

    def __str__(self):
        return self.name


@pytest.fixture
def ctx(tmp_path):
    return Context(make_settings(tmp_path))


def test_empty_pipeline_succeeds(ctx):
    Pipeline([]).execute(ctx)


def test_tasks_run_in_declared_order(ctx):
    calls = []
    Pipeline([Recorder(n, calls) for n in ("t0", "t1", "t2")]).execute(ctx)
    assert calls == [("execute", "t0"), ("execute", "t1"), ("execute", "t2")]


def test_failure_unwinds_previous_tasks_in_reverse(ctx):
    calls = []
    tasks = [
        Recorder("t0", calls),
        Recorder("t1", calls),
        Recorder("t2", calls),
        Recorder("t3", calls, fail=True),
        Recorder("t4", calls),
    ]
    with pytest.raises(PipelineError) as ei:
        Pipeline(tasks).execute(ctx)

    assert calls == [
        ("execute", "t0"),
        ("execute", "t1"),
        ("execute", "t2"),
        ("execute", "t3"),
        ("rollback", "t2"),
        ("rollback", "t1"),
        ("rollback", "t0"),
    ]
    # never rolled back: the failing task or anything after it
    assert ("rollback", "t3") not in calls
    assert ("execute", "t4") not in calls
    assert ei.value.failed_task is tasks[3]
    assert ei.value.rollback_errors == []


def test_first_task_failure_rolls_back_nothing(ctx):
    calls = []
    with pytest.raises(PipelineError):
        Pipeline([Recorder("t0", calls, fail=True), Recorder("t1", calls)]).execute(ctx)
    assert calls == [("execute", "t0")]


def test_rollback_errors_are_collected_and_unwind_continues(ctx):
    calls = []
    tasks = [
        Recorder("t0", calls),
        Recorder("t1", calls, rollback_error=RuntimeError("cannot undo t1")),
        Recorder("t2", calls, fail=True),
    ]
    with pytest.raises(PipelineError) as ei:
        Pipeline(tasks).execute(ctx)

    err = ei.value
    assert ("rollback", "t0") in calls
    assert str(err.error) == "boom t2"
    assert isinstance(err.__cause__, RuntimeError)
    assert [str(e) for e in err.rollback_errors] == ["cannot undo t1"]
    # the original cause comes first in the message
    assert str(err).index("boom t2") < str(err).index("cannot undo t1")


def test_unsupported_rollback_is_surfaced_not_hidden(ctx):
    calls = []
    one_way = Func("one-way", lambda c: calls.append("one-way"))
    with pytest.raises(PipelineError) as ei:
        Pipeline([one_way, Recorder("t1", calls, fail=True)]).execute(ctx)
    assert len(ei.value.rollback_errors) == 1
    assert isinstance(ei.value.rollback_errors[0], UnsupportedRollbackError)


def test_pipeline_emits_events(ctx):
    calls = []
    cap = Capture()
    bus = EventBus([cap])
    with pytest.raises(PipelineError):
        Pipeline([Recorder("a", calls), Recorder("b", calls, fail=True)], bus=bus).execute(ctx)

    kinds = [e.__class__.__name__ for e in cap.events]
    assert kinds[0] == "PipelineStarted"
    assert any(isinstance(e, TaskSucceeded) and e.task == "a" for e in cap.events)
    assert any(isinstance(e, TaskFailed) and e.task == "b" for e in cap.events)
    rb = next(e for e in cap.events if isinstance(e, RollbackResult))
    assert rb.status == "ROLLED_BACK"
    summary = next(e for e in cap.events if isinstance(e, PipelineSummary))
    assert (summary.executed, summary.failed, summary.rolled_back) == (1, 1, 1)
