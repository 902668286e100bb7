"""Unit tests for the stage pipeline framework."""

from dataclasses import dataclass, field
from unittest.mock import patch

import pytest

from pullwise.pipeline import (
    AutomationStatus,
    BasePipelineStage,
    PipelineContext,
    PipelineExecutor,
    PipelineMetadata,
)


@dataclass
class CounterContext(PipelineContext):
    """Context recording which stages ran."""

    visited: list[str] = field(default_factory=list)


class RecordingStage(BasePipelineStage[CounterContext]):
    """Stage that appends its name to the context."""

    def __init__(self, name: str) -> None:
        self.stage_name = name

    def _execute_stage(self, context: CounterContext) -> CounterContext:
        def _apply(draft: CounterContext) -> None:
            draft.visited.append(self.stage_name)

        return self.update_context(context, _apply)


class SkippingStage(BasePipelineStage[CounterContext]):
    """Stage that marks the run as skipped."""

    stage_name = "SkippingStage"

    def _execute_stage(self, context: CounterContext) -> CounterContext:
        return self.skip(context, "Nothing to do")


class FailingStage(BasePipelineStage[CounterContext]):
    """Stage that always raises."""

    stage_name = "FailingStage"

    def _execute_stage(self, context: CounterContext) -> CounterContext:
        raise RuntimeError("boom")


class TestBasePipelineStage:
    """Tests for stage helpers."""

    def test_update_context_leaves_input_untouched(self) -> None:
        """Test that stages work on a copy."""
        context = CounterContext()

        result = RecordingStage("A").execute(context)

        assert result.visited == ["A"]
        assert context.visited == []

    def test_skip_sets_status_and_message(self) -> None:
        """Test that skip marks the copy as skipped."""
        context = CounterContext()

        result = SkippingStage().execute(context)

        assert result.is_skipped
        assert result.status_info.message == "Nothing to do"
        assert not context.is_skipped


class TestPipelineExecutor:
    """Tests for PipelineExecutor."""

    def test_runs_stages_in_order(self) -> None:
        """Test sequential execution."""
        context = PipelineExecutor[CounterContext]().execute(
            CounterContext(),
            [RecordingStage("A"), RecordingStage("B"), RecordingStage("C")],
            pipeline_name="Test",
        )

        assert context.visited == ["A", "B", "C"]

    def test_assigns_pipeline_metadata(self) -> None:
        """Test that a fresh id is assigned and is also the root id."""
        context = PipelineExecutor[CounterContext]().execute(CounterContext(), [], pipeline_name="Test")

        metadata = context.pipeline_metadata
        assert metadata.pipeline_id
        assert metadata.root_pipeline_id == metadata.pipeline_id
        assert metadata.parent_pipeline_id is None
        assert metadata.pipeline_name == "Test"

    def test_keeps_given_root_id(self) -> None:
        """Test that sub-pipelines share the root id."""
        initial = CounterContext(pipeline_metadata=PipelineMetadata(pipeline_name="old"))

        context = PipelineExecutor[CounterContext]().execute(
            initial,
            [],
            pipeline_name="Sub",
            parent_pipeline_id="parent",
            root_pipeline_id="root",
        )

        assert context.pipeline_metadata.parent_pipeline_id == "parent"
        assert context.pipeline_metadata.root_pipeline_id == "root"
        assert context.pipeline_metadata.pipeline_id != "root"

    def test_skipped_status_stops_pipeline(self) -> None:
        """Test that stages after a skip do not run."""
        context = PipelineExecutor[CounterContext]().execute(
            CounterContext(),
            [RecordingStage("A"), SkippingStage(), RecordingStage("B")],
        )

        assert context.visited == ["A"]
        assert context.status_info.status == AutomationStatus.SKIPPED

    def test_failing_stage_is_recorded_and_pipeline_continues(self) -> None:
        """Test error isolation."""
        context = PipelineExecutor[CounterContext]().execute(
            CounterContext(),
            [RecordingStage("A"), FailingStage(), RecordingStage("B")],
            pipeline_name="Test",
        )

        assert context.visited == ["A", "B"]
        assert len(context.errors) == 1
        error = context.errors[0]
        assert error.stage == "FailingStage"
        assert error.error == "boom"
        assert error.pipeline_id == context.pipeline_metadata.pipeline_id

    def test_timeout_stops_before_next_stage(self) -> None:
        """Test that stages after the run timeout do not run and the timeout is recorded."""
        clock = [0.0]

        class SlowStage(RecordingStage):
            def _execute_stage(self, context: CounterContext) -> CounterContext:
                clock[0] += 30.0
                return super()._execute_stage(context)

        with patch("pullwise.pipeline.executor.time.perf_counter", side_effect=lambda: clock[0]):
            context = PipelineExecutor[CounterContext]().execute(
                CounterContext(),
                [SlowStage("A"), RecordingStage("B"), RecordingStage("C")],
                pipeline_name="Test",
                timeout=10,
            )

        assert context.visited == ["A"]
        assert len(context.errors) == 1
        assert context.errors[0].stage == "B"
        assert "timed out after 10s" in context.errors[0].error

    def test_no_timeout_runs_every_stage(self) -> None:
        """Test that a run without a timeout is never cut short."""
        clock = [0.0]

        def _tick() -> float:
            clock[0] += 1000.0
            return clock[0]

        with patch("pullwise.pipeline.executor.time.perf_counter", side_effect=_tick):
            context = PipelineExecutor[CounterContext]().execute(
                CounterContext(),
                [RecordingStage("A"), RecordingStage("B")],
            )

        assert context.visited == ["A", "B"]
        assert context.errors == []


class TestSubPipeline:
    """Tests for nested pipelines."""

    def test_sub_pipeline_links_to_parent(self) -> None:
        """Test that the nested run points at its parent."""
        executor = PipelineExecutor[CounterContext]()
        parent = executor.execute(CounterContext(), [], pipeline_name="Parent")

        parent_id = parent.pipeline_metadata.pipeline_id

        stage = RecordingStage("Outer")
        result = stage.execute_sub_pipeline(parent, [RecordingStage("Inner")], "Child", executor)

        assert result.visited == ["Inner"]
        assert result.pipeline_metadata.parent_pipeline_id == parent_id
        assert result.pipeline_metadata.root_pipeline_id == parent_id

    def test_sub_pipeline_failure_is_recorded_and_raised(self) -> None:
        """Test that an executor failure is recorded on the sub context."""

        class BrokenExecutor(PipelineExecutor[CounterContext]):
            def execute(self, *args, **kwargs):  # type: ignore[override]
                raise RuntimeError("executor down")

        context = CounterContext()
        stage = RecordingStage("Outer")

        with pytest.raises(RuntimeError):
            stage.execute_sub_pipeline(context, [], "Child", BrokenExecutor())

        assert context.errors[0].substage == "Child"
        assert context.errors[0].stage == "Outer"
