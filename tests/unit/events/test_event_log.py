"""Tests for the append-only event log."""

import json

from feature_swarm.events import EventAction, EventLog, SwarmEvent
from feature_swarm.models import Gate


class TestSwarmEvent:
    """Tests for SwarmEvent."""

    def test_ids_and_timestamps_are_generated(self):
        first = SwarmEvent(agent_role="pm", action=EventAction.REFLECTION)
        second = SwarmEvent(agent_role="pm", action=EventAction.REFLECTION)
        assert first.id.startswith("evt-")
        assert first.id != second.id
        assert first.timestamp.endswith("Z")

    def test_optional_ids_omitted_from_dict(self):
        data = SwarmEvent(agent_role="qa", action=EventAction.LLM_REQUEST).to_dict()
        assert "feature_id" not in data
        assert "task_id" not in data

    def test_from_dict_restores_event(self):
        event = SwarmEvent(
            agent_role="architect",
            action=EventAction.HANDOFF,
            agent_turn=2,
            input={"from": "pm"},
            output={"to": "architect"},
            feature_id="f-1",
            task_id="task-f-1-implement",
        )
        assert SwarmEvent.from_dict(event.to_dict()) == event


class TestEventLog:
    """Tests for EventLog."""

    def test_missing_file_reads_empty(self, tmp_path):
        assert EventLog(tmp_path / ".swarm").read_all() == []

    def test_append_order_is_preserved(self, swarm_dir):
        log = EventLog(swarm_dir)
        for turn in range(1, 4):
            log.emit("pm", EventAction.REFLECTION, agent_turn=turn)

        assert [e.agent_turn for e in log.read_all()] == [1, 2, 3]

    def test_each_event_is_one_json_line(self, swarm_dir):
        log = EventLog(swarm_dir)
        log.emit("pm", EventAction.REFLECTION, input={"stage": "init"})
        log.emit("qa", EventAction.LLM_REQUEST)

        lines = log.path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["input"] == {"stage": "init"}

    def test_corrupt_lines_are_skipped(self, swarm_dir):
        log = EventLog(swarm_dir)
        log.emit("pm", EventAction.REFLECTION)
        with open(log.path, "a") as f:
            f.write("garbage\n")
            f.write('{"action": "not-an-action"}\n')
        log.emit("qa", EventAction.REFLECTION)

        assert [e.agent_role for e in log.read_all()] == ["pm", "qa"]

    def test_emit_gate(self, swarm_dir):
        log = EventLog(swarm_dir)
        event = log.emit_gate(Gate.COVERAGE, False, "Coverage: 50% (min: 80%)", feature_id="f-1")

        assert event.agent_role == "integrator"
        assert event.action == EventAction.GATE_CHECK
        assert event.input == {"gate": "coverage", "passed": False}
        assert event.output == {"reason": "Coverage: 50% (min: 80%)"}
        assert event.feature_id == "f-1"

    def test_query_filters(self, swarm_dir):
        log = EventLog(swarm_dir)
        log.emit_gate(Gate.TEST, True, "ok", feature_id="f-1")
        log.emit_gate(Gate.REVIEW, False, "low", feature_id="f-1")
        log.emit_gate(Gate.TEST, False, "red", feature_id="f-2")
        log.emit("pm", EventAction.HANDOFF, feature_id="f-1")

        assert len(log.query(action=EventAction.GATE_CHECK)) == 3
        assert len(log.query(feature_id="f-1")) == 3
        assert [e.feature_id for e in log.query(gate=Gate.TEST)] == ["f-1", "f-2"]
        assert len(log.query(action=EventAction.GATE_CHECK, feature_id="f-2", gate=Gate.TEST)) == 1
