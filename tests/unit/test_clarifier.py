"""Tests for pre-flight clarification."""

import pytest

from feature_swarm.agents import AgentInvoker
from feature_swarm.clarifier import ASSUMPTIONS_FILE, Clarifier
from tests.fakes import CLARIFY_MSG, ScriptedProvider, make_spec

QUESTIONS = {"questions": [
    {"question": "Which database?", "default_assumption": "Use SQLite"},
    {"question": "Auth required?", "default_assumption": "No auth"},
    {"question": "Pagination?", "defaultAssumption": "Page size 20"},
    {"question": "Soft deletes?", "default_assumption": "Hard deletes"},
]}


class TestClarifier:
    """Tests for Clarifier.clarify()."""

    @pytest.mark.asyncio
    async def test_questions_capped_and_assumed(self, swarm_dir):
        provider = ScriptedProvider({CLARIFY_MSG: QUESTIONS})
        clarifier = Clarifier(AgentInvoker(provider), max_questions=3)

        result = await clarifier.clarify(make_spec(), swarm_dir)

        assert [q.question for q in result.questions] == [
            "Which database?", "Auth required?", "Pagination?",
        ]
        assert result.questions[2].default_assumption == "Page size 20"
        assert "Use SQLite" in result.assumptions
        assert "Hard deletes" not in result.assumptions
        assert "List at most 3 clarifying questions" in provider.calls[0][0]

    @pytest.mark.asyncio
    async def test_writes_assumptions_file(self, swarm_dir):
        clarifier = Clarifier(AgentInvoker(ScriptedProvider({CLARIFY_MSG: QUESTIONS})))

        result = await clarifier.clarify(make_spec(), swarm_dir)

        path = swarm_dir / ASSUMPTIONS_FILE
        assert result.assumptions_file == str(path)
        text = path.read_text()
        assert text.startswith("# Assumptions: todo-api")
        assert "- **Q:** Which database?" in text
        assert "**Assumed:** Use SQLite" in text

    @pytest.mark.asyncio
    async def test_no_questions_skips_agent_but_writes_file(self, swarm_dir):
        provider = ScriptedProvider({CLARIFY_MSG: QUESTIONS})
        clarifier = Clarifier(AgentInvoker(provider))

        result = await clarifier.clarify(make_spec(), swarm_dir, no_questions=True)

        assert provider.calls == []
        assert result.questions == []
        assert (swarm_dir / ASSUMPTIONS_FILE).exists()
        assert "Minimum test coverage per feature is 80%." in result.assumptions

    @pytest.mark.asyncio
    async def test_zero_budget_skips_agent(self, swarm_dir):
        provider = ScriptedProvider()
        result = await Clarifier(AgentInvoker(provider), max_questions=0).clarify(
            make_spec(), swarm_dir
        )
        assert provider.calls == []
        assert result.questions == []

    @pytest.mark.asyncio
    async def test_agent_failure_means_no_questions(self, swarm_dir):
        clarifier = Clarifier(AgentInvoker(ScriptedProvider({CLARIFY_MSG: "no idea"})))

        result = await clarifier.clarify(make_spec(), swarm_dir)

        assert result.questions == []
        assert (swarm_dir / ASSUMPTIONS_FILE).exists()

    @pytest.mark.asyncio
    async def test_plain_string_questions(self, swarm_dir):
        provider = ScriptedProvider({CLARIFY_MSG: {"questions": ["Rate limits?", "", 7]}})
        result = await Clarifier(AgentInvoker(provider)).clarify(make_spec(), swarm_dir)

        assert [q.question for q in result.questions] == ["Rate limits?"]
        assert result.questions[0].default_assumption == (
            "Use the simplest reasonable interpretation"
        )
