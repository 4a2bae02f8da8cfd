"""
End-to-end tests for EditorSession: intents in, commits and snapshots out.
"""

import json

import pytest

from automata_board.data_manager import GraphLoadError
from automata_board.graph import BoardConfig, Position, State
from automata_board.edit.controller import EditorSession, EditState
from automata_board.edit.regularizer import MergeProposed, Placed, Rejected
from automata_board.edit.tools import ToolLibrary

PAIR = '{"name": "pair", "stateCount": 2, "edges": [{"from": 0, "to": 1}, {"from": 1, "to": 0}]}'


@pytest.fixture
def session():
    return EditorSession()


class TestMergeScenario:
    """Two states, one transition, then fold the first into the second."""

    def test_create_link_and_merge(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(1, 0)
        assert len(session.history) == 3

        tid = session.create_transition(a, b, "x")
        assert len(session.history) == 4

        session.select(a)
        assert session.downgrade_to_dummy(a)
        assert len(session.history) == 5

        assert session.begin_drag(a)
        result = session.drag_to(1.1, -0.2)

        assert isinstance(result, MergeProposed)
        assert len(session.history) == 6
        snapshot = session.history.current
        assert list(snapshot.states) == [b]
        assert snapshot.states[b].position == Position(1, 0)
        transition = snapshot.transitions[tid]
        assert (transition.from_id, transition.to_id) == (b, b)
        assert session.state == EditState()

    def test_merge_can_be_undone(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(1, 0)
        session.select(a)
        session.downgrade_to_dummy(a)
        session.begin_drag(a)
        session.drag_to(1, 0)

        assert session.undo()
        assert set(session.graph.states) == {a, b}
        assert session.graph.states[a].is_dummy
        assert session.graph.states[a].merged is None


class TestDragging:
    """A drag commits at most once, on release."""

    def test_drag_commits_once_on_release(self, session):
        a = session.create_state_at(0, 0)
        before = len(session.history)

        session.begin_drag(a)
        for x in (0.6, 1.4, 2.2, 3.1):
            assert isinstance(session.drag_to(x, 0), Placed)
        assert len(session.history) == before

        assert session.end_drag()
        assert len(session.history) == before + 1
        assert session.graph.states[a].position == Position(3, 0)
        assert session.history.current.log.startswith("move state")

    def test_drag_back_to_origin_does_not_commit(self, session):
        a = session.create_state_at(0, 0)
        before = len(session.history)
        session.begin_drag(a)
        session.drag_to(2, 2)
        session.drag_to(0.2, -0.1)
        assert not session.end_drag()
        assert len(session.history) == before

    def test_drag_onto_occupied_cell_keeps_last_position(self, session):
        a = session.create_state_at(0, 0)
        session.create_state_at(2, 0)
        session.begin_drag(a)
        session.drag_to(1, 0)
        assert isinstance(session.drag_to(2, 0), Rejected)
        assert session.graph.states[a].position == Position(1, 0)

    def test_drag_without_begin_is_ignored(self, session):
        assert session.drag_to(1, 1) is None
        assert not session.end_drag()

    def test_other_intent_during_drag_commits_the_move_first(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(5, 5)
        session.begin_drag(a)
        session.drag_to(2, 0)

        assert session.toggle_accepting(b)

        logs = [log for _, log in session.history.entries()]
        assert logs[-2].startswith("move state")
        assert logs[-1].startswith("toggle accepting")
        assert session.state.dragging_state_id is None
        assert not session.end_drag()

        session.undo()
        assert session.graph.states[a].position == Position(2, 0)
        assert not session.graph.states[b].is_accepting
        session.undo()
        assert session.graph.states[a].position == Position(0, 0)

    def test_intent_during_drag_at_origin_adds_no_move(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(5, 5)
        before = len(session.history)
        session.begin_drag(a)
        session.drag_to(0.3, 0.1)

        session.toggle_accepting(b)

        assert len(session.history) == before + 1
        assert session.history.current.states[a].position == Position(0, 0)

    def test_undo_discards_uncommitted_drag(self, session):
        a = session.create_state_at(0, 0)
        session.create_state_at(5, 5)
        session.begin_drag(a)
        session.drag_to(3, 3)
        session.undo()
        assert session.graph.states[a].position == Position(0, 0)
        assert session.state.dragging_state_id is None


class TestIntents:
    """Single-step intents and their commits."""

    def test_rejected_intents_do_not_commit(self, session):
        a = session.create_state_at(0, 0)
        before = len(session.history)

        assert session.create_state_at(0.2, 0.4) is None
        assert not session.delete_state(a)
        assert not session.downgrade_to_dummy(a)
        assert session.create_transition(a, "ghost") is None
        assert len(session.history) == before

    def test_dummy_toggle_accepting_is_rejected(self, session):
        a = session.create_state_at(0, 0)
        session.select(a)
        session.downgrade_to_dummy(a)
        before = len(session.history)
        assert not session.toggle_accepting(a)
        assert len(session.history) == before

    def test_delete_dummy(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(1, 0)
        session.create_transition(a, b)
        session.select(a)
        session.downgrade_to_dummy(a)

        assert session.delete_state(a)

        assert set(session.history.current.states) == {b}
        assert dict(session.history.current.transitions) == {}

    def test_edit_state(self, session):
        a = session.create_state_at(0, 0)
        session.select(a)
        assert session.edit_state(a, State(a, Position(0, 0), label="s_0", is_accepting=True))
        assert session.history.current.states[a].label == "s_0"
        assert session.history.current.states[a].is_accepting

    def test_on_change_fires_after_each_intent(self, session):
        seen = []
        session.set_on_change(lambda s: seen.append(len(s.history)))
        session.create_state_at(0, 0)
        session.create_state_at(0, 0)
        assert seen == [2, 2]


class TestToolUse:
    """Accumulating clicked states and firing the tool."""

    @pytest.fixture
    def session(self):
        tools = ToolLibrary()
        tools.import_tool(PAIR)
        return EditorSession(tools=tools)

    def test_tool_fires_when_all_slots_are_filled(self, session):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(1, 0)
        before = len(session.history)

        assert session.begin_tool_use()
        assert session.click_for_tool(a) is None
        assert session.state.tool_params == (a,)
        created = session.click_for_tool(b)

        assert len(created) == 2
        assert len(session.history) == before + 1
        assert session.state.tool_params == ()
        assert session.state.using_tool
        pairs = {(t.from_id, t.to_id) for t in session.graph.transitions.values()}
        assert pairs == {(a, b), (b, a)}

    def test_clicks_ignored_when_not_using_tool(self, session):
        a = session.create_state_at(0, 0)
        assert session.click_for_tool(a) is None
        assert session.state.tool_params == ()

    def test_unknown_state_click_is_ignored(self, session):
        session.begin_tool_use()
        assert session.click_for_tool("ghost") is None
        assert session.state.tool_params == ()

    def test_no_tool_loaded(self):
        session = EditorSession()
        assert not session.begin_tool_use()
        assert not session.begin_tool_use(index=3)

    def test_end_tool_use_clears_params(self, session):
        a = session.create_state_at(0, 0)
        session.begin_tool_use()
        session.click_for_tool(a)
        session.end_tool_use()
        assert session.state == EditState()


class TestFiles:
    """Save, load and export through the session."""

    def test_save_and_load(self, session, tmp_path):
        a = session.create_state_at(0, 0)
        b = session.create_state_at(1, 2)
        session.create_transition(a, b, "x")
        path = tmp_path / "board.json"
        session.save(path)

        other = EditorSession()
        other.load(path)

        assert len(other.history) == 2
        assert other.history.current.log == "load board.json"
        assert set(other.graph.states) == {a, b}
        assert other.graph.states[b].position == Position(1, 2)

    def test_saved_file_holds_states_and_transitions_only(self, session):
        session.create_state_at(0, 0)
        data = json.loads(session.dumps())
        assert set(data) == {"states", "transitions"}

    @pytest.mark.parametrize("text", [
        "{not json",
        '{"states": {}}',
        '{"transitions": {}}',
        '{"states": {}, "transitions": {"t": {"id": "t", "fromID": "a", "toID": "b", "label": ""}}}',
    ])
    def test_malformed_load_changes_nothing(self, session, text):
        a = session.create_state_at(0, 0)
        before = len(session.history)

        with pytest.raises(GraphLoadError):
            session.loads(text)

        assert len(session.history) == before
        assert set(session.graph.states) == {a}

    @pytest.mark.parametrize("x", ["NaN", "Infinity"])
    def test_non_finite_board_is_refused(self, session, x):
        text = '{"states": {"a": {"position": {"x": ' + x + ', "y": 0}}}, "transitions": {}}'
        with pytest.raises(GraphLoadError):
            session.loads(text)

        assert session.create_state_at(5, 5) is not None
        assert len(session.history) == 2

    def test_load_missing_file(self, session, tmp_path):
        with pytest.raises(GraphLoadError):
            session.load(tmp_path / "missing.json")
        assert len(session.history) == 1

    def test_export_tikz(self, session):
        a = session.create_state_at(0, 0)
        session.create_transition(a, a, "a")
        tikz = session.export_tikz()
        assert "\\node[state] (q0) at (0, 0)" in tikz
        assert "(q0) edge[loop above] node {$ a $} ()" in tikz

    def test_uses_configured_radius(self):
        session = EditorSession(config=BoardConfig(state_radius=0.4))
        a = session.create_state_at(0, 0)
        assert session.graph.states[a].radius == 0.4
