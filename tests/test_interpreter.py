import asyncio
import json

import pytest

from config import Config
from intelligence.base_types import Sentiment

ENVELOPE_KEYS = {
    'intent', 'confidence', 'sentiment', 'entities', 'message', 'text',
    'action_result', 'suggestions', 'timestamp', 'success', 'can_retry',
}


class TestScenarios:
    async def test_list_all_bugs(self, interpreter, alice):
        envelope = await interpreter.interpret(alice['id'], "show all bugs")
        assert envelope.intent == 'bug_list'
        assert envelope.success
        assert envelope.action_result['data']['count'] == 3
        assert 'Show unassigned bugs' in envelope.suggestions

    async def test_create_team_becomes_current_team(self, interpreter, store, alice):
        envelope = await interpreter.interpret(alice['id'], "create team called Falcons")
        assert envelope.intent == 'team_create'
        assert envelope.entities['team_name'] == 'Falcons'
        assert envelope.success
        assert store.get(alice['id']).current_team['name'] == 'Falcons'
        assert 'Add members to this team' in envelope.suggestions

    async def test_back_reference_uses_most_recent_bug(self, interpreter, store, alice, john):
        await interpreter.interpret(alice['id'], "show all bugs")
        newest = store.get(alice['id']).recent_bugs[0]['id']

        envelope = await interpreter.interpret(alice['id'], "assign that bug to John")
        assert envelope.intent == 'bug_assign'
        assert envelope.entities['bug_id'] == newest
        assert envelope.entities['assigned_user_id'] == john['id']
        assert envelope.success
        assert envelope.action_result['data']['bug']['assignees'] == ['John Smith']

    async def test_empty_message_is_rejected(self, interpreter, store, alice):
        envelope = await interpreter.interpret(alice['id'], "")
        assert envelope.intent == 'invalid_input'
        assert not envelope.success
        assert not store.has_context(alice['id'])
        assert store.get_history(alice['id']) == []


async def test_missing_title_asks_for_it(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "create a bug")
    assert envelope.intent == 'bug_create'
    assert not envelope.success
    assert envelope.message == "Please provide a bug title to create a new bug."
    assert 'Try: "Create a bug for login issue"' in envelope.suggestions


async def test_unresolved_reference_asks_for_context(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "close it")
    assert not envelope.success
    assert envelope.action_result['error_kind'] == 'missing_dependency_context'
    assert envelope.action_result['needs_context'] is True


async def test_create_bug_end_to_end(interpreter, store, alice):
    envelope = await interpreter.interpret(alice['id'], "create bug 'Export hangs' high priority")
    bug = envelope.action_result['data']['bug']
    assert bug['title'] == 'Export hangs'
    assert bug['priority'] == 'high'
    assert store.get(alice['id']).recent_bugs[0]['id'] == bug['id']
    assert 'Assign this bug to someone' in envelope.suggestions


async def test_composite_message(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "show bugs and teams")
    assert envelope.intent == 'composite_query'
    segments = envelope.action_result['data']['sub_results']
    assert [s['intent'] for s in segments] == ['bug_list', 'team_list']
    assert [s['text'] for s in segments] == ['show bugs', 'show teams']
    assert envelope.success


async def test_composite_dependent_segment_sees_previous_result(interpreter, alice, john):
    envelope = await interpreter.interpret(alice['id'], "show all bugs and then assign that bug to John")
    first, second = envelope.action_result['data']['sub_results']
    listed = first['action_result']['data']['bugs'][0]['id']
    assert second['intent'] == 'bug_assign'
    assert second['entities']['bug_id'] == listed
    assert second['entities']['assigned_user_id'] == john['id']
    assert envelope.success


async def test_prior_context_applies_to_one_turn(interpreter, store, alice):
    envelope = await interpreter.interpret(
        alice['id'], "show comments on that bug", prior_context={'recent_bugs': [{'id': '2'}]}
    )
    assert envelope.intent == 'comment_list'
    assert envelope.entities['bug_id'] == '2'
    assert envelope.success
    assert list(store.get(alice['id']).recent_bugs) == []


async def test_unknown_prior_context_field_yields_error_envelope(interpreter, store, alice):
    envelope = await interpreter.interpret(alice['id'], "show all bugs", prior_context={'mood': 'sunny'})
    assert envelope.intent == 'error'
    assert envelope.can_retry
    assert store.get_history(alice['id']) == []


async def test_collaborator_outage_is_reported(interpreter, collaborators, alice):
    async def down(*args):
        raise ConnectionError("service unavailable")

    collaborators.bugs.list = down
    envelope = await interpreter.interpret(alice['id'], "show all bugs")
    assert not envelope.success
    assert envelope.action_result['error_kind'] == 'collaborator_failure'
    assert envelope.can_retry


async def test_sentiment_is_reported(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "this is terrible")
    assert envelope.sentiment == Sentiment.NEGATIVE


async def test_envelopes_are_json_serializable(interpreter, store, alice):
    for message in ("hello", "show bugs from last week", "create a bug", "show bugs and teams", "\x00"):
        envelope = await interpreter.interpret(alice['id'], message)
        data = envelope.to_dict()
        assert set(data) == ENVELOPE_KEYS
        json.dumps(data)
    json.dumps(store.get(alice['id']).to_dict())


async def test_buffers_stay_bounded(interpreter, store, alice):
    for n in range(Config.CONVERSATION_HISTORY_LIMIT + 3):
        await interpreter.interpret(alice['id'], f"hello {n}")

    context = store.get(alice['id'])
    history = store.get_history(alice['id'])
    assert len(history) == Config.CONVERSATION_HISTORY_LIMIT
    assert history[0]['message'] == "hello 3"
    assert len(context.query_history) == Config.QUERY_HISTORY_LIMIT
    assert len(context.recent_entities) <= Config.RECENT_ENTITIES_LIMIT


async def test_clear_forgets_user(interpreter, store, alice):
    await interpreter.interpret(alice['id'], "show all bugs")
    interpreter.clear(alice['id'])
    assert not store.has_context(alice['id'])


class TestConcurrency:
    @pytest.fixture
    def tracked(self, collaborators):
        """Wraps bugs.list to record how many calls overlap"""
        original = collaborators.bugs.list
        state = {'active': 0, 'peak': 0}

        async def list_bugs(*args):
            state['active'] += 1
            state['peak'] = max(state['peak'], state['active'])
            await asyncio.sleep(0.01)
            state['active'] -= 1
            return await original(*args)

        collaborators.bugs.list = list_bugs
        return state

    async def test_same_user_is_serialized(self, interpreter, tracked, alice):
        await asyncio.gather(*(interpreter.interpret(alice['id'], "show all bugs") for _ in range(3)))
        assert tracked['peak'] == 1

    async def test_users_run_concurrently(self, interpreter, tracked, alice, john):
        await asyncio.gather(
            interpreter.interpret(alice['id'], "show all bugs"),
            interpreter.interpret(john['id'], "show all bugs"),
        )
        assert tracked['peak'] == 2

    async def test_same_user_history_keeps_arrival_order(self, interpreter, store, alice):
        await asyncio.gather(*(interpreter.interpret(alice['id'], f"hello {n}") for n in range(3)))
        assert [h['message'] for h in store.get_history(alice['id'])] == ['hello 0', 'hello 1', 'hello 2']


async def test_team_outage_during_analysis_is_not_internal(interpreter, collaborators, alice):
    async def teams_down(user_id):
        raise ConnectionError("service unavailable")

    collaborators.teams.list_for_user = teams_down
    envelope = await interpreter.interpret(alice['id'], "show my team")
    assert envelope.intent != 'error'
    assert envelope.action_result['error_kind'] == 'collaborator_failure'
    assert 'team_id' not in envelope.entities


async def test_composite_keeps_quoted_title(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "create bug 'Login fails' and show bugs")
    first, second = envelope.action_result['data']['sub_results']
    assert first['intent'] == 'bug_create'
    assert first['entities']['title'] == 'Login fails'
    assert first['action_result']['success']
    assert second['intent'] == 'bug_list'


async def test_my_open_bugs_only_lists_own(interpreter, john):
    envelope = await interpreter.interpret(john['id'], "show my open bugs")
    assert envelope.entities['assigned_to_me'] is True
    bugs = envelope.action_result['data']['bugs']
    assert [b['assignees'] for b in bugs] == [['John Smith']]


async def test_single_status_filter_uses_fixed_route(interpreter, alice):
    envelope = await interpreter.interpret(alice['id'], "show open bugs")
    assert envelope.intent == 'bug_status_open'
    assert {b['status'] for b in envelope.action_result['data']['bugs']} == {'open'}


async def test_user_search_is_reachable(interpreter, alice, john):
    envelope = await interpreter.interpret(alice['id'], "find user John")
    assert envelope.intent == 'user_search'
    assert envelope.action_result['data']['users'][0]['id'] == john['id']
