import asyncio
import json

import pytest

from config import Config
from intelligence.context import ConversationContext, InMemorySessionStore, apply_patch


def test_contexts_are_created_lazily(store):
    assert not store.has_context('u1')
    context = store.get('u1')
    assert context.user_id == 'u1'
    assert context.current_team is None
    assert list(context.recent_bugs) == []
    assert store.get('u1') is context


def test_history_is_bounded_oldest_evicted(store):
    for n in range(Config.CONVERSATION_HISTORY_LIMIT + 5):
        store.append_history('u1', f"message {n}")
    history = store.get_history('u1')
    assert len(history) == Config.CONVERSATION_HISTORY_LIMIT
    assert history[0]['message'] == "message 5"
    assert history[-1]['message'] == f"message {Config.CONVERSATION_HISTORY_LIMIT + 4}"


def test_query_history_is_bounded():
    context = ConversationContext(user_id='u1')
    for n in range(Config.QUERY_HISTORY_LIMIT + 3):
        context.remember(f"m{n}", 'bug_list', {}, {'timestamp': None, 'success': True})
    assert len(context.query_history) == Config.QUERY_HISTORY_LIMIT
    assert context.query_history[0]['message'] == 'm3'


def test_recent_bugs_newest_first_and_bounded():
    context = ConversationContext(user_id='u1')
    for n in range(Config.RECENT_BUGS_LIMIT + 2):
        context.push_bug({'id': str(n), 'title': f"bug {n}"})
    assert len(context.recent_bugs) == Config.RECENT_BUGS_LIMIT
    assert context.recent_bugs[0]['id'] == str(Config.RECENT_BUGS_LIMIT + 1)


def test_push_bug_moves_existing_entry_to_front():
    context = ConversationContext(user_id='u1')
    context.push_bug({'id': '1'})
    context.push_bug({'id': '2'})
    context.push_bug({'id': '1', 'status': 'closed'})
    assert [b['id'] for b in context.recent_bugs] == ['1', '2']
    assert context.recent_bugs[0]['status'] == 'closed'


def test_merge_result_keeps_list_order():
    context = ConversationContext(user_id='u1')
    context.merge_result({
        'bugs': [{'id': '3', 'title': 'c'}, {'id': '2', 'title': 'b'}],
        'team': {'id': 't1', 'name': 'Core', 'members': []},
    })
    assert [b['id'] for b in context.recent_bugs] == ['3', '2']
    assert context.current_team == {'id': 't1', 'name': 'Core'}


def test_update_applies_patch_and_bounds(store):
    bugs = [{'id': str(n)} for n in range(Config.RECENT_BUGS_LIMIT + 5)]
    context = store.update('u1', {'recent_bugs': bugs, 'last_intent': 'bug_list'})
    assert len(context.recent_bugs) == Config.RECENT_BUGS_LIMIT
    assert context.recent_bugs[0]['id'] == '0'
    assert context.last_intent == 'bug_list'


def test_unknown_patch_field_is_rejected():
    with pytest.raises(ValueError):
        apply_patch(ConversationContext(user_id='u1'), {'favourite_colour': 'blue'})


def test_merged_view_does_not_touch_stored(store):
    stored = store.get('u1')
    view = stored.merged_with({'current_team': {'id': 't7', 'name': 'Falcons', 'members': []}})
    assert view.current_team == {'id': 't7', 'name': 'Falcons'}
    assert stored.current_team is None


def test_threaded_view_sees_previous_segment():
    context = ConversationContext(user_id='u1')
    previous = {'success': True, 'data': {'bugs': [{'id': '9'}]}}
    view = context.threaded_with(previous)
    assert view.recent_bugs[0]['id'] == '9'
    assert view.last_query == {'action_result': previous}
    assert list(context.recent_bugs) == []


def test_clear_drops_context_and_history(store):
    store.get('u1')
    store.append_history('u1', "hello")
    store.clear('u1')
    assert not store.has_context('u1')
    assert store.get_history('u1') == []


def test_to_dict_is_serializable():

    context = ConversationContext(user_id='u1')
    context.push_bug({'id': '1', 'title': 'x'})
    json.dumps(context.to_dict())


async def test_lock_is_per_user():
    store = InMemorySessionStore()
    assert store.lock('u1') is store.lock('u1')
    assert store.lock('u1') is not store.lock('u2')

    async with store.lock('u1'):
        # another user's lock is free while u1 holds theirs
        await asyncio.wait_for(store.lock('u2').acquire(), timeout=0.1)
        store.lock('u2').release()


async def test_clear_drops_idle_lock_but_keeps_held_one():
    store = InMemorySessionStore()
    idle = store.lock('u1')
    store.clear('u1')
    assert store.lock('u1') is not idle

    held = store.lock('u2')
    async with held:
        store.clear('u2')
        assert store.lock('u2') is held
