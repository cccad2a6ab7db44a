from datetime import timedelta

from app.flow.states import ConversationState
from app.services.session_service import SessionStore
from helpers import NOW, OTHER_USER, USER


def make_store():
    store = SessionStore(idle_hours=24)
    for identity in (USER, OTHER_USER):
        session = store.get_or_create(identity, ConversationState.MAIN_MENU)
        store.save(session, now=NOW)
    return store


def test_get_or_create_keeps_existing_session():
    store = SessionStore(idle_hours=24)
    session = store.get_or_create(USER, ConversationState.NEW_CONTACT)
    session.state = ConversationState.PRODUCT_QA

    assert store.get_or_create(USER, ConversationState.MAIN_MENU).state == ConversationState.PRODUCT_QA
    assert len(store) == 1


def test_recent_sessions_survive_sweep():
    store = make_store()
    assert store.sweep_idle(now=NOW + timedelta(hours=23)) == 0
    assert len(store) == 2


def test_idle_sessions_are_evicted_once():
    store = make_store()
    later = NOW + timedelta(hours=25)

    assert store.sweep_idle(now=later) == 2
    assert store.sweep_idle(now=later) == 0
    assert store.get(USER) is None


async def test_sweep_skips_locked_session():
    store = make_store()

    async with store.lock(USER):
        assert store.sweep_idle(now=NOW + timedelta(hours=25)) == 1
        assert store.get(USER) is not None
        assert store.get(OTHER_USER) is None


def test_same_identity_shares_a_lock():
    store = SessionStore(idle_hours=24)
    assert store.lock(USER) is store.lock(USER)
    assert store.lock(USER) is not store.lock(OTHER_USER)
