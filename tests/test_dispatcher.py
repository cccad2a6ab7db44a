"""
Conversation flows through the dispatcher, with fake collaborators.
"""

import asyncio
from datetime import timedelta

import pytest

from app.core.config import settings
from app.core.exceptions import CollaboratorError, DeliveryError
from app.flow.states import ConversationState
from app.flow.types import CalculatorFlow, PendingImageFlow
from helpers import (
    DURABLE_URL,
    NOW,
    OTHER_USER,
    USER,
    image_event,
    location_event,
    make_premium,
    make_user,
    text_event,
    authority_invoice,
)


def texts(outcome):
    return [message.text for message in outcome.replies]


def state_of(dispatcher, identity=USER):
    return dispatcher.services.sessions.get(identity).state


async def test_first_contact_runs_onboarding(dispatcher, store, transport):
    outcome = await dispatcher.dispatch_event(text_event("hi"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_NAME
    assert "May I know your name?" in texts(outcome)[0]
    assert transport.bodies_to(USER) == texts(outcome)

    outcome = await dispatcher.dispatch_event(text_event("Tendai"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_PHONE
    assert "Thanks, Tendai!" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("call me maybe"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_PHONE
    assert "doesn't look like a phone number" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("+263 77 123 4567"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert texts(outcome)[0].startswith("Perfect! All set.")
    assert "Hello Tendai!" in texts(outcome)[0]

    user = await store.find_one("users", {"phone": USER})
    assert user["name"] == "Tendai"
    assert user["phone_numeric"] == "+263771234567"


async def test_first_message_is_welcomed_whatever_it_says(dispatcher):
    outcome = await dispatcher.dispatch_event(text_event("2"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_NAME


async def test_known_user_without_session_starts_at_main_menu(dispatcher, store):
    await make_user(store)
    outcome = await dispatcher.dispatch_event(text_event("hello"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "Hello Tendai!" in texts(outcome)[0]


async def test_greeting_from_premium_user_shows_premium_menu(dispatcher, store):
    await make_premium(store)
    outcome = await dispatcher.dispatch_event(text_event("Hi there"), now=NOW)
    assert outcome.state == ConversationState.PREMIUM_MENU
    assert "Premium Access Active" in texts(outcome)[0]


async def test_menu_overrides_any_state(dispatcher, store):
    await make_premium(store)
    await dispatcher.dispatch_event(text_event("2"), now=NOW)
    assert state_of(dispatcher) == ConversationState.CALCULATOR_PLANT

    outcome = await dispatcher.dispatch_event(text_event("  MENU "), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "Please choose" in texts(outcome)[0]


@pytest.mark.parametrize("state", list(ConversationState))
async def test_menu_from_every_state(dispatcher, store, state):
    await make_premium(store)
    dispatcher.services.sessions.get_or_create(USER, state).state = state

    outcome = await dispatcher.dispatch_event(text_event("menu"), now=NOW)

    assert outcome.error is None
    assert outcome.state == ConversationState.MAIN_MENU
    assert state_of(dispatcher) == ConversationState.MAIN_MENU


async def test_greeting_outside_main_menu_is_ordinary_text(dispatcher, store, ai):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("6"), now=NOW)
    assert state_of(dispatcher) == ConversationState.PRODUCT_QA

    outcome = await dispatcher.dispatch_event(text_event("hello"), now=NOW)
    assert outcome.state == ConversationState.PRODUCT_QA
    assert ai.questions[-1][0] == "hello"
    assert texts(outcome)[0] == ai.answer_text


async def test_premium_option_without_entitlement_asks_for_receipt(dispatcher, store):
    await make_user(store)
    outcome = await dispatcher.dispatch_event(text_event("1"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_RECEIPT
    assert "Premium Feature" in texts(outcome)[0]
    assert f"{settings.PREMIUM_DURATION_DAYS} days access" in texts(outcome)[0]


async def test_expired_entitlement_is_gated_mid_flow(dispatcher, store):
    await make_premium(store, days=1)
    await dispatcher.dispatch_event(text_event("2"), now=NOW)
    assert state_of(dispatcher) == ConversationState.CALCULATOR_PLANT

    outcome = await dispatcher.dispatch_event(text_event("Maize"), now=NOW + timedelta(days=2))
    assert outcome.state == ConversationState.AWAITING_RECEIPT
    assert "Premium Feature" in texts(outcome)[0]


async def test_calculator_medium_yield(dispatcher, store):
    await make_premium(store)
    await dispatcher.dispatch_event(text_event("2"), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("Maize"), now=NOW)
    assert outcome.state == ConversationState.CALCULATOR_YIELD
    assert "Plant selected: *Maize*" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("lots"), now=NOW)
    assert outcome.state == ConversationState.CALCULATOR_YIELD
    assert "valid yield amount" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("3"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "300kg/ha" in texts(outcome)[0]

    user = await store.find_one("users", {"phone": USER})
    assert user["calculator_data"]["plant_type"] == "Maize"
    assert user["calculator_data"]["target_yield"] == 3.0


async def test_calculator_low_yield_boundary(dispatcher, store):
    await make_premium(store)
    for text in ("2", "Cotton"):
        await dispatcher.dispatch_event(text_event(text), now=NOW)
    outcome = await dispatcher.dispatch_event(text_event("2"), now=NOW)
    assert "150kg/ha" in texts(outcome)[0]


async def test_calculator_high_yield_asks_about_soil(dispatcher, store):
    await make_premium(store)
    for text in ("2", "Maize"):
        await dispatcher.dispatch_event(text_event(text), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("6.5 tonnes"), now=NOW)
    assert outcome.state == ConversationState.CALCULATOR_SOIL_CHECK
    assert isinstance(dispatcher.services.sessions.get(USER).flow, CalculatorFlow)

    outcome = await dispatcher.dispatch_event(text_event("maybe"), now=NOW)
    assert outcome.state == ConversationState.CALCULATOR_SOIL_CHECK

    outcome = await dispatcher.dispatch_event(text_event("no"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "target yield of 6.5 tonnes" in texts(outcome)[0]

    user = await store.find_one("users", {"phone": USER})
    assert user["calculator_data"]["soil_analysis_status"] == "no"


async def test_unexpected_error_keeps_state(dispatcher, store, ai, transport):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("6"), now=NOW)
    ai.answer_error = RuntimeError("boom")

    outcome = await dispatcher.dispatch_event(text_event("what is best for soya"), now=NOW)
    assert outcome.error == "boom"
    assert not outcome.ok
    assert outcome.state == ConversationState.PRODUCT_QA
    assert state_of(dispatcher) == ConversationState.PRODUCT_QA
    assert "encountered an error" in transport.bodies_to(USER)[-1]


async def test_collaborator_error_in_product_qa_falls_back_to_catalog(dispatcher, store, ai):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("6"), now=NOW)
    ai.answer_error = CollaboratorError("OpenAI down")

    outcome = await dispatcher.dispatch_event(text_event("what is best for soya"), now=NOW)
    assert outcome.state == ConversationState.PRODUCT_QA
    assert "Compound D" in texts(outcome)[0]


async def test_general_query_collaborator_error_sends_fallback(dispatcher, store, ai):
    await make_user(store)
    ai.answer_error = CollaboratorError("OpenAI down")

    outcome = await dispatcher.dispatch_event(text_event("when should I plant"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "didn't quite understand" in texts(outcome)[0]


async def test_failed_reply_does_not_stop_the_rest(dispatcher, store, transport):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("6"), now=NOW)
    transport.failures = [DeliveryError("rejected")]

    outcome = await dispatcher.dispatch_event(text_event("compound"), now=NOW)
    assert outcome.failed == 1
    assert outcome.delivered == len(outcome.replies) - 1
    assert outcome.state == ConversationState.PRODUCT_QA


async def test_product_search_single_hit_shows_detail(dispatcher, store):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("6"), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("compound"), now=NOW)
    assert "NPK: 7-14-7" in texts(outcome)[0]
    assert "Ask another question" in texts(outcome)[1]


async def test_show_products_from_anywhere(dispatcher, store):
    await make_premium(store)
    await dispatcher.dispatch_event(text_event("2"), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("show me UCF products"), now=NOW)
    assert outcome.state == ConversationState.PRODUCT_QA
    assert "Compound D" in texts(outcome)[0]
    assert "Ammonium Nitrate" in texts(outcome)[0]


async def test_location_returns_nearest_shops(dispatcher, store, transport):
    await make_user(store)
    await dispatcher.dispatch_event(text_event("3"), now=NOW)
    assert state_of(dispatcher) == ConversationState.AWAITING_LOCATION

    outcome = await dispatcher.dispatch_event(location_event(-17.83, 31.05), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    shops = texts(outcome)[0]
    assert shops.index("Harare Agro Centre") < shops.index("Bulawayo Farm Supplies")
    assert "Broken Shop" not in shops
    assert any("Finding nearest" in body for body in transport.bodies_to(USER))

    user = await store.find_one("users", {"phone": USER})
    assert user["location"] == {"latitude": -17.83, "longitude": 31.05}


async def test_receipt_from_free_user_grants_premium(dispatcher, store, transport, users):
    await make_user(store)
    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)

    assert outcome.state == ConversationState.MAIN_MENU
    assert "Receipt Verified Successfully" in texts(outcome)[0]
    assert "INV-001" in texts(outcome)[0]
    assert "Analyzing your receipt" in transport.bodies_to(USER)[0]

    profile = await users.get(USER)
    assert profile.is_premium
    assert profile.premium_expiry_date.date() == (NOW + timedelta(days=30)).date()
    assert profile.receipt_image_url == DURABLE_URL

    receipts = await store.load("receipts")
    assert [r["status"] for r in receipts] == ["approved"]


async def test_same_receipt_twice_is_replayed(dispatcher, store):
    await make_user(store)
    await make_user(store, identity=OTHER_USER, name="Rudo")

    await dispatcher.dispatch_event(image_event(), now=NOW)
    outcome = await dispatcher.dispatch_event(image_event(identity=OTHER_USER), now=NOW)

    assert outcome.state == ConversationState.AWAITING_RECEIPT
    assert "Receipt Already Used" in texts(outcome)[0]
    statuses = sorted(r["status"] for r in await store.load("receipts"))
    assert statuses == ["approved", "pending"]


async def test_invalid_receipt_lists_every_issue(dispatcher, store, authority):
    await make_user(store)
    authority.invoice = authority_invoice(invoice_number=None, invoice_date="01/01/2024 08:00:00")

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)
    assert outcome.state == ConversationState.AWAITING_RECEIPT
    body = texts(outcome)[0]
    assert "Invoice number not found" in body
    assert "older than 3 months" in body


async def test_receipt_rejected_by_authority(dispatcher, store, authority, users):
    await make_user(store)
    authority.invoice = authority_invoice(is_valid=False)

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)

    assert outcome.state == ConversationState.AWAITING_RECEIPT
    body = texts(outcome)[0]
    assert "Invoice Validation Failed" in body
    assert "not valid according to ZIMRA" in body
    assert not (await users.get(USER)).is_premium
    receipts = await store.load("receipts")
    assert [r["status"] for r in receipts] == ["pending"]


async def test_receipt_without_qr_code_is_refused(dispatcher, store, decoder, users):
    await make_user(store)
    decoder.payload = None

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)

    assert outcome.state == ConversationState.AWAITING_RECEIPT
    assert "QR Code Required" in texts(outcome)[0]
    assert not (await users.get(USER)).is_premium
    assert (await store.load("receipts"))[0]["rejection_reason"] == "QR code required"


async def test_non_image_attachment_is_refused(dispatcher, store):
    await make_user(store)
    outcome = await dispatcher.dispatch_event(image_event(media_type="application/pdf"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "send an image file" in texts(outcome)[0]


async def test_download_failure_is_reported(dispatcher, store, fetcher):
    await make_user(store)
    fetcher.error = CollaboratorError("Media download failed")

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "trouble processing that image" in texts(outcome)[0]


async def test_premium_image_waits_for_purpose(dispatcher, store, ai):
    await make_premium(store)
    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)
    assert outcome.state == ConversationState.AWAITING_IMAGE_PURPOSE
    assert isinstance(dispatcher.services.sessions.get(USER).flow, PendingImageFlow)

    outcome = await dispatcher.dispatch_event(text_event("9"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_IMAGE_PURPOSE

    outcome = await dispatcher.dispatch_event(text_event("1"), now=NOW + timedelta(seconds=30))
    assert outcome.state == ConversationState.MAIN_MENU
    assert "Leaf Rust" in texts(outcome)[0]
    assert ai.classified[-1][1] == "crop"

    records = await store.load("crop_diagnosis")
    assert records[0]["image"] == DURABLE_URL
    assert records[0]["label"] == "Leaf Rust"


async def test_pending_image_expires(dispatcher, store, ai):
    await make_premium(store)
    await dispatcher.dispatch_event(image_event(), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("3"), now=NOW + timedelta(minutes=5))
    assert outcome.state == ConversationState.MAIN_MENU
    assert "Image expired" in texts(outcome)[0]
    assert ai.classified == []


async def test_receipt_choice_for_premium_user_shows_status(dispatcher, store):
    await make_premium(store)
    await dispatcher.dispatch_event(image_event(), now=NOW)

    outcome = await dispatcher.dispatch_event(text_event("2"), now=NOW)
    assert outcome.state == ConversationState.PREMIUM_ACCESS_INFO
    assert "already have premium access" in texts(outcome)[0]


async def test_diagnosis_image_is_classified(dispatcher, store, ai):
    await make_premium(store)
    await dispatcher.dispatch_event(text_event("1"), now=NOW)
    assert state_of(dispatcher) == ConversationState.AWAITING_DIAGNOSIS_IMAGE

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert ai.classified[-1][1] == "crop"


async def test_classification_failure_apologises(dispatcher, store, ai):
    await make_premium(store)
    await dispatcher.dispatch_event(text_event("1"), now=NOW)
    ai.classify_error = CollaboratorError("vision model down")

    outcome = await dispatcher.dispatch_event(image_event(), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "trouble analyzing that image" in texts(outcome)[0]


async def test_expert_request_is_recorded_and_forwarded(dispatcher, store, transport, monkeypatch):
    agronomist = "whatsapp:+263770000000"
    monkeypatch.setattr(settings, "AGRONOMIST_IDENTITY", agronomist)
    await make_premium(store, phone_numeric="+263771234567")

    outcome = await dispatcher.dispatch_event(text_event("4"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_EXPERT_EMAIL

    outcome = await dispatcher.dispatch_event(text_event("not-an-email"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_EXPERT_EMAIL

    outcome = await dispatcher.dispatch_event(text_event("tendai@example.com"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_EXPERT_ISSUE

    outcome = await dispatcher.dispatch_event(text_event("My maize leaves are turning yellow"), now=NOW)
    assert outcome.state == ConversationState.MAIN_MENU
    assert "Request Sent!" in texts(outcome)[0]

    requests = await store.load("agronomist_requests")
    assert requests[0]["question"] == "My maize leaves are turning yellow"
    assert requests[0]["email"] == "tendai@example.com"
    assert requests[0]["status"] == "pending"
    assert "My maize leaves are turning yellow" in transport.bodies_to(agronomist)[0]


async def test_expert_request_without_forward_is_recorded(dispatcher, store, monkeypatch):
    monkeypatch.setattr(settings, "AGRONOMIST_IDENTITY", None)
    await make_premium(store, name=None, email="tendai@example.com")

    outcome = await dispatcher.dispatch_event(text_event("4"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_EXPERT_NAME

    outcome = await dispatcher.dispatch_event(text_event("Tendai"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_EXPERT_ISSUE

    outcome = await dispatcher.dispatch_event(text_event("Aphids on my cabbages"), now=NOW)
    assert "Request Recorded!" in texts(outcome)[0]
    assert len(await store.load("agronomist_requests")) == 1


async def test_guide_selection_sends_document(dispatcher, store):
    await make_premium(store)
    outcome = await dispatcher.dispatch_event(text_event("5"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_PDF_SELECTION
    assert "Maize Production Guide" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("4"), now=NOW)
    assert outcome.state == ConversationState.AWAITING_PDF_SELECTION
    assert "between 1 and 1" in texts(outcome)[0]

    outcome = await dispatcher.dispatch_event(text_event("1"), now=NOW)
    assert outcome.state == ConversationState.PREMIUM_MENU
    assert outcome.replies[0].media_url == "https://files.example.com/guides/maize.pdf"


async def test_long_reply_is_split(dispatcher, store, ai, transport):
    await make_user(store)
    ai.answer_text = "\n\n".join(["word " * 100] * 8)

    outcome = await dispatcher.dispatch_event(text_event("tell me everything about rain"), now=NOW)
    assert outcome.delivered > len(outcome.replies)
    assert all(len(body) <= 1600 for body in transport.bodies_to(USER))


async def test_events_for_one_identity_are_serialized(dispatcher, store, ai):
    await make_user(store)
    await make_user(store, identity=OTHER_USER, name="Rudo")
    active = {"now": 0, "max": 0}
    original = ai.answer

    async def slow_answer(question, context=""):
        active["now"] += 1
        active["max"] = max(active["max"], active["now"])
        await asyncio.sleep(0.01)
        active["now"] -= 1
        return await original(question, context)

    ai.answer = slow_answer

    await asyncio.gather(
        dispatcher.dispatch_event(text_event("when does it rain"), now=NOW),
        dispatcher.dispatch_event(text_event("when should I plant"), now=NOW),
    )
    assert active["max"] == 1

    await asyncio.gather(
        dispatcher.dispatch_event(text_event("when does it rain"), now=NOW),
        dispatcher.dispatch_event(text_event("when should I plant", identity=OTHER_USER), now=NOW),
    )
    assert active["max"] == 2


async def test_profile_store_fault_sends_retry_prompt(dispatcher, store, transport, monkeypatch):
    async def broken_get(identity):
        raise RuntimeError("users collection unavailable")

    monkeypatch.setattr(dispatcher.services.users, "get", broken_get)
    outcome = await dispatcher.dispatch_event(text_event("hello"), now=NOW)

    assert outcome.error == "users collection unavailable"
    bodies = transport.bodies_to(USER)
    assert len(bodies) == 1
    assert "encountered an error" in bodies[0]


async def test_last_interaction_fault_still_delivers_replies(dispatcher, store, transport, monkeypatch):
    await make_user(store)

    async def broken_touch(identity):
        raise RuntimeError("write failed")

    monkeypatch.setattr(dispatcher.services.users, "touch", broken_touch)
    outcome = await dispatcher.dispatch_event(text_event("menu"), now=NOW)

    assert outcome.error is None
    assert outcome.state == ConversationState.MAIN_MENU
    assert outcome.delivered == 1
