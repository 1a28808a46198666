from __future__ import annotations

import re
from urllib.parse import parse_qs, urlsplit

import pytest
from fakes import BOOKINGS_SCHEMA, OFFERINGS_SCHEMA, FakeCRMClient, FakeNotifier, offering_properties

import app.modules.booking.service as booking_service_module
from app.core.config import Settings
from app.core.enums import PaymentStatusEnum
from app.modules.booking.repository import BookingRepository, generate_booking_id
from app.modules.booking.schemas import BookingCreateRequest
from app.modules.booking.service import BookingService, can_transition
from app.modules.contacts.repository import ContactsRepository
from app.modules.contacts.service import ContactsService
from app.modules.offerings.repository import OfferingsRepository
from app.modules.offerings.service import OfferingsService
from app.modules.webhooks.service import PaymentWebhookService
from app.shared.exceptions import (
    CreateException,
    DuplicateBookingException,
    FetchException,
    OfferingPastException,
    OfferingUnavailableException,
)

BOOKING_ID_PATTERN = re.compile(r"^BK-[A-Z0-9]+-[A-Z0-9]+$")


def _service(crm: FakeCRMClient, settings: Settings) -> BookingService:
    return BookingService(
        offerings_service=OfferingsService(OfferingsRepository(crm, settings)),
        contacts_service=ContactsService(ContactsRepository(crm), settings),
        booking_repository=BookingRepository(crm, settings),
        settings=settings,
    )


def _request(offering_id: str, **extra: object) -> BookingCreateRequest:
    return BookingCreateRequest.model_validate(
        {
            "offeringId": offering_id,
            "parent": {
                "firstName": "Jane",
                "lastName": "Smith",
                "email": "jane@example.com",
                "phone": "07700 900123",
            },
            "student": {
                "firstName": "Tom",
                "lastName": "Smith",
                "email": "tom@example.com",
                "phone": "07700 900456",
            },
            **extra,
        },
    )


@pytest.fixture(autouse=True)
def _fixed_today(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(booking_service_module, "today_date_string", lambda: "2099-03-10")


def test_generated_booking_id_format() -> None:
    ids = {generate_booking_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(BOOKING_ID_PATTERN.match(booking_id) for booking_id in ids)


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        ("pending", PaymentStatusEnum.PAID, True),
        ("pending", PaymentStatusEnum.EXPIRED, True),
        ("paid", PaymentStatusEnum.EXPIRED, False),
        ("expired", PaymentStatusEnum.PAID, True),
        ("expired", PaymentStatusEnum.EXPIRED, False),
        ("failed", PaymentStatusEnum.PAID, True),
        ("paid", PaymentStatusEnum.PAID, False),
        ("", PaymentStatusEnum.PAID, False),
    ],
)
def test_payment_status_transitions(current: str, target: PaymentStatusEnum, allowed: bool) -> None:
    assert can_transition(current, target) is allowed


@pytest.mark.asyncio
async def test_create_booking_records_pending_booking_at_offering_price(
    crm: FakeCRMClient,
    settings: Settings,
) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())

    created = await _service(crm, settings).create_booking(_request(offering_id, price=1))

    assert BOOKING_ID_PATTERN.match(created.booking_id)
    [booking] = crm.bookings()
    assert booking["id"] == created.booking_id
    assert booking["payment_status"] == "pending"
    assert booking["price"] == 49.0
    assert booking["workshop_offering_id"] == offering_id
    assert booking["parent_contact_id"] == created.parent_contact_id
    assert booking["student_contact_id"] == created.student_contact_id


@pytest.mark.asyncio
async def test_checkout_url_carries_booking_context(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())

    created = await _service(crm, settings).create_booking(_request(offering_id))

    url = urlsplit(created.checkout_url)
    query = {key: values[0] for key, values in parse_qs(url.query).items()}
    assert f"{url.scheme}://{url.netloc}{url.path}" == settings.checkout_base_url
    assert query["booking_id"] == created.booking_id
    assert query["price_id"] == "price_123"
    assert query["email"] == "jane@example.com"
    assert query["name"] == "Jane Smith"
    assert query["phone"] == "+447700900123"
    assert query["student_name"] == "Tom Smith"
    assert query["offering_id"] == offering_id
    assert query["date"] == "2099-03-14"
    assert query["amount"] == "49"


@pytest.mark.asyncio
async def test_student_is_linked_to_parent(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())

    created = await _service(crm, settings).create_booking(_request(offering_id))

    student = crm.contacts["tom@example.com"]
    assert {"id": settings.ghl_parent_contact_field_id, "field_value": created.parent_contact_id} in (
        student["customFields"]
    )
    assert "workshop-gcse-maths-2099-03-14" in student["tags"]


@pytest.mark.asyncio
async def test_resubmission_reuses_pending_booking(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())
    service = _service(crm, settings)

    first = await service.create_booking(_request(offering_id))
    second = await service.create_booking(_request(offering_id))

    assert second.booking_id == first.booking_id
    assert second.record_id == first.record_id
    assert len(crm.bookings()) == 1
    assert crm.calls.count("create_contact") == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["paid", "expired"])
async def test_resolved_booking_blocks_new_booking(
    crm: FakeCRMClient,
    settings: Settings,
    status: str,
) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())
    service = _service(crm, settings)
    await service.create_booking(_request(offering_id))
    [record_id] = crm.records[BOOKINGS_SCHEMA]
    crm.records[BOOKINGS_SCHEMA][record_id]["properties"]["payment_status"] = status

    with pytest.raises(DuplicateBookingException) as exc:
        await service.create_booking(_request(offering_id))
    assert exc.value.message == "Student already booked for this workshop"
    assert len(crm.bookings()) == 1


@pytest.mark.asyncio
async def test_rejected_offering_touches_no_contacts(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties(availability="full"))

    with pytest.raises(OfferingUnavailableException):
        await _service(crm, settings).create_booking(_request(offering_id))
    assert crm.calls == ["get_record"]
    assert crm.contacts == {}


@pytest.mark.asyncio
async def test_past_offering_rejected_before_contacts(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties(workshop_date="2099-03-09"))

    with pytest.raises(OfferingPastException):
        await _service(crm, settings).create_booking(_request(offering_id))
    assert crm.contacts == {}


@pytest.mark.asyncio
async def test_duplicate_lookup_failure_is_fetch_error(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())
    crm.fail_on.add("search_records")

    with pytest.raises(FetchException):
        await _service(crm, settings).create_booking(_request(offering_id))
    assert crm.bookings() == []


@pytest.mark.asyncio
async def test_booking_write_failure_is_create_error(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())
    crm.fail_on.add("create_record")

    with pytest.raises(CreateException) as exc:
        await _service(crm, settings).create_booking(_request(offering_id))
    assert exc.value.message == "Failed to create booking"


@pytest.mark.asyncio
async def test_abandoned_then_paid_checkout_ends_paid(crm: FakeCRMClient, settings: Settings) -> None:
    offering_id = crm.add_record(OFFERINGS_SCHEMA, offering_properties())
    service = _service(crm, settings)
    notifier = FakeNotifier()
    webhooks = PaymentWebhookService(BookingRepository(crm, settings), notifier)

    first = await service.create_booking(_request(offering_id))
    second = await service.create_booking(_request(offering_id))
    assert second.booking_id == first.booking_id

    def _session_event(event_type: str, session_id: str) -> dict[str, object]:
        session = {"id": session_id, "payment_intent": "pi_b", "metadata": {"bookingId": first.booking_id}}
        return {"type": event_type, "data": {"object": session}}

    assert await webhooks.handle_event(_session_event("checkout.session.expired", "cs_a")) == "expired"
    assert await webhooks.handle_event(_session_event("checkout.session.completed", "cs_b")) == "processed"

    [booking] = crm.bookings()
    assert booking["payment_status"] == "paid"
    assert booking["payment_reference"] == "pi_b"
    assert [sent.payment.stripe_session_id for sent in notifier.sent] == ["cs_b"]
    with pytest.raises(DuplicateBookingException):
        await service.create_booking(_request(offering_id))
