from __future__ import annotations

from datetime import date, timedelta

import pytest

from refugio.auth.identity import Identity
from refugio.repositories import RepositoryRegistry
from refugio.schemas import RegistrationForm, RegistrationStatus
from refugio.services import FlowState, RegistrationFlow, validate_registration
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import ConflictError, NotFoundError, ValidationError
from refugio.services.rsvp_service import GENERAL_ERROR


def _form(**overrides) -> RegistrationForm:
    data = {"name": "María López", "email": "maria@example.com", "guests": 1}
    data.update(overrides)
    return RegistrationForm(**data)


@pytest.fixture
def study(registry: RepositoryRegistry):
    return registry.events.create(
        {
            "title": "Estudio Bíblico",
            "event_date": date.today() + timedelta(days=2),
            "max_attendees": 10,
            "requires_rsvp": True,
            "is_published": True,
        }
    )


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"name": ""}, "name"),
        ({"name": "M"}, "name"),
        ({"email": ""}, "email"),
        ({"email": "maria@"}, "email"),
        ({"phone": "abc"}, "phone"),
        ({"guests": 0}, "guests"),
        ({"guests": 11}, "guests"),
    ],
)
def test_validation_flags_the_field(study, overrides, field):
    errors = validate_registration(_form(**overrides), study)

    assert field in errors


def test_valid_form_has_no_errors(study):
    assert validate_registration(_form(phone="+34 600 123 456", guests=3), study) == {}


def test_guests_checked_against_remaining_spots(registry: RepositoryRegistry, study):
    registry.events.register(study.id, _form(guests=8))
    event = registry.events.require(study.id)
    assert event.current_attendees == 8

    errors = validate_registration(_form(guests=3), event)
    assert errors == {"guests": "Only 2 spots left"}
    assert validate_registration(_form(guests=2), event) == {}


def test_register_increments_attendees(registry: RepositoryRegistry, study):
    registration, event = registry.events.register(
        study.id, _form(guests=3, phone="", special_requests="  ")
    )

    assert event.current_attendees == 3
    assert event.version == study.version + 1
    assert event.updated_at > study.updated_at
    assert registration.event_id == study.id
    assert registration.status == RegistrationStatus.CONFIRMED
    assert registration.phone is None
    assert registration.special_requests is None
    assert registry.events.require(study.id).current_attendees == 3


def test_register_fifty_capacity_scenario(registry: RepositoryRegistry):
    event = registry.events.create(
        {"title": "Conferencia", "event_date": date.today() + timedelta(days=9), "max_attendees": 50}
    )

    _, updated = registry.events.register(event.id, _form(guests=3))

    assert updated.current_attendees == 3
    assert updated.available_spots == 47


def test_register_beyond_capacity_is_rejected(registry: RepositoryRegistry, study):
    registry.events.register(study.id, _form(guests=8))

    with pytest.raises(ConflictError) as exc:
        registry.events.register(study.id, _form(guests=3, email="otro@example.com"))

    assert exc.value.code == ErrorCode.EVENT_FULL.value
    assert exc.value.context["available"] == 2
    assert registry.events.require(study.id).current_attendees == 8
    assert len(registry.events.list_registrations(study.id)) == 1


def test_register_unknown_event(registry: RepositoryRegistry):
    with pytest.raises(NotFoundError) as exc:
        registry.events.register("missing", _form())

    assert exc.value.code == ErrorCode.EVENT_NOT_FOUND.value


def test_register_rejects_bad_email(registry: RepositoryRegistry, study):
    with pytest.raises(ValidationError):
        registry.events.register(study.id, _form(email="not-an-email"))


def test_register_records_the_signed_in_user(registry: RepositoryRegistry, study):
    identity = Identity(id="user-1", email="maria@example.com")

    registration, _ = registry.events.register(study.id, _form(), identity)

    assert registration.user_id == "user-1"


def test_cancel_registration_keeps_counter(registry: RepositoryRegistry, study):
    registration, _ = registry.events.register(study.id, _form(guests=2))

    cancelled = registry.events.cancel_registration(registration.id)
    again = registry.events.cancel_registration(registration.id)

    assert cancelled.status == RegistrationStatus.CANCELLED
    assert cancelled.version == 2
    assert again.version == 2
    assert registry.events.list_registrations(study.id) == []
    assert len(registry.events.list_registrations(study.id, status=None)) == 1
    assert registry.events.require(study.id).current_attendees == 2


def test_cancel_unknown_registration(registry: RepositoryRegistry):
    with pytest.raises(NotFoundError) as exc:
        registry.events.cancel_registration("missing")

    assert exc.value.code == ErrorCode.REGISTRATION_NOT_FOUND.value


def test_flow_prefills_from_identity(registry: RepositoryRegistry, study):
    identity = Identity(id="u1", email="ana@example.com", display_name="Ana Ruiz")

    flow = RegistrationFlow(study, registry.events, identity=identity)

    assert flow.state == FlowState.IDLE
    assert flow.form.name == "Ana Ruiz"
    assert flow.form.email == "ana@example.com"


def test_flow_validation_failure_stays_idle(registry: RepositoryRegistry, study):
    flow = RegistrationFlow(study, registry.events)

    assert flow.submit(_form(name="", email="bad")) is False

    assert flow.state == FlowState.IDLE
    assert set(flow.field_errors) == {"name", "email"}
    assert flow.general_error is None
    assert registry.events.list_registrations(study.id) == []

    flow.update_form(name="Ana Ruiz")
    assert set(flow.field_errors) == {"email"}


def test_flow_success_calls_back(registry: RepositoryRegistry, study):
    seen = []
    flow = RegistrationFlow(study, registry.events, on_success=lambda r, e: seen.append((r, e)))

    assert flow.submit(_form(guests=2)) is True

    assert flow.state == FlowState.SUCCESS
    assert flow.event.current_attendees == 2
    assert flow.registration.guests == 2
    assert len(seen) == 1


def test_flow_server_failure_is_general(registry: RepositoryRegistry, study):
    flow = RegistrationFlow(study, registry.events)
    # Validation passes against the stale snapshot, the server says full
    registry.events.register(study.id, _form(guests=9, email="otro@example.com"))

    assert flow.submit(_form(guests=2)) is False

    assert flow.state == FlowState.FAILED
    assert flow.general_error == GENERAL_ERROR
    assert flow.field_errors == {}

    flow.reset()
    assert flow.state == FlowState.IDLE
    assert flow.general_error is None


def test_flow_unexpected_exception_fails_and_can_retry(registry: RepositoryRegistry, study):
    flow = RegistrationFlow(study, registry.events)
    working = registry.events.register

    def broken(event_id, form, identity=None):
        raise RuntimeError("socket reset")

    registry.events.register = broken
    assert flow.submit(_form()) is False

    assert flow.state == FlowState.FAILED
    assert flow.general_error == GENERAL_ERROR

    registry.events.register = working
    assert flow.submit(_form()) is True
    assert flow.state == FlowState.SUCCESS
    assert flow.event.current_attendees == 1
