from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Query, Response

from refugio.api.deps import Registry
from refugio.api.errors import service_errors, slug_not_found, unwrap
from refugio.api.v1.schemas import EventCreate, EventOut, EventUpdate, RsvpOut
from refugio.auth.deps import CurrentIdentity, OptionalIdentity, StaffIdentity
from refugio.auth.identity import has_role
from refugio.collections import QueryOptions
from refugio.schemas import EventRegistration, RegistrationForm
from refugio.schemas.profiles import STAFF_ROLES
from refugio.services.rsvp_service import validate_registration
from refugio.stores import EventStore

router = APIRouter(prefix="/events", tags=["events"])


def _store(registry: Registry, options: QueryOptions | None = None) -> EventStore:
    return EventStore(registry.events, options=options, autoload=False)


@router.get("", response_model=list[EventOut])
def list_events(registry: Registry, options: Annotated[QueryOptions, Query()]):
    with _store(registry, options) as store:
        return unwrap(store.refresh())


@router.get("/upcoming", response_model=list[EventOut])
def upcoming_events(registry: Registry, limit: Annotated[int | None, Query(ge=1)] = None):
    with _store(registry, QueryOptions(published=True)) as store:
        unwrap(store.refresh())
        return store.upcoming(limit=limit)


@router.get("/slug/{slug}", response_model=EventOut)
def get_event_by_slug(slug: str, registry: Registry):
    with _store(registry) as store:
        event = unwrap(store.get_by_slug(slug))
    if event is None:
        raise slug_not_found("event", slug)
    return event


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, registry: Registry):
    with service_errors():
        return registry.events.require(event_id)


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, registry: Registry, identity: StaffIdentity):
    with _store(registry) as store:
        return unwrap(store.create(payload.model_dump(exclude_unset=True), identity))


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    registry: Registry,
    identity: StaffIdentity,
    if_match: Annotated[int | None, Header()] = None,
):
    with _store(registry) as store:
        return unwrap(
            store.update(event_id, payload.model_dump(exclude_unset=True), expected_version=if_match)
        )


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: str, registry: Registry, identity: StaffIdentity):
    with _store(registry) as store:
        unwrap(store.delete(event_id))
    return Response(status_code=204)


@router.post("/{event_id}/rsvp", response_model=RsvpOut, status_code=201)
def rsvp(event_id: str, form: RegistrationForm, registry: Registry, identity: OptionalIdentity):
    with service_errors():
        event = registry.events.require(event_id)

    errors = validate_registration(form, event)
    if errors:
        raise HTTPException(
            status_code=422,
            detail={"code": "VALIDATION_FAILED", "message": "registration is invalid", "fields": errors},
        )

    with _store(registry) as store:
        registration, updated = unwrap(store.register(event_id, form, identity))
    return RsvpOut(registration=registration, event=EventOut.model_validate(updated.model_dump()))


@router.get("/{event_id}/registrations", response_model=list[EventRegistration])
def list_registrations(event_id: str, registry: Registry, identity: StaffIdentity):
    with _store(registry) as store:
        return unwrap(store.registrations(event_id))


@router.post("/registrations/{registration_id}/cancel", response_model=EventRegistration)
def cancel_registration(registration_id: str, registry: Registry, identity: CurrentIdentity):
    with service_errors():
        registration = registry.events.get_registration(registration_id)
    if not (
        identity.owns(registration.user_id, registration.email) or has_role(identity, STAFF_ROLES)
    ):
        raise HTTPException(
            status_code=403,
            detail={"code": "FORBIDDEN", "message": "not your registration"},
        )

    with _store(registry) as store:
        return unwrap(store.cancel_registration(registration_id))
