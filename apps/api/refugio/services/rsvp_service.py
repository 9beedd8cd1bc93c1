from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, Callable

import structlog

from refugio.core.config import settings
from refugio.schemas import Event, EventRegistration, RegistrationForm
from refugio.services.exceptions import ServiceError

if TYPE_CHECKING:
    from refugio.auth.identity import Identity
    from refugio.repositories.events import EventOperations

logger = structlog.get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+]?[0-9\s\-()]{8,}$")
MIN_NAME_LENGTH = 2

GENERAL_ERROR = "We could not complete your registration. Please try again."


def validate_registration(
    form: RegistrationForm,
    event: Event,
    max_guests: int | None = None,
) -> dict[str, str]:
    """Client-side checks run before anything is sent. Empty dict means valid."""
    max_guests = max_guests or settings.rsvp_max_guests
    errors: dict[str, str] = {}

    name = form.name.strip()
    if not name:
        errors["name"] = "Name is required"
    elif len(name) < MIN_NAME_LENGTH:
        errors["name"] = f"Name must be at least {MIN_NAME_LENGTH} characters"

    email = form.email.strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_RE.match(email):
        errors["email"] = "Email is not valid"

    phone = form.phone.strip()
    if phone and not PHONE_RE.match(phone):
        errors["phone"] = "Phone number is not valid"

    if form.guests < 1 or form.guests > max_guests:
        errors["guests"] = f"Guests must be between 1 and {max_guests}"
    elif event.available_spots is not None and form.guests > event.available_spots:
        errors["guests"] = f"Only {event.available_spots} spots left"

    return errors


class FlowState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class RegistrationFlow:
    """One registration attempt for one event.

    ``field_errors`` only ever come from ``validate_registration``; anything
    the backend reports collapses into ``general_error``.
    """

    def __init__(
        self,
        event: Event,
        repository: "EventOperations",
        identity: "Identity | None" = None,
        on_success: Callable[[EventRegistration, Event], None] | None = None,
        max_guests: int | None = None,
    ) -> None:
        self.event = event
        self.repository = repository
        self.identity = identity
        self.on_success = on_success
        self.max_guests = max_guests or settings.rsvp_max_guests
        self.reset()

    def reset(self) -> None:
        self.state = FlowState.IDLE
        self.form = self._blank_form()
        self.field_errors: dict[str, str] = {}
        self.general_error: str | None = None
        self.registration: EventRegistration | None = None

    def _blank_form(self) -> RegistrationForm:
        if self.identity is None:
            return RegistrationForm()
        return RegistrationForm(name=self.identity.display_name or "", email=self.identity.email or "")

    def update_form(self, **changes) -> RegistrationForm:
        self.form = self.form.model_copy(update=changes)
        for name in changes:
            self.field_errors.pop(name, None)
        return self.form

    def submit(self, form: RegistrationForm | None = None) -> bool:
        if self.state == FlowState.SUBMITTING:
            return False
        if form is not None:
            self.form = form

        self.state = FlowState.VALIDATING
        self.general_error = None
        self.field_errors = validate_registration(self.form, self.event, self.max_guests)
        if self.field_errors:
            self.state = FlowState.IDLE
            return False

        self.state = FlowState.SUBMITTING
        try:
            registration, event = self.repository.register(self.event.id, self.form, self.identity)
        except ServiceError as exc:
            logger.warning(
                "rsvp_failed",
                event_id=self.event.id,
                code=exc.code,
                error=exc.message,
            )
            self.state = FlowState.FAILED
            self.general_error = GENERAL_ERROR
            return False
        except Exception:
            logger.exception("rsvp_crashed", event_id=self.event.id)
            self.state = FlowState.FAILED
            self.general_error = GENERAL_ERROR
            return False

        self.registration = registration
        self.event = event
        self.state = FlowState.SUCCESS
        logger.info("rsvp_succeeded", event_id=event.id, guests=registration.guests)
        if self.on_success is not None:
            self.on_success(registration, event)
        return True
