from refugio.services.rsvp_service import FlowState, RegistrationFlow, validate_registration
from refugio.services.stats_service import EventStats, event_stats

__all__ = [
    "validate_registration",
    "RegistrationFlow",
    "FlowState",
    "event_stats",
    "EventStats",
]
