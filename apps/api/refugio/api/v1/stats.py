from fastapi import APIRouter

from refugio.api.deps import Registry
from refugio.api.errors import service_errors
from refugio.auth.deps import StaffIdentity
from refugio.services import event_stats

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/events")
def events_stats(registry: Registry, identity: StaffIdentity) -> dict[str, int]:
    events_repo = registry.events
    with service_errors():
        events = events_repo.list()
        registrations = [r for e in events for r in events_repo.list_registrations(e.id)]
    return event_stats(events, registrations).as_dict()
