"""Active sessions collector. Single source, no fallback."""

from .._types import (
    CollectorOutput,
    SessionsCard,
    build_warning,
    known_metric,
    unknown_metric,
)
from ..config import DEFAULT_ACTIVE_WINDOW_MINUTES
from ..openclaw import OpenClawClient
from ..schemas import SessionsPayload

SOURCE = "sessions"


async def collect_sessions_card(
    client: OpenClawClient,
    active_window_minutes: int = DEFAULT_ACTIVE_WINDOW_MINUTES
) -> CollectorOutput[SessionsCard]:
    sessions = await client.run_json(
        ["sessions", "--json", "--active", str(active_window_minutes)],
        SessionsPayload
    )

    if sessions.known:
        return CollectorOutput(card=SessionsCard(
            active_count=known_metric(sessions.value.active_count),
            active_window_minutes=active_window_minutes
        ))

    return CollectorOutput(
        card=SessionsCard(
            active_count=unknown_metric(sessions.reason),
            active_window_minutes=active_window_minutes
        ),
        warnings=(build_warning(SOURCE, "sessions_active_unknown", sessions.reason),)
    )
