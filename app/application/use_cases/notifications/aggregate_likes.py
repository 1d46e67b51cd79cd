"""Group like events per post and build the notification summaries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from app.domain.entities import ActorRef, GroupActor, LikeEvent, NotificationGroup
from app.utils import ensure_utc

DEFAULT_SNIPPET_LENGTH = 80
_SUMMARY_SUFFIX = "liked your post"
_ELLIPSIS = "…"


def resolve_actor_name(actor: ActorRef) -> str:
    """Return the name shown for ``actor`` in a summary."""

    return actor.name


def build_summary(actors: Sequence[ActorRef]) -> str:
    """Return the sentence describing who liked a post.

    ``actors`` must be ordered most recent first; only the first two are named.
    """

    if not actors:
        raise ValueError("A notification summary requires at least one actor")

    names = [resolve_actor_name(actor) for actor in actors]
    if len(names) == 1:
        return f"{names[0]} {_SUMMARY_SUFFIX}"
    if len(names) == 2:
        return f"{names[0]} and {names[1]} {_SUMMARY_SUFFIX}"

    remaining = len(names) - 2
    noun = "other" if remaining == 1 else "others"
    return f"{names[0]}, {names[1]} and {remaining} {noun} {_SUMMARY_SUFFIX}"


def make_snippet(content: str | None, length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    """Collapse whitespace in ``content`` and truncate it to ``length`` characters."""

    text = " ".join((content or "").split())
    if len(text) <= length:
        return text
    return text[: max(length - 1, 0)].rstrip() + _ELLIPSIS


def _is_well_formed(event: object) -> bool:
    return (
        isinstance(event, LikeEvent)
        and bool(event.post_id)
        and isinstance(event.occurred_at, datetime)
        and isinstance(event.actor, ActorRef)
    )


def aggregate_likes(
    events: Iterable[LikeEvent], *, snippet_length: int = DEFAULT_SNIPPET_LENGTH
) -> list[NotificationGroup]:
    """Collapse ``events`` into one :class:`NotificationGroup` per post.

    Each actor appears once per group with the time of their latest like.
    Groups are ordered by their latest like, most recent first; groups with the
    same latest time keep the order in which their posts first appeared in
    ``events``. Malformed events are skipped. The function performs no I/O and
    returns the same result for the same input.
    """

    actors_by_post: dict[str, dict[str, GroupActor]] = {}
    content_by_post: dict[str, tuple[datetime, str]] = {}

    for event in events:
        if not _is_well_formed(event):
            continue

        occurred_at = ensure_utc(event.occurred_at)
        entries = actors_by_post.setdefault(event.post_id, {})
        identity = event.actor.identity
        existing = entries.get(identity)
        if existing is None or occurred_at > existing.occurred_at:
            entries[identity] = GroupActor(actor=event.actor, occurred_at=occurred_at)

        if event.post_content:
            known = content_by_post.get(event.post_id)
            if known is None or occurred_at > known[0]:
                content_by_post[event.post_id] = (occurred_at, event.post_content)

    groups: list[NotificationGroup] = []
    for post_id, entries in actors_by_post.items():
        ordered = sorted(entries.values(), key=lambda entry: entry.occurred_at, reverse=True)
        content = content_by_post.get(post_id, (None, ""))[1]
        groups.append(
            NotificationGroup(
                post_id=post_id,
                post_content_snippet=make_snippet(content, snippet_length),
                actors=tuple(ordered),
                latest_event_at=ordered[0].occurred_at,
                summary=build_summary([entry.actor for entry in ordered]),
            )
        )

    # ``sorted`` is stable with ``reverse=True``, so ties keep arrival order.
    return sorted(groups, key=lambda group: group.latest_event_at, reverse=True)


__all__ = [
    "DEFAULT_SNIPPET_LENGTH",
    "aggregate_likes",
    "build_summary",
    "make_snippet",
    "resolve_actor_name",
]
