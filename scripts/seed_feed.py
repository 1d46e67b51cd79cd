"""Utility script to populate the feed tables with demo likes."""

from __future__ import annotations

import argparse
import uuid
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.models import PostLikeModel, PostModel, ProfileModel
from app.utils import ensure_utc_naive, now_utc

_DEMO_ACTORS = (
    ("alice", "Alice"),
    ("bob", "Bob"),
    ("carol", None),
    ("dan", "Dan"),
)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the seed run."""

    parser = argparse.ArgumentParser(
        description="Create a viewer with posts and likes for local development.",
    )
    parser.add_argument(
        "--viewer-username",
        default="viewer",
        help="Username of the profile that owns the liked posts (default: viewer)",
    )
    parser.add_argument(
        "--posts",
        type=int,
        default=3,
        help="Number of posts to create for the viewer (default: 3)",
    )
    return parser.parse_args()


def main() -> None:
    """Insert a viewer, their posts and likes from the demo actors."""

    args = parse_args()
    if args.posts < 1:
        raise SystemExit("At least one post is required.")

    initialize_database()

    session = SessionLocal()
    now = now_utc()
    try:
        viewer = ProfileModel(id=str(uuid.uuid4()), username=args.viewer_username)
        actors = [
            ProfileModel(id=str(uuid.uuid4()), username=username, display_name=display_name)
            for username, display_name in _DEMO_ACTORS
        ]
        session.add_all([viewer, *actors])

        for index in range(args.posts):
            post = PostModel(
                id=str(uuid.uuid4()),
                user_id=viewer.id,
                content=f"Demo post #{index + 1}",
                created_at=ensure_utc_naive(now - timedelta(days=1, minutes=index)),
            )
            session.add(post)
            for offset, actor in enumerate(actors[: index + 1]):
                session.add(
                    PostLikeModel(
                        id=str(uuid.uuid4()),
                        post_id=post.id,
                        user_id=actor.id,
                        created_at=ensure_utc_naive(
                            now - timedelta(minutes=10 * index + offset)
                        ),
                    )
                )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not seed the feed tables: {exc}") from exc
    else:
        print(
            "Feed seeded successfully:\n"
            f"  Viewer ID: {viewer.id}\n"
            f"  Username: {viewer.username}\n"
            f"  Posts: {args.posts}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
