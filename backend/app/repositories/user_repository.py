"""Principal records and the seller reputation counter."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models import User


class UserRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def ensure_user(
        self, user_id: str, *, username: str | None = None, email: str | None = None
    ) -> User:
        existing = self._session.get(User, user_id)
        if existing is None:
            existing = User(user_id=user_id, username=username, email=email, rating=0)
            self._session.add(existing)
            self._session.flush()
        return existing

    def increment_rating(self, user_id: str, amount: int = 1) -> None:
        """Bump the counter in a single UPDATE so concurrent orders never lose a write."""

        result = self._session.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(rating=User.rating + amount)
        )
        if result.rowcount == 0:
            # Sellers whose items came from an external catalog may lack a row.
            self._session.add(User(user_id=user_id, rating=amount))
            self._session.flush()

    def get_user(self, user_id: str) -> User | None:
        return self._session.execute(
            select(User).where(User.user_id == user_id).execution_options(populate_existing=True)
        ).scalars().first()

    def get_users(self, user_ids: Iterable[str | None]) -> dict[str, User]:
        wanted = {user_id for user_id in user_ids if user_id}
        if not wanted:
            return {}
        rows = self._session.execute(select(User).where(User.user_id.in_(wanted))).scalars().all()
        return {row.user_id: row for row in rows}
