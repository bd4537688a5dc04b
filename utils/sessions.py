"""
Session registry: server-side record of every issued token pair.

A session is the reason a still-valid JWT can be refused: revocation flips
is_active and the next request carrying that token fails, whatever its exp says.

Staging methods (create/rotate/revoke) only add to the current unit of work;
the caller commits them, usually inside DBStorage.transaction(). touch() is
the exception: it commits on its own and never raises.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utcnow
from models.session import UserSession
from utils.security import fingerprint

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, storage):
        self._storage = storage

    @property
    def _db(self):
        return self._storage.get_session()

    def create_session(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        device_info: Optional[str],
        ip_address: Optional[str],
        ttl: timedelta,
        remember_me: bool = False,
    ) -> UserSession:
        now = utcnow()
        user_session = UserSession(
            user_id=user_id,
            access_token_hash=fingerprint(access_token),
            refresh_token_hash=fingerprint(refresh_token),
            device_info=(device_info or "")[:255] or None,
            user_agent=(device_info or "")[:255] or None,
            ip_address=ip_address,
            remember_me=remember_me,
            issued_at=now,
            last_used_at=now,
            expires_at=now + ttl,
            is_active=True,
        )
        self._storage.new(user_session)
        return user_session

    def find_active_by_token(self, token: str, user_id: Optional[str] = None) -> Optional[UserSession]:
        """The active, unexpired session issued with this access token, else None."""
        query = self._active().filter(UserSession.access_token_hash == fingerprint(token))
        if user_id is not None:
            query = query.filter(UserSession.user_id == user_id)
        return query.first()

    def find_active_by_refresh_token(self, token: str) -> Optional[UserSession]:
        return self._active().filter(UserSession.refresh_token_hash == fingerprint(token)).first()

    def list_active_for_user(self, user_id: str) -> List[UserSession]:
        return (
            self._active()
            .filter(UserSession.user_id == user_id)
            .order_by(UserSession.last_used_at.desc())
            .all()
        )

    def touch(self, session_id: str) -> bool:
        """Record activity. Best effort: a failure is logged and dropped."""
        try:
            self._db.query(UserSession).filter(UserSession.id == session_id).update(
                {UserSession.last_used_at: utcnow()}, synchronize_session=False
            )
            self._storage.save()
        except SQLAlchemyError:
            self._storage.rollback()
            logger.warning("session touch failed for %s", session_id, exc_info=True)
            return False
        return True

    def rotate(self, user_session: UserSession, old_refresh_token: str,
               access_token: str, refresh_token: str) -> bool:
        """
        Swap in a new token pair, but only while the session still carries
        old_refresh_token. False means someone else rotated (or revoked) it first.
        """
        claimed = (
            self._db.query(UserSession)
            .filter(
                UserSession.id == user_session.id,
                UserSession.is_active.is_(True),
                UserSession.refresh_token_hash == fingerprint(old_refresh_token),
            )
            .update(
                {
                    UserSession.access_token_hash: fingerprint(access_token),
                    UserSession.refresh_token_hash: fingerprint(refresh_token),
                    UserSession.last_used_at: utcnow(),
                },
                synchronize_session="fetch",
            )
        )
        return claimed == 1

    def revoke(self, session_id: str) -> int:
        return (
            self._db.query(UserSession)
            .filter(UserSession.id == session_id, UserSession.is_active.is_(True))
            .update({UserSession.is_active: False}, synchronize_session="fetch")
        )

    def revoke_all_for_user(self, user_id: str, except_session_id: Optional[str] = None) -> int:
        query = self._db.query(UserSession).filter(
            UserSession.user_id == user_id, UserSession.is_active.is_(True)
        )
        if except_session_id:
            query = query.filter(UserSession.id != except_session_id)
        return query.update({UserSession.is_active: False}, synchronize_session="fetch")

    def purge_expired(self, now=None) -> int:
        """Explicit cleanup: physically delete expired or revoked sessions."""
        now = now or utcnow()
        return (
            self._db.query(UserSession)
            .filter(or_(UserSession.expires_at <= now, UserSession.is_active.is_(False)))
            .delete(synchronize_session="fetch")
        )

    def _active(self):
        return self._db.query(UserSession).filter(
            UserSession.is_active.is_(True), UserSession.expires_at > utcnow()
        )
