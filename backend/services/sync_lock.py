"""
Sync Lease - Run-level exclusive lock backed by the sync_locks table.

acquire() inserts the named row (after clearing an expired one); the primary
key makes the insert fail while another holder's lease is live. The holder
renews between batches and deletes the row on release. A crashed holder
stops renewing, so its lease expires and the next run takes over.

Usage:
    lease = SyncLease.acquire(db.session, "candidate_sync", ttl_seconds=900)
    if lease is None:
        ...  # someone else is syncing
    try:
        ...
        lease.renew()
    finally:
        lease.release()
"""
import logging
import os
import socket
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError

from models.database import utcnow
from models.sync_lock import SyncLock

logger = logging.getLogger(__name__)


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class LeaseLostError(RuntimeError):
    """The lease expired and was taken over by another holder."""


class SyncLease:
    def __init__(self, session, name: str, token: str, ttl_seconds: int):
        self.session = session
        self.name = name
        self.token = token
        self.ttl_seconds = ttl_seconds
        self.released = False

    @classmethod
    def acquire(
        cls,
        session,
        name: str,
        ttl_seconds: int,
        holder: Optional[str] = None,
    ) -> Optional["SyncLease"]:
        """
        Try to take the named lease.

        Returns:
            SyncLease when acquired, None when another holder's lease is live
        """
        now = utcnow()
        token = str(uuid.uuid4())
        try:
            session.execute(
                delete(SyncLock)
                .where(SyncLock.name == name)
                .where(SyncLock.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            session.execute(
                insert(SyncLock).values(
                    name=name,
                    token=token,
                    holder=holder or _default_holder(),
                    acquired_at=now,
                    expires_at=now + timedelta(seconds=ttl_seconds),
                )
            )
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info(f"Lease {name} is held by another process")
            return None

        logger.info(f"Acquired lease {name} (ttl={ttl_seconds}s)")
        return cls(session, name, token, ttl_seconds)

    def renew(self):
        """
        Push the expiry forward by the TTL.

        Raises:
            LeaseLostError: the row no longer carries our token
        """
        stmt = (
            update(SyncLock)
            .where(SyncLock.name == self.name)
            .where(SyncLock.token == self.token)
            .values(expires_at=utcnow() + timedelta(seconds=self.ttl_seconds))
            .execution_options(synchronize_session=False)
        )
        rowcount = self.session.execute(stmt).rowcount
        self.session.commit()
        if rowcount != 1:
            raise LeaseLostError(f"Lease {self.name} was lost")

    def release(self):
        """Delete the row if we still own it. Safe to call twice."""
        if self.released:
            return
        self.session.rollback()
        self.session.execute(
            delete(SyncLock)
            .where(SyncLock.name == self.name)
            .where(SyncLock.token == self.token)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.released = True
        logger.info(f"Released lease {self.name}")


def current_holder(session, name: str) -> Optional[SyncLock]:
    """Live lease row for name, if any."""
    lock = session.query(SyncLock).filter(SyncLock.name == name).first()
    if lock is None or lock.expires_at <= utcnow():
        return None
    return lock
