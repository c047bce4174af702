"""
Caller identity for mutating services.

Every service that changes a record takes a keyword-only ``actor``. It is
either an authenticated :class:`~apps.accounts.models.User` or the explicit
:data:`SYSTEM_ACTOR` for unattended jobs (management commands, data fixes).
There is no implicit fallback: passing ``None`` raises
:class:`ActorRequiredError`.

Usage:
    from apps.accounts.identity import SYSTEM_ACTOR

    mark_sold_paid(vehicle.id, actor=SYSTEM_ACTOR, ...)
"""

from apps.accounts.models import User


class ActorRequiredError(Exception):
    """Raised when a mutating service is called without an actor."""
    pass


class SystemActor:
    """Unattended identity; never stored as a user reference."""

    label = 'system'
    is_system = True

    def __repr__(self):
        return '<SystemActor>'


SYSTEM_ACTOR = SystemActor()


def require_actor(actor):
    """
    Validate the actor passed to a mutating service.

    Args:
        actor: A ``User`` or ``SYSTEM_ACTOR``.

    Returns:
        The same actor.

    Raises:
        ActorRequiredError: If actor is missing or of an unknown type.
    """
    if actor is None:
        raise ActorRequiredError(
            "A caller identity is required; pass SYSTEM_ACTOR for unattended calls"
        )
    if actor is SYSTEM_ACTOR or isinstance(actor, User):
        return actor
    raise ActorRequiredError(f"Unsupported actor type: {type(actor).__name__}")


def actor_user(actor):
    """Return the ``User`` behind an actor, or None for the system actor."""
    return actor if isinstance(actor, User) else None


def actor_label(actor):
    """Short human readable label used in logs and audit columns."""
    if isinstance(actor, User):
        return actor.email
    return SYSTEM_ACTOR.label
