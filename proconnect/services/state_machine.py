"""
State machine for connections.
ALL connection status changes must go through this module.
"""
import logging
from typing import Dict

from proconnect.errors import InvalidTransitionError
from proconnect.schemas.connection import Connection, ConnectionStatus

# Configure logger
logger = logging.getLogger(__name__)


# Define allowed status transitions
ALLOWED_TRANSITIONS: Dict[ConnectionStatus, list[ConnectionStatus]] = {
    ConnectionStatus.PENDING: [ConnectionStatus.ACCEPTED],
    ConnectionStatus.ACCEPTED: [],  # Terminal state (removal deletes the record)
}


def can_transition(from_status: ConnectionStatus, to_status: ConnectionStatus) -> bool:
    """Check if a transition is allowed"""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def transition_connection(connection: Connection, to_status: ConnectionStatus) -> Connection:
    """
    Return a copy of `connection` moved to `to_status`.
    
    Args:
        connection: Connection in its current state
        to_status: Target status
    
    Returns:
        New Connection record with the updated status
        
    Raises:
        InvalidTransitionError: If transition is not allowed
    """
    if not can_transition(connection.status, to_status):
        raise InvalidTransitionError(
            f"Invalid transition from {connection.status.value} to {to_status.value}"
        )
    
    logger.info(
        f"Connection status transition: {connection.status.value} → {to_status.value}",
        extra={"connection_id": connection.id},
    )
    return connection.model_copy(update={"status": to_status})
