from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import get_write_session
from infrastructure.outbox.gateway import OutboxGateway


def get_outbox_gateway(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> OutboxGateway:
    """Get OutboxGateway instance.

    The gateway accepts plain payload mappings, making it context-agnostic.
    Event serialization is handled by the bounded context's publisher.

    Args:
        session: Async database session (shared with the calling service)

    Returns:
        OutboxGateway instance
    """
    return OutboxGateway(session=session)
