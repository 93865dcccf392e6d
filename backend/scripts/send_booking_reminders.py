"""Send reminder emails for confirmed bookings starting soon."""
from __future__ import annotations

import asyncio
import logging

from app.db.session import get_sessionmaker
from app.services.reminder_service import send_due_reminders

logger = logging.getLogger(__name__)


async def run_reminders() -> int:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        sent = await send_due_reminders(session)
    print(f"Sent {sent} reminder(s).")
    return sent


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_reminders())


if __name__ == "__main__":
    main()
