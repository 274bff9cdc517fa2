"""
Refresh the derived lifecycle phase of every published hackathon, announce
winners whose announcement time has passed and remind judges whose judging
deadline is less than a day away.

Run periodically (cron / scheduler):
    python update_lifecycle_status.py
"""

import asyncio
import logging

import hackhub.models  # noqa: F401
from hackhub.database import Base, async_session, engine
from hackhub.services.lifecycle import judging_reminders, refresh_lifecycle, results_recipients
from hackhub.services.notifications import send_judging_reminder_email, send_results_published_email
from hackhub.services.timeline import utcnow

logger = logging.getLogger("update_lifecycle_status")


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    now = utcnow()
    async with async_session() as db:
        refresh = await refresh_lifecycle(db, now)
        results = [(h.id, h.title, await results_recipients(db, h)) for h in refresh.announced]
        reminders = await judging_reminders(db, now)
        await db.commit()

    for hackathon_id, title, recipients in results:
        for r in recipients:
            await send_results_published_email(r.email, hackathon_id, title, r.team_name, r.position, r.is_leader)
    for reminder in reminders:
        await send_judging_reminder_email(
            reminder.email, reminder.hackathon_id, reminder.hackathon_title, reminder.deadline
        )

    logger.info(
        "Lifecycle refresh done: %d hackathon(s) changed phase, %d announced, %d judging reminder(s).",
        refresh.changed, len(results), len(reminders),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
