"""Booking email notifications."""

from __future__ import annotations

import logging
import smtplib
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Iterable

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.booking import Booking

logger = logging.getLogger(__name__)


def schedule_email(
    background_tasks: BackgroundTasks,
    *,
    recipients: Iterable[str],
    subject: str,
    body: str,
) -> None:
    """Queue an email to be delivered asynchronously."""
    recipients_list = [addr for addr in recipients if addr]
    if not recipients_list:
        logger.debug("No recipients provided for email; skipping")
        return
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.debug("SMTP disabled; skipping email to %s", recipients_list)
        return
    background_tasks.add_task(_send_email, recipients_list, subject, body)


def manage_url(booking: Booking) -> str:
    base = get_settings().public_base_url.rstrip("/")
    return f"{base}/bookings/manage/{booking.booking_token}"


def _venue_name(booking: Booking) -> str:
    return getattr(booking.venue, "name", None) or "the venue"


def _summary_lines(booking: Booking) -> list[str]:
    service_name = getattr(booking.service, "name", None) or "Your appointment"
    lines = [
        f"Service: {service_name}",
        f"Date: {booking.booking_date.isoformat()}",
        f"Time: {booking.start_time} - {booking.end_time}",
        f"Party size: {booking.party_size}",
    ]
    staff_name = getattr(booking.staff_member, "name", None)
    if staff_name:
        lines.append(f"With: {staff_name}")
    if booking.special_requests:
        lines.append(f"Special requests: {booking.special_requests}")
    return lines


def build_booking_received_email(booking: Booking) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    subject = f"Thank you for your booking at {venue_name}"
    body = "\n".join(
        [
            f"Hello {booking.customer_name},",
            "",
            f"We have received your booking request at {venue_name}. "
            "You will get another email once it is confirmed.",
            "",
            *_summary_lines(booking),
            "",
            f"Manage your booking: {manage_url(booking)}",
        ]
    )
    return subject, body


def build_booking_confirmation_email(
    booking: Booking, *, reactivated: bool = False
) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    if reactivated:
        subject = f"Your booking at {venue_name} has been reinstated"
        intro = f"Good news: your cancelled booking at {venue_name} is confirmed again."
    else:
        subject = f"Booking confirmed at {venue_name}"
        intro = f"Your booking at {venue_name} is confirmed."
    body = "\n".join(
        [
            f"Hello {booking.customer_name},",
            "",
            intro,
            "",
            *_summary_lines(booking),
            "",
            f"Need to change or cancel? {manage_url(booking)}",
        ]
    )
    return subject, body


def build_booking_cancellation_email(booking: Booking) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    subject = f"Your booking at {venue_name} was cancelled"
    lines = [
        f"Hello {booking.customer_name},",
        "",
        f"Your booking at {venue_name} on {booking.booking_date.isoformat()} "
        f"at {booking.start_time} has been cancelled.",
    ]
    if booking.cancellation_reason:
        lines.append(f"Reason: {booking.cancellation_reason}")
    lines.extend(["", "We hope to see you another time."])
    return subject, "\n".join(lines)


def build_booking_rescheduled_email(booking: Booking) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    subject = f"Your booking at {venue_name} was changed"
    body = "\n".join(
        [
            f"Hello {booking.customer_name},",
            "",
            "Your booking has been updated and is awaiting confirmation.",
            "",
            *_summary_lines(booking),
            "",
            f"Manage your booking: {manage_url(booking)}",
        ]
    )
    return subject, body


def build_reminder_email(booking: Booking) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    subject = f"Reminder: your appointment at {venue_name}"
    body = "\n".join(
        [
            f"Hello {booking.customer_name},",
            "",
            f"This is a friendly reminder of your upcoming booking at {venue_name}.",
            "",
            *_summary_lines(booking),
            "",
            f"Can't make it? {manage_url(booking)}",
        ]
    )
    return subject, body


def build_review_invitation_email(booking: Booking) -> tuple[str, str]:
    venue_name = _venue_name(booking)
    subject = f"How was your visit? Review {venue_name}"
    body = (
        f"Hello {booking.customer_name},\n\n"
        f"Thank you for visiting {venue_name}. "
        "We would love to hear about your experience.\n"
    )
    return subject, body


def notify_booking_created(booking: Booking, background_tasks: BackgroundTasks) -> None:
    subject, body = build_booking_received_email(booking)
    schedule_email(
        background_tasks,
        recipients=[booking.customer_email],
        subject=subject,
        body=body,
    )


def notify_booking_confirmed(
    booking: Booking,
    background_tasks: BackgroundTasks,
    *,
    reactivated: bool = False,
) -> None:
    subject, body = build_booking_confirmation_email(booking, reactivated=reactivated)
    schedule_email(
        background_tasks,
        recipients=[booking.customer_email],
        subject=subject,
        body=body,
    )


def notify_booking_cancelled(
    booking: Booking, background_tasks: BackgroundTasks
) -> None:
    subject, body = build_booking_cancellation_email(booking)
    schedule_email(
        background_tasks,
        recipients=[booking.customer_email],
        subject=subject,
        body=body,
    )


def notify_booking_rescheduled(
    booking: Booking, background_tasks: BackgroundTasks
) -> None:
    subject, body = build_booking_rescheduled_email(booking)
    schedule_email(
        background_tasks,
        recipients=[booking.customer_email],
        subject=subject,
        body=body,
    )


async def notify_review_invitation(
    session: AsyncSession,
    booking: Booking,
    background_tasks: BackgroundTasks,
    *,
    now: datetime | None = None,
) -> bool:
    """Queue the review invitation unless this booking already received one."""
    if booking.review_invitation_sent_at is not None:
        logger.debug("Review invitation already sent for booking %s", booking.id)
        return False
    booking.review_invitation_sent_at = now or datetime.now(UTC)
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to stamp review invitation for booking %s", booking.id)
        return False
    queue_review_invitation(booking, background_tasks)
    return True


def queue_review_invitation(booking: Booking, background_tasks: BackgroundTasks) -> None:
    """Queue the invitation for a booking whose stamp the caller already claimed."""
    subject, body = build_review_invitation_email(booking)
    schedule_email(
        background_tasks,
        recipients=[booking.customer_email],
        subject=subject,
        body=body,
    )


def send_review_invitation(booking: Booking) -> bool:
    subject, body = build_review_invitation_email(booking)
    return _send_email([booking.customer_email], subject, body)


def send_reminder(booking: Booking) -> bool:
    """Deliver the reminder email immediately; returns True on success."""
    subject, body = build_reminder_email(booking)
    return _send_email([booking.customer_email], subject, body)


def _send_email(recipients: list[str], subject: str, body: str) -> bool:
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP settings missing; skipping email delivery to %s", recipients)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = ", ".join(recipients)
    from_address = settings.smtp_from or settings.smtp_username or "no-reply@booking.local"
    message["From"] = from_address
    message.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
            if settings.smtp_username and settings.smtp_password:
                smtp.starttls()
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
        logger.info("Email sent to %s", recipients)
        return True
    except Exception as exc:  # pragma: no cover - logging side-effect only
        logger.exception("Failed to send email to %s: %s", recipients, exc)
        return False
