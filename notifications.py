"""Best-effort admin email notifications.

Messages are sent from FastAPI background tasks after the response is
produced. Any failure is logged and swallowed so the borrow, purchase or
registration that triggered it is never affected.
"""
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage
from typing import Optional

from fastapi import BackgroundTasks

from models import BorrowingHistory, Purchase, UserPublic
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

FOOTER = "This message was sent automatically by the Workshop Inventory System."


@dataclass(frozen=True)
class Notice:
    subject: str
    body: str


def _fmt_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def borrow_notice(*, item_name: str, borrower_name: str, borrower_email: Optional[str], borrowed_at: datetime) -> Notice:
    lines = [
        "Workshop Notification - Item Borrowed",
        "",
        f"Item: {item_name}",
        f"Borrowed by: {borrower_name}",
    ]
    if borrower_email:
        lines.append(f"Email: {borrower_email}")
    lines += [
        f"Date: {_fmt_date(borrowed_at)}",
        "",
        "Please check the availability of the item and track its return.",
        "",
        FOOTER,
    ]
    return Notice(subject=f"Workshop Alert: Item Borrowed - {item_name}", body="\n".join(lines))


def purchase_notice(
    *,
    item_name: str,
    buyer_name: str,
    buyer_email: Optional[str],
    quantity: int,
    total_price: Decimal,
    purchased_at: datetime,
) -> Notice:
    lines = [
        "Workshop Notification - Item Sold",
        "",
        f"Item: {item_name}",
        f"Buyer: {buyer_name}",
    ]
    if buyer_email:
        lines.append(f"Email: {buyer_email}")
    lines += [
        f"Quantity: {quantity}",
        f"Total Price: EUR {total_price:.2f}",
        f"Date: {_fmt_date(purchased_at)}",
        "",
        "Please check the inventory and update availability if necessary.",
        "",
        FOOTER,
    ]
    return Notice(subject=f"Workshop Alert: Item Purchased - {item_name}", body="\n".join(lines))


def registration_notice(*, username: str, full_name: Optional[str], email: Optional[str], registered_at: datetime) -> Notice:
    lines = [
        "Workshop Notification - New User Registration",
        "",
        f"Username: {username}",
    ]
    if full_name:
        lines.append(f"Name: {full_name}")
    if email:
        lines.append(f"Email: {email}")
    lines += [
        f"Registered on: {_fmt_date(registered_at)}",
        "Status: waiting for approval",
        "",
        "Please log into the admin panel to review and activate the new user.",
        "",
        FOOTER,
    ]
    return Notice(subject=f"Workshop Alert: New User Registration - {username}", body="\n".join(lines))


def display_name(username: str, first_name: Optional[str], last_name: Optional[str]) -> str:
    full = " ".join(p for p in (first_name, last_name) if p)
    return full or username


def send_admin_notification(notice: Notice, recipients: list[str], settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    recipients = [r.strip() for r in recipients if r and r.strip()]
    if not recipients:
        logger.info("no admin email addresses, skipping notification subject=%r", notice.subject)
        return False
    if not settings.email_enabled:
        logger.info("SMTP not configured, skipping notification subject=%r", notice.subject)
        return False

    msg = EmailMessage()
    msg["From"] = settings.smtp_from
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = notice.subject
    msg.set_content(notice.body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_starttls:
                smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.exception("failed to send notification subject=%r", notice.subject)
        return False

    logger.info("notification sent subject=%r recipients=%s", notice.subject, len(recipients))
    return True


def queue_borrow_notice(background_tasks: BackgroundTasks, recipients: list[str], user: UserPublic, history: BorrowingHistory) -> None:
    notice = borrow_notice(
        item_name=history.item.name if history.item else history.item_id,
        borrower_name=display_name(user.username, user.first_name, user.last_name),
        borrower_email=user.email,
        borrowed_at=history.borrowed_at,
    )
    background_tasks.add_task(send_admin_notification, notice, recipients)


def queue_purchase_notice(background_tasks: BackgroundTasks, recipients: list[str], user: UserPublic, purchase: Purchase) -> None:
    notice = purchase_notice(
        item_name=purchase.item.name if purchase.item else purchase.item_id,
        buyer_name=display_name(user.username, user.first_name, user.last_name),
        buyer_email=user.email,
        quantity=purchase.quantity,
        total_price=purchase.total_price,
        purchased_at=purchase.purchased_at,
    )
    background_tasks.add_task(send_admin_notification, notice, recipients)
