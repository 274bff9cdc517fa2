"""Email notifications over SMTP with a logged simulation fallback, plus in-app notices."""

import asyncio
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config import settings
from hackhub.models.notification import Notification

logger = logging.getLogger(__name__)

HTML_TEMPLATE_BASE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: 'Inter', -apple-system, sans-serif; background-color: #f8f9fa; color: #333; margin: 0; padding: 0; }
        .container { max-width: 600px; margin: 40px auto; background: #ffffff; border-radius: 12px; overflow: hidden; }
        .header { background: #1d4ed8; padding: 30px 40px; text-align: center; }
        .header h1 { color: #ffffff; margin: 0; font-size: 24px; }
        .content { padding: 40px; line-height: 1.6; }
        .btn { display: inline-block; background: #1d4ed8; color: #ffffff; text-decoration: none; padding: 14px 28px; border-radius: 8px; font-weight: 600; }
        .footer { background: #f1f3f5; padding: 20px; text-align: center; color: #6c757d; font-size: 13px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{app_name}</h1></div>
        <div class="content">{body}</div>
        <div class="footer"><p>You received this email because you take part in a hackathon on {app_name}.</p></div>
    </div>
</body>
</html>
"""


def _render(body: str) -> str:
    return HTML_TEMPLATE_BASE.replace("{app_name}", settings.APP_NAME).replace("{body}", body)


def _send_email_sync(recipient_email: str, subject: str, html_body: str) -> None:
    """Send over SMTP, or log the message when no credentials are configured."""
    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.info("Simulated email to %s: %s", recipient_email, subject)
        logger.debug("Simulated email body:\n%s", html_body)
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.APP_NAME} <{settings.SMTP_USERNAME}>"
    msg["To"] = recipient_email
    msg.attach(MIMEText(html_body, "html"))

    try:
        with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as server:
            server.starttls()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(msg)
        logger.info("Email sent to %s", recipient_email)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", recipient_email, e)


async def _send(recipient_email: str, subject: str, body: str) -> None:
    # smtplib blocks; keep it off the event loop
    await asyncio.to_thread(_send_email_sync, recipient_email, subject, _render(body))


async def send_team_created_email(recipient_email: str, team_name: str, hackathon_title: str):
    subject = f"Your team {team_name} is registered"
    body = f"""
    <h2>Hello,</h2>
    <p>Your team <strong>{escape(team_name)}</strong> is now registered for
    <strong>{escape(hackathon_title)}</strong>.</p>
    <p>Share the team page with your teammates so they can join before team joining closes.</p>
    """
    await _send(recipient_email, subject, body)


async def send_submission_received_email(recipient_email: str, team_name: str, submission_title: str):
    subject = f"Submission received for {team_name}"
    body = f"""
    <h2>Hello,</h2>
    <p>We received <strong>{escape(submission_title)}</strong> from team
    <strong>{escape(team_name)}</strong>. You can keep editing it until the submission deadline.</p>
    """
    await _send(recipient_email, subject, body)


async def send_judge_assigned_email(recipient_email: str, hackathon_title: str, team_count: int):
    subject = f"You have been invited to judge {hackathon_title}"
    body = f"""
    <h2>Hello,</h2>
    <p>The organizers of <strong>{escape(hackathon_title)}</strong> would like you to judge
    {team_count} team(s).</p>
    <div style="text-align:center">
        <a href="{settings.FRONTEND_URL}/assignments" class="btn">Review Requests</a>
    </div>
    """
    await _send(recipient_email, subject, body)


async def send_results_published_email(
    recipient_email: str,
    hackathon_id: int,
    hackathon_title: str,
    team_name: str,
    position: Optional[int] = None,
    is_leader: bool = False,
):
    subject = f"Results published for {hackathon_title}"
    if position:
        outcome = f"Congratulations! Team <strong>{escape(team_name)}</strong> placed <strong>#{position}</strong>."
    else:
        outcome = f"Thank you for taking part with team <strong>{escape(team_name)}</strong>."
    lead_note = "<p>As team lead, please pass the news on to your teammates.</p>" if is_leader else ""
    body = f"""
    <h2>Hello,</h2>
    <p>The results of <strong>{escape(hackathon_title)}</strong> are out.</p>
    <p>{outcome}</p>
    {lead_note}
    <div style="text-align:center">
        <a href="{settings.FRONTEND_URL}/hackathons/{hackathon_id}/winners" class="btn">See the Winners</a>
    </div>
    """
    await _send(recipient_email, subject, body)


async def send_judging_reminder_email(recipient_email: str, hackathon_id: int, hackathon_title: str, deadline: datetime):
    subject = f"Judging deadline reminder - {hackathon_title}"
    body = f"""
    <h2>Hello,</h2>
    <p>Judging for <strong>{escape(hackathon_title)}</strong> closes on
    <strong>{deadline.strftime('%d %b %Y, %H:%M UTC')}</strong>.</p>
    <p>Please finish rating your assigned submissions before then.</p>
    <div style="text-align:center">
        <a href="{settings.FRONTEND_URL}/hackathons/{hackathon_id}/judging" class="btn">Open Judging</a>
    </div>
    """
    await _send(recipient_email, subject, body)


def notify(db: AsyncSession, user_id: int, message: str, link: Optional[str] = None) -> Notification:
    """Queue an in-app notification on the current session."""
    notification = Notification(user_id=user_id, message=message, link=link)
    db.add(notification)
    return notification
