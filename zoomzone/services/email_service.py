import asyncio
import logging
import smtplib
from datetime import datetime, timedelta, tzinfo
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from zoomzone.core.config import Settings, settings
from zoomzone.core.errors import NotificationError
from zoomzone.services.time_utils import format_local

logger = logging.getLogger(__name__)


class SmtpNotifier:
    """``send(to, subject, html)`` over SMTP. Raises NotificationError on any failure."""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings

    def _send_email_sync(self, to_email: str, subject: str, html_body: str) -> None:
        cfg = self.config
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{cfg.from_name} <{cfg.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(cfg.smtp_user, cfg.smtp_password)
            server.sendmail(cfg.from_email, [to_email], msg.as_string())

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.config.email_enabled:
            raise NotificationError("email disabled (SMTP not configured)")
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._send_email_sync, to, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"failed to send email to {to}: {e}") from e
        logger.info("Email sent to %s", to)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _layout(title: str, inner_html: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Oxygen,Ubuntu,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;overflow:hidden;">
          <tr>
            <td style="padding:32px;">
              {inner_html}
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def _join_link_html(meeting_link: str) -> str:
    safe = _html_escape(meeting_link)
    return f'<p style="margin:0 0 16px 0;color:#374151;">Join Zoom meeting: <a href="{safe}">{safe}</a></p>'


def build_booking_confirmation_html(
    recipient_name: str,
    start_utc: datetime,
    duration_minutes: int,
    meeting_link: str,
    tz: tzinfo,
) -> str:
    """HTML body for the participant's confirmation."""
    when = format_local(start_utc, tz)
    ends = format_local(start_utc + timedelta(minutes=duration_minutes), tz)
    inner = f"""
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">Meeting Confirmed</h1>
              <p style="margin:0 0 16px 0;color:#374151;">Hi {_html_escape(recipient_name) or 'there'},</p>
              <p style="margin:0 0 16px 0;color:#374151;">Your meeting is scheduled for <strong>{when}</strong> and will last <strong>{duration_minutes} minutes</strong> (until {ends}).</p>
              {_join_link_html(meeting_link)}
              <p style="margin:0;color:#6b7280;">Thanks,<br/>{_html_escape(settings.signature)}</p>
"""
    return _layout("Meeting Confirmed", inner)


def build_operator_notice_html(
    name: str,
    email: str,
    start_utc: datetime,
    duration_minutes: int,
    meeting_link: str,
    tz: tzinfo,
) -> str:
    when = format_local(start_utc, tz)
    inner = f"""
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">New Booking</h1>
              <p style="margin:0 0 16px 0;color:#374151;">New meeting booked by <strong>{_html_escape(name)}</strong> ({_html_escape(email)}).</p>
              <p style="margin:0 0 16px 0;color:#374151;">Scheduled for <strong>{when}</strong> for <strong>{duration_minutes} minutes</strong>.</p>
              {_join_link_html(meeting_link)}
"""
    return _layout("New Booking", inner)


def build_reminder_html(recipient_name: str, start_utc: datetime, meeting_link: str, tz: tzinfo) -> str:
    when = format_local(start_utc, tz)
    inner = f"""
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">Meeting Reminder</h1>
              <p style="margin:0 0 16px 0;color:#374151;">Hi {_html_escape(recipient_name) or 'there'},</p>
              <p style="margin:0 0 16px 0;color:#374151;">This is a reminder for your meeting at <strong>{when}</strong>.</p>
              {_join_link_html(meeting_link)}
              <p style="margin:0;color:#6b7280;">- {_html_escape(settings.signature)}</p>
"""
    return _layout("Meeting Reminder", inner)


def confirmation_subject(start_utc: datetime, tz: tzinfo) -> str:
    return f"Your {settings.site_name} Meeting - {format_local(start_utc, tz)}"


def operator_notice_subject(start_utc: datetime, tz: tzinfo) -> str:
    return f"New Booking - {format_local(start_utc, tz)}"


def reminder_subject(start_utc: datetime, tz: tzinfo) -> str:
    return f"Meeting Reminder - {format_local(start_utc, tz)}"
