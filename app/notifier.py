"""
WhatsApp notifications for new form submissions.

Messages go through an ordered chain of senders. Each sender is tried once;
the first success ends the chain. A sender only joins the chain when its
full credential set is configured, so an empty chain is valid and simply
reports non-delivery.
"""

import logging
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

import httpx

from app.config import Settings
from app.errors import NotificationDeliveryFailure
from app.metrics import record_notification_outcome
from app.utils import get_zone, render_in_zone

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_TEXT = "Thanks for your submission! We'll get back to you shortly."

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
GRAPH_API_BASE = "https://graph.facebook.com"


class MessageSender:
    """
    Uniform interface over a text-messaging provider.

    Subclasses implement _send() and may raise httpx errors from it;
    try_send() turns every failure into False.
    """

    name = "sender"

    def __init__(self, timeout: float = 10.0, http_client: Optional[httpx.Client] = None) -> None:
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _send(self, text: str, to: str) -> None:
        raise NotImplementedError

    def try_send(self, text: str, to: str) -> bool:
        """Attempt one delivery; never raises."""
        try:
            self._send(text, to)
        except httpx.HTTPStatusError as e:
            logger.error(
                f"{self.name} rejected message to {to}: "
                f"status={e.response.status_code} body={e.response.text[:200]}"
            )
            return False
        except httpx.HTTPError as e:
            logger.error(f"{self.name} request to {to} failed: {e!r}")
            return False
        logger.info(f"Message sent via {self.name} to {to}")
        return True


class TwilioWhatsAppSender(MessageSender):
    """Twilio Messages API over the whatsapp: channel."""

    name = "twilio"

    def __init__(self, account_sid: str, auth_token: str, from_number: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number

    @staticmethod
    def _channel(number: str) -> str:
        return number if number.startswith("whatsapp:") else f"whatsapp:{number}"

    def _send(self, text: str, to: str) -> None:
        url = f"{TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json"
        response = self._get_client().post(
            url,
            data={
                "Body": text,
                "From": self._channel(self._from_number),
                "To": self._channel(to),
            },
            auth=(self._account_sid, self._auth_token),
        )
        response.raise_for_status()


class WhatsAppBusinessSender(MessageSender):
    """WhatsApp Business Cloud API (Graph API) text messages."""

    name = "whatsapp_business"

    def __init__(self, token: str, phone_number_id: str, api_version: str = "v17.0", **kwargs) -> None:
        super().__init__(**kwargs)
        self._token = token
        self._phone_number_id = phone_number_id
        self._api_version = api_version

    def _send(self, text: str, to: str) -> None:
        url = f"{GRAPH_API_BASE}/{self._api_version}/{self._phone_number_id}/messages"
        response = self._get_client().post(
            url,
            json={
                "messaging_product": "whatsapp",
                "to": to.removeprefix("whatsapp:"),
                "type": "text",
                "text": {"body": text},
            },
            headers={"Authorization": f"Bearer {self._token}"},
        )
        response.raise_for_status()


def format_submission_message(submission, zone: ZoneInfo) -> str:
    """Human-readable summary of a submission for the notification recipient."""
    lines = [
        "🆕 New Form Submission",
        "",
        f"👤 Name: {submission.name}",
        f"📧 Email: {submission.email or 'Not provided'}",
        f"📱 Phone: {submission.phone}",
        f"🏢 Company: {submission.company or 'Not provided'}",
        f"💬 Message: {submission.message or 'No message'}",
        "",
        f"🆔 Submission ID: {submission.id}",
        f"⏰ Submitted: {render_in_zone(submission.created_at, zone)}",
    ]
    return "\n".join(lines)


class Notifier:
    """
    Sends submission notifications and acknowledgements through a
    prioritized list of senders.
    """

    def __init__(self, senders: Sequence[MessageSender], recipient: Optional[str], zone: ZoneInfo) -> None:
        self.senders: List[MessageSender] = list(senders)
        self.recipient = recipient
        self.zone = zone

    def deliver(self, text: str, to: Optional[str]) -> str:
        """
        Try each sender in order until one succeeds.

        Returns:
            Name of the sender that delivered the message

        Raises:
            NotificationDeliveryFailure: If no sender delivered it
        """
        attempted = []
        if to:
            for sender in self.senders:
                attempted.append(sender.name)
                if sender.try_send(text, to):
                    return sender.name
        raise NotificationDeliveryFailure(to, attempted)

    def notify_submission(self, submission) -> bool:
        """Send the submission summary to the fixed recipient. Never raises."""
        text = format_submission_message(submission, self.zone)
        logger.debug(f"Submission notification text: {text}")
        delivered = self._attempt("submission", text, self.recipient)
        if not delivered:
            logger.info(f"Undelivered notification for submission {submission.id}:\n{text}")
        return delivered

    def notify_acknowledgement(self, phone: str) -> bool:
        """Send the fixed acknowledgement text to the submitter. Never raises."""
        logger.info(f"Sending acknowledgement to {phone}")
        return self._attempt("acknowledgement", ACKNOWLEDGEMENT_TEXT, phone)

    def _attempt(self, kind: str, text: str, to: Optional[str]) -> bool:
        try:
            provider = self.deliver(text, to)
        except NotificationDeliveryFailure as e:
            logger.warning(f"{kind.capitalize()} notification not delivered: {e}")
            record_notification_outcome(kind, False)
            return False
        logger.info(f"{kind.capitalize()} notification delivered via {provider}")
        record_notification_outcome(kind, True)
        return True

    def close(self) -> None:
        for sender in self.senders:
            sender.close()


def build_notifier(settings: Settings) -> Notifier:
    """
    Build the notifier from an explicit settings object.
    Twilio comes first, then the WhatsApp Business API.
    """
    senders: List[MessageSender] = []
    timeout = settings.NOTIFY_TIMEOUT_SECONDS

    if settings.twilio_configured:
        senders.append(TwilioWhatsAppSender(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            timeout=timeout,
        ))

    if settings.whatsapp_business_configured:
        senders.append(WhatsAppBusinessSender(
            token=settings.WHATSAPP_BUSINESS_TOKEN,
            phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
            api_version=settings.WHATSAPP_API_VERSION,
            timeout=timeout,
        ))

    if not senders:
        logger.warning("No WhatsApp provider configured. Notifications will only be logged.")
    else:
        logger.info(f"Notification providers: {', '.join(s.name for s in senders)}")

    return Notifier(senders, settings.WHATSAPP_RECIPIENT_NUMBER, get_zone(settings.DISPLAY_TIMEZONE))

