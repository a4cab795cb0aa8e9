from __future__ import annotations

import base64
import webbrowser
from email.message import EmailMessage
from typing import Any, Callable, Protocol
from urllib.parse import quote, urlencode

from ..config import AppConfig, EMAIL_METHODS
from ..errors import ConfigError, ProviderError
from ..models import EmailDraft
from .session import GoogleSession, MicrosoftSession, SessionProvider, google_session, microsoft_session


GMAIL_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
GRAPH_URL = "https://graph.microsoft.com/v1.0"


class EmailProvider(Protocol):
    def send(self, draft: EmailDraft) -> str:
        ...

    def create_draft(self, draft: EmailDraft) -> str:
        ...

    def __enter__(self) -> EmailProvider:
        ...

    def __exit__(self, *exc) -> None:
        ...


def build_mailto_url(draft: EmailDraft) -> str:
    params: dict[str, str] = {}
    if draft.cc:
        params["cc"] = ",".join(draft.cc)
    if draft.bcc:
        params["bcc"] = ",".join(draft.bcc)
    params["subject"] = draft.subject
    params["body"] = draft.body
    return f"mailto:{','.join(draft.to)}?{urlencode(params, quote_via=quote)}"


def build_raw_message(draft: EmailDraft) -> str:
    """RFC 2822 message, base64url-encoded as the Gmail API expects."""
    msg = EmailMessage()
    msg["To"] = ", ".join(draft.to)
    if draft.cc:
        msg["Cc"] = ", ".join(draft.cc)
    if draft.bcc:
        msg["Bcc"] = ", ".join(draft.bcc)
    msg["Subject"] = draft.subject
    msg.set_content(draft.body)
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")


class MailtoDraft:
    """Hands the draft to the default mail app; nothing is sent."""

    def __init__(self, opener: Callable[[str], bool] = webbrowser.open):
        self.opener = opener

    def send(self, draft: EmailDraft) -> str:
        return self.create_draft(draft)

    def create_draft(self, draft: EmailDraft) -> str:
        if not self.opener(build_mailto_url(draft)):
            raise ProviderError("Could not open the default mail app")
        return "Email draft opened in default mail app"

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        pass


class GmailSender(SessionProvider):
    def __init__(self, session: GoogleSession):
        self.session = session

    def send(self, draft: EmailDraft) -> str:
        data = self.session.request("POST", f"{GMAIL_URL}/messages/send", json={"raw": build_raw_message(draft)})
        return f"Email sent via Gmail. Message ID: {data.get('id')}"

    def create_draft(self, draft: EmailDraft) -> str:
        data = self.session.request(
            "POST", f"{GMAIL_URL}/drafts", json={"message": {"raw": build_raw_message(draft)}}
        )
        return f"Draft created in Gmail. Draft ID: {data.get('id')}"


def _graph_message(draft: EmailDraft) -> dict[str, Any]:
    def recipients(addrs: list[str]) -> list[dict[str, Any]]:
        return [{"emailAddress": {"address": a}} for a in addrs]

    return {
        "subject": draft.subject,
        "body": {"contentType": "Text", "content": draft.body},
        "toRecipients": recipients(draft.to),
        "ccRecipients": recipients(draft.cc),
        "bccRecipients": recipients(draft.bcc),
    }


class OutlookMailer(SessionProvider):
    def __init__(self, session: MicrosoftSession):
        self.session = session

    def send(self, draft: EmailDraft) -> str:
        self.session.request("POST", f"{GRAPH_URL}/me/sendMail", json={"message": _graph_message(draft)})
        return "Email sent via Outlook"

    def create_draft(self, draft: EmailDraft) -> str:
        data = self.session.request("POST", f"{GRAPH_URL}/me/messages", json=_graph_message(draft))
        return f"Draft created in Outlook. Message ID: {data.get('id')}"


def get_mailer(config: AppConfig, method: str | None = None, **session_kwargs: Any) -> EmailProvider:
    name = method or config.default_email_method
    if name == "draft":
        return MailtoDraft()
    if name == "gmail":
        return GmailSender(google_session(config, **session_kwargs))
    if name == "outlook":
        return OutlookMailer(microsoft_session(config, **session_kwargs))
    raise ConfigError(f"Unknown email method {name!r}; expected one of {', '.join(EMAIL_METHODS)}")
