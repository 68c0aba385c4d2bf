"""Telegram notification service.

Sends lead alerts, payment links and error alerts to an operator chat via
the Telegram Bot API.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import httpx

from voice_gateway.errors import NotificationError

if TYPE_CHECKING:
    from voice_gateway.db.models import Lead

logger = logging.getLogger("voice-gateway-telegram")

TELEGRAM_API_URL = "https://api.telegram.org"
DASHBOARD_URL = "https://callwaitingai.dev/dashboard/leads"
TRANSCRIPT_PREVIEW_CHARS = 300


@dataclass
class TelegramConfig:
    """Telegram bot configuration."""

    bot_token: str = ""
    chat_id: str = ""

    @classmethod
    def from_env(cls) -> "TelegramConfig":
        """Load Telegram config from environment variables."""
        bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "")
        chat_id = os.getenv("TELEGRAM_CHAT_ID", "")

        if not (bot_token and chat_id):
            logger.warning(
                "TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID not set - notifications disabled"
            )

        return cls(bot_token=bot_token, chat_id=chat_id)

    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)


def qualification_emoji(score: float | None) -> str:
    """Pick an emoji for a lead's qualification score."""
    if not score:
        return "📬"
    if score >= 0.8:
        return "🔥"
    if score >= 0.6:
        return "⭐"
    if score >= 0.4:
        return "📬"
    return "❓"


def format_lead_message(lead: "Lead", transcript: str | None = None) -> str:
    """Format a lead as a Markdown Telegram message."""
    lines = [
        f"{qualification_emoji(lead.qualification_score)} *New Lead Alert!*",
        "",
        f"👤 Name: {lead.name or 'Unknown'}",
        f"📞 Phone: {lead.phone or 'N/A'}",
        f"📧 Email: {lead.email or 'N/A'}",
        "",
        f"💬 Intent: {lead.intent or 'Not determined'}",
    ]
    if lead.qualification_score:
        lines.append(f"📊 Confidence: {lead.qualification_score * 100:.0f}%")
    lines.append("✅ Qualified Lead" if lead.is_qualified else "⏳ Pending Review")
    if lead.source:
        lines.append(f"🔍 Source: {lead.source}")

    message = "\n".join(lines)

    if transcript:
        if len(transcript) > TRANSCRIPT_PREVIEW_CHARS:
            transcript = transcript[:TRANSCRIPT_PREVIEW_CHARS] + "..."
        message += f"\n\n📝 *Transcript:*\n_{transcript}_"

    message += f"\n\n🔗 [View Dashboard]({DASHBOARD_URL})"
    return message


class TelegramNotifier:
    """Operator notifications over the Telegram Bot API.

    Methods return False when the bot is not configured and raise
    NotificationError when Telegram rejects or cannot receive a message.
    """

    def __init__(
        self,
        config: TelegramConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or TelegramConfig.from_env()
        self._client = httpx.AsyncClient(
            base_url=TELEGRAM_API_URL, timeout=10.0, transport=transport
        )

    @property
    def enabled(self) -> bool:
        return self.config.is_configured()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_message(
        self,
        text: str,
        parse_mode: str | None = "Markdown",
        disable_preview: bool = True,
    ) -> bool:
        """Send a message to the configured chat."""
        if not self.enabled:
            logger.warning("[Telegram] Notifications disabled - skipping")
            return False

        payload: dict = {
            "chat_id": self.config.chat_id,
            "text": text,
            "disable_web_page_preview": disable_preview,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            response = await self._client.post(
                f"/bot{self.config.bot_token}/sendMessage", json=payload
            )
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotificationError(f"Telegram request failed: {e!s}") from e

        if not result.get("ok"):
            raise NotificationError(
                f"Telegram rejected message: {result.get('description', 'unknown error')}"
            )
        return True

    async def notify_new_lead(self, lead: "Lead", transcript: str | None = None) -> bool:
        sent = await self.send_message(format_lead_message(lead, transcript))
        if sent:
            logger.info(f"[Telegram] Lead notification sent for {lead.id}")
        return sent

    async def notify_payment_link(self, lead: "Lead", payment_link: str) -> bool:
        message = (
            "💳 *Payment Link Generated*\n\n"
            f"📞 Lead: {lead.name or 'Unknown'}\n"
            f"☎️ Phone: {lead.phone or 'N/A'}\n"
            f"💰 Payment: {payment_link}\n\n"
            "Status: Awaiting payment"
        )
        return await self.send_message(message, disable_preview=False)

    async def notify_error(self, context: str, error: Exception) -> bool:
        """Send an operator-facing error alert."""
        message = (
            "⚠️ *Error Alert*\n\n"
            f"Context: {context}\n"
            f"Error: `{error!s}`\n"
            f"Time: {datetime.now(timezone.utc).isoformat()}"
        )
        return await self.send_message(message)

    async def test_connection(self) -> bool:
        """Send a test message to check the bot can reach the chat."""
        return await self.send_message(
            "✅ Telegram notification service is working!", parse_mode=None
        )
