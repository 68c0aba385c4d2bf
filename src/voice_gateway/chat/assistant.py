"""Sales assistant replies for the website chat widget.

Replies come from the configured chat model. When no model is configured,
or the call fails, a keyword-routed knowledge base answers instead.
"""

import logging
import re
from collections.abc import Sequence

from voice_gateway.providers.llm import LLMProvider

logger = logging.getLogger("voice-gateway-chat")

SYSTEM_PROMPT = """You are an expert AI sales assistant for CallWaitingAI, a voice AI receptionist service for UK businesses.

Your role is to:
- Answer questions about our AI voice receptionist service
- Explain features, pricing, and benefits clearly
- Qualify leads and identify purchase intent
- Guide users toward booking a demo or starting a free trial
- Be friendly, professional, and conversational

Key Information:
**Pricing:**
- Starter Plan: £99/month (50 calls, basic AI receptionist, email notifications)
- Pro Plan: £299/month (200 calls, advanced AI, priority support, Telegram/WhatsApp notifications)
- Enterprise: Custom pricing (unlimited calls, custom voice models, dedicated support, API access)

**Features:**
- 24/7 AI receptionists that never miss a call
- Natural conversation with customers
- Automatic lead capture and qualification
- Call recording & transcription
- Real-time notifications (Telegram/WhatsApp)
- Payment link generation
- CRM integration (Salesforce, HubSpot, Pipedrive)
- Multi-language support (50+ languages)
- Ultra-low latency (<500ms response time)

**Setup Process:**
1. Sign up (2 minutes)
2. Choose your plan
3. Configure AI receptionist
4. Connect phone number
5. Go live (most customers live within 24 hours)

**Support:**
- Live chat: Available now
- Email: support@callwaitingai.dev
- Phone: +44 (276) 582-5329
- 24/7 support for Pro and Enterprise plans

**Current Offer:**
- 30-day free trial with 100 free calls
- No credit card required
- Cancel anytime

Keep responses concise (2-3 paragraphs max). Use bullet points for lists. Always try to move the conversation toward a demo or trial signup. Ask qualifying questions when appropriate."""

EMPTY_REPLY = (
    "I apologize, but I had trouble processing that. Could you rephrase your question?"
)

GREETING_PATTERN = re.compile(r"^(hi|hello|hey|good morning|good afternoon|good evening)")

GREETING_REPLY = (
    "Hello! I'm here to help you learn about CallWaitingAI's voice AI receptionist "
    "service. We help businesses never miss a call with 24/7 AI-powered voice "
    "receptionists.\n\n"
    "What would you like to know about? Our features, pricing, setup process, or "
    "would you like to see a demo?"
)

PRICING_REPLY = (
    "We offer flexible pricing plans to suit businesses of all sizes:\n\n"
    "💼 **Starter Plan** - £99/month\n"
    "• 50 calls included\n"
    "• Basic AI receptionist\n"
    "• Email notifications\n\n"
    "🚀 **Pro Plan** - £299/month\n"
    "• 200 calls included\n"
    "• Advanced AI with custom training\n"
    "• Priority support\n"
    "• Telegram & WhatsApp notifications\n\n"
    "🏢 **Enterprise** - Custom pricing\n"
    "• Unlimited calls\n"
    "• Custom voice models\n"
    "• Dedicated support\n"
    "• Full API access\n\n"
    "We also offer a **30-day free trial** with 100 free calls - no credit card "
    "required! Would you like to start your free trial?"
)

FEATURES_REPLY = (
    "CallWaitingAI provides powerful features to transform your call handling:\n\n"
    "✅ **24/7 AI Receptionists** - Never miss a call, even outside business hours\n"
    "✅ **Natural Conversations** - Human-like voice interactions\n"
    "✅ **Automatic Lead Capture** - Collect caller information seamlessly\n"
    "✅ **Call Recording & Transcription** - Full call history and analysis\n"
    "✅ **Real-time Notifications** - Telegram, WhatsApp, Email alerts\n"
    "✅ **Payment Link Generation** - Collect payments during calls\n"
    "✅ **CRM Integration** - Salesforce, HubSpot, Pipedrive\n"
    "✅ **50+ Languages** - Multi-language support\n"
    "✅ **Custom Voice Training** - Tailor the AI to your business\n\n"
    "Interested in seeing how it works? I can arrange a live demo call to your "
    "phone right now!"
)

SETUP_REPLY = (
    "Getting started with CallWaitingAI is incredibly simple:\n\n"
    "**5-Step Setup Process:**\n\n"
    "1️⃣ **Sign up** (takes just 2 minutes)\n"
    "2️⃣ **Choose your plan** (or start with free trial)\n"
    "3️⃣ **Configure your AI receptionist** (tell us about your business)\n"
    "4️⃣ **Connect your phone number** (we handle the technical setup)\n"
    "5️⃣ **Go live!** (start receiving AI-powered calls)\n\n"
    "⏱️ **Timeline:** Most customers are live within 24 hours\n"
    "🛠️ **Technical skills required:** None - we handle everything\n"
    "📞 **Support:** Our team guides you through every step\n\n"
    "Ready to get started? I can connect you with our onboarding team or set up "
    "your free trial right now!"
)

INTEGRATIONS_REPLY = (
    "CallWaitingAI integrates seamlessly with the tools you already use:\n\n"
    "📞 **Phone Systems:**\n• Twilio\n• Vapi\n• Custom phone numbers\n\n"
    "💼 **CRM Platforms:**\n• Salesforce\n• HubSpot\n• Pipedrive\n\n"
    "💬 **Messaging:**\n• Telegram\n• WhatsApp\n• Slack\n\n"
    "💳 **Payment Processors:**\n• Stripe\n• PayPal\n\n"
    "📊 **Analytics:**\n• Google Analytics\n• Mixpanel\n\n"
    "Plus, our **REST API** allows you to build completely custom integrations. "
    "Want to discuss your specific integration needs?"
)

DEMO_REPLY = (
    "Excellent! I can set up a demo for you right now! 🎉\n\n"
    "Choose your preferred demo type:\n\n"
    "**1️⃣ Live Call Demo** - We'll call you in the next 2 minutes so you can "
    "experience our AI receptionist firsthand\n\n"
    "**2️⃣ Video Walkthrough** - Watch a recorded demo showing all features in action\n\n"
    "**3️⃣ Free Trial** - Get 30 days FREE with 100 calls to try it yourself "
    "(no credit card required)\n\n"
    "Which would you prefer? Just let me know 1, 2, or 3, and I'll get you set up!"
)

SUPPORT_REPLY = (
    "We're here to help! 🙌\n\n"
    "**Contact Options:**\n\n"
    "💬 **Live Chat:** Right here (that's me!)\n"
    "📧 **Email:** support@callwaitingai.dev\n"
    "📞 **Phone:** +44 (276) 582-5329\n"
    "💼 **Enterprise Support:** enterprise@callwaitingai.dev\n\n"
    "⏱️ **Response Time:** < 1 hour average\n"
    "🕐 **24/7 Support:** Available for Pro and Enterprise plans\n\n"
    "How else can I assist you today?"
)

DEFAULT_REPLY = (
    "Thanks for your question! I'm here to help you understand how CallWaitingAI "
    "can benefit your business.\n\n"
    "I can tell you about:\n"
    "• 💰 **Pricing** - Our flexible plans starting at £99/month\n"
    "• ⚡ **Features** - 24/7 AI receptionists, lead capture, integrations\n"
    "• 🚀 **Setup** - Quick 5-step process (live in 24 hours)\n"
    "• 🎯 **Demo** - See it in action with a live call or free trial\n\n"
    "What would you like to know more about? Or feel free to ask any specific questions!"
)

# Checked in order after the greeting pattern
KNOWLEDGE_BASE: tuple[tuple[tuple[str, ...], str], ...] = (
    (("price", "cost", "pricing", "plan"), PRICING_REPLY),
    (("feature", "what can", "capability", "do"), FEATURES_REPLY),
    (("setup", "how", "start", "install", "work"), SETUP_REPLY),
    (("integration", "integrate", "api", "connect"), INTEGRATIONS_REPLY),
    (("demo", "try", "test", "show me"), DEMO_REPLY),
    (("support", "help", "contact"), SUPPORT_REPLY),
)


def fallback_response(message: str) -> str:
    """Answer from the built-in knowledge base."""
    lowered = message.lower()
    if GREETING_PATTERN.match(lowered):
        return GREETING_REPLY
    for keywords, reply in KNOWLEDGE_BASE:
        if any(keyword in lowered for keyword in keywords):
            return reply
    return DEFAULT_REPLY


class ChatAssistant:
    """Generates assistant replies with conversation context."""

    def __init__(self, provider: LLMProvider | None = None):
        self.provider = provider

    async def get_chat_response(
        self,
        message: str,
        history: Sequence[dict[str, str]] = (),
    ) -> str:
        """Reply to ``message`` given prior ``{role, content}`` turns."""
        if self.provider is None:
            return fallback_response(message)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            *({"role": m["role"], "content": m["content"]} for m in history),
            {"role": "user", "content": message},
        ]

        try:
            completion = await self.provider.client.chat.completions.create(
                model=self.provider.chat_model,
                messages=messages,
                temperature=0.7,
                max_tokens=500,
            )
        except Exception as e:
            logger.error(f"[{self.provider.name}] Chat completion error: {e!s}")
            logger.info(f"[{self.provider.name}] Falling back to knowledge base responses")
            return fallback_response(message)

        reply = completion.choices[0].message.content if completion.choices else None
        logger.info(f"[{self.provider.name}] Generated response ({len(reply or '')} chars)")
        return reply or EMPTY_REPLY

    async def aclose(self) -> None:
        if self.provider is not None:
            await self.provider.client.close()
