from loguru import logger

from kisan_agent.completion import CompletionService, text_message
from kisan_agent.config import ModelSpec
from kisan_agent.languages import language_name

CHAT_TEMPERATURE = 0.5
CHAT_MAX_TOKENS = 512

FARM_AGENT_PROMPT = """
You are the AI farm agent of the Kisan Call Centre, helping Indian farmers over a phone-style chat.

CORE PRINCIPLES:
1. **Only farming topics** - crops, seeds, soil, fertilizers, pests and diseases, irrigation, weather, livestock, market prices and government schemes for farmers
2. **Practical and concise** - a few short sentences or bullet points a farmer can act on today
3. **Simple words** - avoid jargon, explain any technical term
4. **Local context** - prefer locally available remedies and mention costs in ₹ when useful
5. **Know your limits** - for serious crop loss or unclear cases, suggest the nearest Krishi Vigyan Kendra (KVK)

If asked about anything unrelated to farming, politely say you can only help with farming questions.
"""


def build_messages(query: str, language: str):
    return [
        text_message("system", FARM_AGENT_PROMPT),
        text_message(
            "system",
            f"Respond only in {language_name(language)}. Be friendly and keep it brief and clear.",
        ),
        text_message("user", query),
    ]


def answer_query(service: CompletionService, model: ModelSpec, query: str, language: str) -> str:
    """One chat turn against the farm agent. Upstream errors propagate."""
    logger.info("Chat query ({}, {} chars)", language, len(query))
    return service.complete(
        model=model.name,
        messages=build_messages(query, language),
        temperature=CHAT_TEMPERATURE,
        max_tokens=CHAT_MAX_TOKENS,
    )
