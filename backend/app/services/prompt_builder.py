from typing import Any

from app.core.providers import LLMProviderConfig
from app.schemas.chat import ChatRequest, SearchType

WEB_SYSTEM_INSTRUCTION = (
    "You are a general research assistant. Provide comprehensive, up-to-date information "
    "on the user's question. Include relevant context and cite sources when possible."
)

RAG_SYSTEM_INSTRUCTION = (
    "You are BIOSPACE AI, an expert assistant specializing in NASA space biology research. "
    "You have access to 608 publications covering topics like microgravity effects on human "
    "physiology, radiation biology, muscle atrophy, bone loss, plant growth in space, "
    "cardiovascular changes, immune system responses, and more. Provide helpful, scientific "
    "responses based on space biology research. Keep responses concise but informative. "
    "Use bullet points where appropriate."
)


def build_system_instruction(search_type: SearchType) -> str:
    return WEB_SYSTEM_INSTRUCTION if search_type == "web" else RAG_SYSTEM_INSTRUCTION


def build_prompt_text(message: str, search_type: SearchType) -> str:
    return f"{build_system_instruction(search_type)}\n\nUser question: {message}"


def select_temperature(search_type: SearchType, config: LLMProviderConfig) -> float:
    return config.web_temperature if search_type == "web" else config.rag_temperature


def build_generation_payload(
    request: ChatRequest, config: LLMProviderConfig
) -> dict[str, Any]:
    return {
        "contents": [
            {"parts": [{"text": build_prompt_text(request.message, request.search_type)}]}
        ],
        "generationConfig": {
            "temperature": select_temperature(request.search_type, config),
            "maxOutputTokens": config.max_output_tokens,
        },
    }
