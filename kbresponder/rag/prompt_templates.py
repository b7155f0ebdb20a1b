"""Prompt templates for RAG system"""

from typing import List, Dict, Sequence


LANGUAGE_DETECTION_PROMPT = """You are a language detection assistant.
Task:
- Detect the language of the given text.
- Return the ISO 639-3 language code (three-letter code, e.g., "eng" for English, "fra" for French, "zho" for Chinese).
- Do NOT return anything else, just the 3-letter code.
- For mixed-language text, return the language that is dominant. If unsure, pick the language that conveys most meaning.
- If the text is very short or slangy (like "wad is ur business hour"), still return the correct language code.

Text: \"\"\"{text}\"\"\""""


SYSTEM_PROMPT = """You are a technical support agent from a data analytics team.
Use the user's question and the knowledge base context to give clear, concise answers.
Vary your phrasing and avoid repeating earlier sentences.
If unsure, reply politely with a variation of "I will check and get back." For highly technical issues, say the engineer will follow up (with varied wording).
Respond in the language matching "{detected_language}" (ISO 639-3).
If "{detected_language}" is "und", detect the language from the user's current message.
Chat history is for context only and not for language detection.
Answering rules:
- Prioritize knowledge base information when relevant.
- If the knowledge base lacks the answer, use chat history if it helps.
- If both lack the answer, fall back to a polite "will check and get back" style reply.
Prefer periods over exclamation marks and avoid emojis. Only reply to greetings when the user greets.

Chat History:
{history}

Context:
{context}
"""


USER_PROMPT = "User message: {text}"

CONTEXT_SEPARATOR = "\n---\n"


def build_language_detection_prompt(text: str) -> str:
    """Build single-turn prompt asking for the language of a message"""
    return LANGUAGE_DETECTION_PROMPT.format(text=text)


def format_conversation_history(messages: Sequence[Dict[str, str]]) -> str:
    """
    Format conversation history for prompt
    
    Args:
        messages: Message dicts with 'role' and 'content', oldest first
        
    Returns:
        One "User: ..." or "Agent: ..." line per message
    """
    if not messages:
        return ""
    
    formatted = []
    for msg in messages:
        speaker = "Agent" if msg.get('role') == 'agent' else "User"
        formatted.append(f"{speaker}: {msg.get('content', '')}")
    
    return "\n".join(formatted)


def format_context(page_contents: Sequence[str]) -> str:
    """Join retrieved chunk texts with a separator line"""
    if not page_contents:
        return ""
    return CONTEXT_SEPARATOR.join(page_contents)


def build_messages(
    text: str,
    context: str,
    conversation_history: str,
    detected_language: str
) -> List[Dict[str, str]]:
    """
    Build message list for LLM
    
    Args:
        text: User message
        context: Formatted knowledge base context
        conversation_history: Formatted conversation history
        detected_language: ISO 639-3 code the reply should be written in
        
    Returns:
        System and user message dicts
    """
    system_message = SYSTEM_PROMPT.format(
        detected_language=detected_language,
        history=conversation_history,
        context=context
    )
    
    return [
        {"role": "system", "content": system_message},
        {"role": "user", "content": USER_PROMPT.format(text=text)}
    ]
