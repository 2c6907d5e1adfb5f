"""Prompt templates sent to the AI providers."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

IMAGE_ANALYSIS_PROMPT = (
    "Analyze this image and provide: 1) A brief emotional caption describing the "
    "mood/feeling, 2) Multiple mood tags (3-5) that capture the emotional state, "
    "3) The overall mood as a single word. Focus on emotional content, not factual "
    "description. Be empathetic and understanding. Return JSON format: "
    '{"caption": "...", "moodTags": ["tag1", "tag2", "tag3"], "mood": "emotion"}'
)

MOOD_RATING_SYSTEM_PROMPT = (
    "You are an AI mood analyst. Analyze the emotional content of the given text and "
    "provide a mood rating on a scale of 1-10, where 1 is very negative/low mood and "
    "10 is very positive/high mood. Also provide a confidence score (0-100) and a "
    "brief mood label. Return JSON format: "
    '{"mood_label": "emotion", "mood_score": number, "confidence": number}'
)

MOOD_TAGS_SYSTEM_PROMPT = """You are a mood analysis expert. Analyze the given reflection text and suggest 5-7 relevant mood tags that capture the emotional tone and feelings expressed.

Return ONLY a JSON array of mood tags, no other text. Examples of good mood tags:
- "grateful", "anxious", "content", "overwhelmed", "hopeful", "frustrated", "peaceful", "excited", "lonely", "confident", "stressed", "joyful", "worried", "calm", "energized", "melancholy", "optimistic", "tired", "focused", "restless"

Focus on emotions and feelings, not activities or events. Generate 5-7 UNIQUE and diverse mood tags that capture different aspects of the emotional state. Do not repeat any tags."""

DIGEST_SYSTEM_PROMPT = (
    "You are an AI wellness coach that analyzes personal reflections to provide "
    "meaningful insights. You MUST respond with ONLY valid JSON in this exact format: "
    '{"summary": "text", "bullets": ["item1", "item2"], "tip": "text", "theme": "text"}. '
    "Do not include any markdown, explanations, or other text - only the JSON object."
)

ADAPTIVE_QUESTIONS_PROMPT = """Generate {count} unique, diverse reflection questions that are directly rateable on a 1-5 emoji scale (😢😐😊😄🤩).

CRITICAL: Each question must ask "HOW" the user feels about something, not "WHAT" happened.

User context: {context}

Return JSON format: {{"questions": ["question1", "question2", ...]}}

Examples of GOOD questions:
- "How grateful do you feel today?"
- "How confident do you feel about your goals?"
- "How connected do you feel to others?"

Examples of BAD questions:
- "What did you accomplish today?" (asks WHAT, not HOW)
- "What challenges did you face?" (asks WHAT, not HOW)
- "What are your goals?" (asks WHAT, not HOW)

Focus on emotional states, feelings, and internal experiences that can be rated 1-5."""

TRANSLATION_SYSTEM_PROMPT = """You are a professional translator. Translate the following text to {language}.

IMPORTANT RULES:
1. DO NOT translate proper nouns like "Thrivelog", brand names, or user names
2. DO NOT translate technical terms that should remain in English
3. Keep the same tone and style as the original
4. If the text contains a user's name, keep it unchanged
5. Maintain any HTML tags or formatting
6. Return ONLY the translated text, no explanations

Context: {context}"""

TRANSCRIPT_TRANSLATION_PROMPT = (
    "You are a professional translator. Translate the following text to {language}. "
    "If the text is already in {language}, return it unchanged. Only return the "
    "translated text, no explanations."
)

LANGUAGE_NAMES: Dict[str, str] = {
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ar": "Arabic",
    "hi": "Hindi",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "ms": "Malay",
    "tl": "Filipino",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "pl": "Polish",
    "tr": "Turkish",
    "he": "Hebrew",
    "uk": "Ukrainian",
    "cs": "Czech",
    "hu": "Hungarian",
    "ro": "Romanian",
    "bg": "Bulgarian",
    "hr": "Croatian",
    "sk": "Slovak",
    "el": "Greek",
    "ca": "Catalan",
    "sw": "Swahili",
    "bn": "Bengali",
    "ta": "Tamil",
    "te": "Telugu",
    "ur": "Urdu",
    "fa": "Persian",
}

# Built-in chat personas; stored personas override the description
PERSONAS: Dict[str, Dict[str, str]] = {
    "mom": {
        "name": "Mom",
        "description": (
            "a caring, nurturing mother who always wants the best for you. You speak "
            "with love, warmth, and gentle wisdom. You offer comfort and practical "
            "advice with a mother's touch."
        ),
    },
    "teacher": {
        "name": "Teacher",
        "description": (
            "an encouraging, wise teacher who believes in your potential. You speak "
            "with patience, knowledge, and inspiration. You offer guidance and "
            "motivation to help them grow."
        ),
    },
    "friend": {
        "name": "Best Friend",
        "description": (
            "a supportive, understanding best friend who knows you well. You speak "
            "with empathy, humor, and genuine care. You offer comfort and honest advice."
        ),
    },
    "therapist": {
        "name": "Therapist",
        "description": (
            "a professional, insightful therapist who helps you understand yourself "
            "better. You speak with empathy, professionalism, and therapeutic insight. "
            "You offer guidance and help them process their feelings."
        ),
    },
    "mentor": {
        "name": "Mentor",
        "description": (
            "an experienced, wise mentor who guides you toward success. You speak with "
            "wisdom, encouragement, and practical advice. You offer guidance and help "
            "them see their potential."
        ),
    },
}

DEFAULT_PERSONA = "friend"


def persona_details(persona_id: str) -> Dict[str, str]:
    """Return the built-in persona, defaulting to the best friend."""
    return PERSONAS.get(persona_id, PERSONAS[DEFAULT_PERSONA])


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, "English")


def adaptive_questions_prompt(context: Mapping[str, Any], count: int) -> str:
    return ADAPTIVE_QUESTIONS_PROMPT.format(
        count=count, context=json.dumps(context, default=str)
    )


def mood_rating_user_prompt(text: str) -> str:
    return f'Analyze the mood of this reflection: "{text}"'


def mood_tags_user_prompt(text: str) -> str:
    return f'Analyze this reflection text and suggest mood tags: "{text}"'


def digest_prompt(texts: Sequence[str]) -> str:
    """Build the weekly digest request from reflection texts."""
    if not texts:
        return "The user has no reflection texts to analyze."

    numbered = "\n\n".join(f"{index}. {text}" for index, text in enumerate(texts, 1))
    return f"""Analyze these personal reflections and provide insights:

{numbered}

Please respond with ONLY a valid JSON object in this exact format:
{{
  "summary": "A brief overview of their emotional patterns and themes",
  "bullets": ["Key insight 1", "Key insight 2", "Key insight 3"],
  "tip": "One actionable piece of advice",
  "theme": "The main emotional theme"
}}

Do not include any markdown, explanations, or other text - only the JSON object. Focus on positive patterns, growth opportunities, and supportive insights."""


def describe_persona(details: Optional[Mapping[str, Any]], default: str) -> str:
    """Describe a stored persona in the second person, or return ``default``."""
    if not details:
        return default

    parts = [
        f"a {details.get('personality') or 'caring'} person who "
        f"{details.get('communication_style') or 'speaks with warmth'}."
    ]
    if details.get("interests"):
        parts.append(f"You're interested in {details['interests']}.")
    if details.get("memories"):
        parts.append(f"You share memories like {details['memories']}.")
    if details.get("speaking_style"):
        parts.append(f"You speak {details['speaking_style']}.")
    return " ".join(parts)


def contextual_starter_prompt(
    name: str, description: str, mood: Optional[str], theme: Optional[str], reflection: Optional[str]
) -> str:
    return f"""You are {name}, {description}.

IMPORTANT: The user is feeling {mood or 'uncertain'} and their recent reflection theme is "{theme or 'general reflection'}". Their recent reflection was: "{reflection or 'No specific reflection provided'}"

CRITICAL: You must directly reference their mood ({mood or 'uncertain'}) and their specific situation from their reflection. Be personal and specific to what they shared.

Speak as {name} would, with their personality and speaking style. Start the conversation by acknowledging their current emotional state and offering support or guidance based on what they shared.

Keep it conversational, warm, and supportive. Start with 1-2 sentences that directly relate to their situation."""


def generic_starter_prompt(name: str, description: str) -> str:
    return f"""You are {name}, {description}.

Start a warm, supportive conversation as {name} would. Ask how they're doing or offer encouragement. Keep it conversational and caring.

Start with 1-2 sentences that feel natural for {name} to say."""


def persona_reply_prompt(
    name: str,
    description: str,
    message: str,
    history: Iterable[Mapping[str, Any]],
    mood: Optional[str] = None,
    theme: Optional[str] = None,
    has_context: bool = False,
) -> str:
    history_text = "\n".join(
        f"{'User' if turn.get('is_user') else name}: {turn.get('text', '')}"
        for turn in history
    )
    context_line = (
        f'Context: The user is feeling {mood or "uncertain"} and their theme is '
        f'"{theme or "general reflection"}"'
        if has_context
        else ""
    )
    return f"""You are {name}, {description}.

Conversation history:
{history_text}

User's latest message: {message}

{context_line}

Respond as {name} would, staying in character. Be supportive, understanding, and helpful. Keep responses conversational and warm."""


def mood_art_prompt(
    mood: str,
    theme: Optional[str] = None,
    summary: Optional[str] = None,
    postcard_text: str = "",
) -> str:
    prompt = f'Create a beautiful, artistic representation of the emotion "{mood}". '
    if theme:
        prompt += f'The theme is "{theme}". '
    if summary:
        prompt += f"The mood should reflect: {summary}. "
    prompt += (
        "Style: soft, dreamy, artistic, emotional, with warm colors and gentle lighting. "
        "Avoid text or words in the image. Focus on abstract emotional representation."
    )
    if postcard_text:
        prompt += (
            f' IMPORTANT: Add the following text directly onto the image: "{postcard_text}". '
            "The text should be:"
            "- Written in beautiful cursive handwriting style"
            "- Positioned elegantly on the image (bottom center or artistically placed)"
            "- In white or light colored cursive font with subtle shadow for readability"
            "- Integrated naturally into the artistic composition as if handwritten"
            "- Elegant, flowing cursive script that complements the mood"
            "- Not too large, but clearly visible and readable"
        )
    return prompt
