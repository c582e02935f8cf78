"""Prompt templates sent to the language model.

The plan prompt is a fixed constant: it is reused verbatim for every
request and is never translated, whatever the user's locale.
"""

from __future__ import annotations

# =============================================================================
# Plan Generation
# =============================================================================

PLAN_JSON_PROMPT = """
You are Micelion AI. Given a user's idea and short answers, return ONLY a JSON object with:
{
  "project_title": string,
  "briefing": string,
  "skills": string[],
  "milestones": [
    {
      "title": string,
      "description": string,
      "skills": string[],
      "resources": [
        { "title": string, "url": string, "type": "article"|"video"|"course"|"book"|"doc" }
      ]
    }
  ]
}
No code fences. No prose. Ensure valid JSON.
"""


# =============================================================================
# Free Chat
# =============================================================================

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


# =============================================================================
# Translation
# =============================================================================

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
}

TRANSLATE_INPUT_PROMPT = (
    "You are a translator. Translate the user's input from {source} to {target}, "
    "preserving meaning and any technical terms. Only provide the translation."
)

TRANSLATE_ANSWER_PROMPT = (
    "Translate the assistant's answer from {source} to {target} in a natural way, "
    "without adding extra explanations."
)


def format_translation_prompt(source_lang: str, target_lang: str) -> str:
    """Format the translator system prompt for a language pair.

    Text heading into English is the user's input; text leaving English is
    an assistant answer on its way back to the user.
    """
    source = LANGUAGE_NAMES.get(source_lang.lower()[:2], source_lang)
    target = LANGUAGE_NAMES.get(target_lang.lower()[:2], target_lang)
    template = TRANSLATE_INPUT_PROMPT if target == "English" else TRANSLATE_ANSWER_PROMPT
    return template.format(source=source, target=target)
