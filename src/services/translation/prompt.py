"""만화 컨텍스트 기반 번역 프롬프트"""

import re

from src.schemas.translation import BubbleType, MangaContext

BUBBLE_INSTRUCTIONS: dict[BubbleType, str] = {
    BubbleType.DIALOGUE: "Character dialogue - preserve character voice and personality",
    BubbleType.THOUGHT: "Internal monologue - use introspective, first-person style",
    BubbleType.NARRATION: "Narration - use formal, descriptive tone",
    BubbleType.SOUND_EFFECT: "Sound effect - translate onomatopoeia naturally for target language",
    BubbleType.TITLE: "Title/header - use bold, impactful language",
}

GUIDELINES = """**Guidelines:**
- Natural, conversational {target} suitable for manga
- Preserve the original tone and emotion
- Keep the translation concise (speech bubbles are small)
- For dialogue: match character personality
- For thoughts: use internal monologue style
- For sound effects: use natural onomatopoeia
- DO NOT include explanations or notes
- Respond with ONLY the translated text"""

_PREFIX = re.compile(r"^(translation|translated text):\s*", re.IGNORECASE)


def _context_section(context: MangaContext) -> list[str]:
    lines = ["**Manga Translation Context**"]
    if context.series_title:
        lines.append(f"Series: {context.series_title}")
    if context.genre:
        lines.append(f"Genre: {context.genre}")
    if context.character_names:
        names = ", ".join(f"{name} ({desc})" for name, desc in context.character_names.items())
        lines.append(f"Characters: {names}")
    if context.previous_dialogue:
        lines.append(f'Previous dialogue: "{context.previous_dialogue}"')

    lines.append("")
    lines.append("**Text Type**")
    lines.append(BUBBLE_INSTRUCTIONS[context.bubble_type])
    lines.append("")
    return lines


def build_translation_prompt(
    text: str,
    target_language: str,
    source_language: str = "auto",
    context: MangaContext | None = None,
) -> str:
    lines: list[str] = []
    if context is not None:
        lines.extend(_context_section(context))

    lines.append("**Translation Task**")
    lines.append(f"Translate the following text to {target_language}")
    if source_language != "auto":
        lines.append(f"Source language: {source_language}")

    lines.append(GUIDELINES.format(target=target_language))
    lines.append("")
    lines.append("**Text to translate:**")
    lines.append(f'"{text}"')
    lines.append("")
    lines.append("**Translation:**")
    return "\n".join(lines)


def clean_translation(text: str) -> str:
    """응답에서 감싼 따옴표와 'Translation:' 류 접두어 제거"""
    cleaned = text.strip()

    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1]

    cleaned = _PREFIX.sub("", cleaned, count=1)
    return cleaned.strip()
