"""
Sage - AI Writing Assistant
===========================
Guardrails and provider dispatch for the in-editor writing tutor.

Flow for a chat prompt (see assist()):
1. Restricted prompts ("write my paper", ...) are refused outright.
2. The prompt is classified (brainstorming, outlining, grammar, research,
   citation, general) and checked against the assignment's AI permissions.
3. Allowed prompts go to the configured provider (OpenAI, Anthropic or
   Gemini). Provider failures fall back to canned guidance.

FERPA: only the prompt and document text are sent to providers, never
student names or ids.
"""
import json
import logging
import re

from ..config import config, OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY

logger = logging.getLogger(__name__)

RESTRICTED_PROMPTS = [
    "write my paper",
    "complete this paragraph",
    "write an essay",
    "finish the assignment for me",
    "do my homework",
    "write this for me",
    "complete my work",
    "finish my essay",
    "write the conclusion",
    "write the introduction",
    "complete the assignment",
    "do this assignment",
    "write my homework",
    "finish this paragraph",
    "complete this sentence",
    "write my thesis",
    "finish my paper",
]

REFUSAL_TEXT = (
    "❌ This type of assistance goes beyond what I can help with. Try asking for "
    "brainstorming ideas, writing feedback, or research guidance instead!"
)

RESPONSE_PREFIX = "✅ "
RESPONSE_REMINDER = "\n\n💡 Remember: The goal is to help you develop your own writing skills and understanding!"

TUTOR_SYSTEM_PROMPT = """You are ZoË, an enthusiastic and creative AI writing tutor who loves inspiring students to discover their unique voice. Your personality is warm, encouraging, and genuinely excited about helping students unlock their creative potential.

Your approach:
- Be proactive: Always offer 2-3 specific follow-up suggestions or creative prompts after answering
- Spark creativity: Provide concrete examples, sensory details, and "what if" scenarios
- Build on their ideas: Take their concept and expand it with fresh angles and perspectives
- Use encouraging language: "That's a fantastic start!" "Here's an exciting direction..." "You could explore..."
- Give specific techniques: Character development tips, dialogue methods, descriptive writing strategies
- Ask thought-provoking questions that unlock new creative possibilities

Always end with 2-3 specific, actionable creative prompts they can try immediately.

NEVER write full paragraphs for them - instead, give them the tools and inspiration to write brilliantly themselves. Maintain academic integrity while being genuinely enthusiastic about their creative journey."""

SPELL_CHECK_SYSTEM_PROMPT = (
    "You are a spelling checker for student writing. Return ONLY a JSON array of objects "
    'with keys "word" (the misspelled word exactly as written) and "suggestion" '
    "(the corrected spelling). Return [] when there are no misspellings. "
    "Do not correct names, grammar or style."
)

REVIEW_SYSTEM_PROMPT = (
    "You review student writing for spelling and grammar. List each correction on its own "
    'numbered line exactly as: 1. Replace **"original"** with **"replacement"** - short explanation. '
    "Quote the original text exactly as it appears. Do not rewrite whole sentences."
)

CATEGORY_KEYWORDS = [
    ("citation", ["cite", "citation", "bibliography", "works cited", "reference list", "apa", "mla", "chicago"]),
    ("outlining", ["outline", "structure", "organize", "organise"]),
    ("brainstorming", ["brainstorm", "ideas", "idea", "topic", "inspire"]),
    ("grammar", ["grammar", "spelling", "punctuation", "proofread", "tense", "sentence"]),
    ("research", ["research", "source", "evidence", "fact", "statistic"]),
]

CATEGORY_FLAGS = {
    "brainstorming": "allow_brainstorming",
    "outlining": "allow_outlining",
    "grammar": "allow_grammar_check",
    "research": "allow_research_help",
}

CATEGORY_LABELS = {
    "brainstorming": "brainstorming",
    "outlining": "outlining",
    "grammar": "grammar checking",
    "research": "research",
    "general": "AI",
}

FALLBACK_RESPONSES = {
    "brainstorming": (
        "✅ Great question! Here are some brainstorming strategies you could try:\n\n"
        "1. Mind mapping - Start with your main topic and branch out with related ideas\n"
        "2. Free writing - Write continuously for 10 minutes without stopping\n"
        "3. Question generation - Ask who, what, when, where, why, and how about your topic\n"
        "4. Research different perspectives on your subject\n"
        "5. Look for connections between concepts\n\n"
        "💡 Try developing each idea with specific examples and evidence!"
    ),
    "outlining": (
        "✅ Here's a helpful structure you could consider:\n\n"
        "1. Introduction with clear thesis statement\n"
        "2. Background/Context section\n"
        "3. Main argument points (2-3 strong sections)\n"
        "4. Evidence and examples for each point\n"
        "5. Address counterarguments\n"
        "6. Conclusion that reinforces your thesis\n\n"
        "💡 Each section should flow logically to the next with smooth transitions!"
    ),
    "general": (
        "✅ I'd be happy to help! I can assist with:\n\n"
        "• Brainstorming and idea generation\n"
        "• Creating outlines and structure\n"
        "• Grammar and style feedback\n"
        "• Research strategies\n"
        "• Citation guidance\n\n"
        "💡 Could you be more specific about what aspect of your writing you'd like help with?"
    ),
}


class AIProviderError(Exception):
    """Raised when no provider response could be obtained."""


# =============================================================================
# GUARDRAILS
# =============================================================================

def check_restricted_prompt(prompt: str) -> bool:
    lower = (prompt or '').lower()
    return any(restricted in lower for restricted in RESTRICTED_PROMPTS)


def classify_prompt(prompt: str) -> str:
    lower = (prompt or '').lower()
    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if re.search(rf'\b{re.escape(keyword)}(?:s|es|ing|ed)?\b', lower):
                return category
    return "general"


def check_assignment_permission(assignment, category: str) -> bool:
    """
    Whether an assignment's AI settings allow help in `category`.
    "none" blocks everything except citation help; otherwise the
    per-category flags decide. No assignment means no restriction.
    """
    if not assignment:
        return True
    if assignment.get("ai_permissions") == "none":
        return category == "citation"
    flag = CATEGORY_FLAGS.get(category)
    if flag is None:
        return True
    return bool(assignment.get(flag, True))


def permission_message(category: str) -> str:
    label = CATEGORY_LABELS.get(category, category)
    return (
        f"🚫 Your teacher has turned off {label} help for this assignment. "
        "Try working through it on your own, or ask your teacher for guidance!"
    )


# =============================================================================
# PROVIDERS
# =============================================================================

def _complete_with_openai(system_prompt: str, prompt: str, model: str, max_tokens: int, temperature: float) -> str:
    from openai import OpenAI
    if not OPENAI_API_KEY:
        raise AIProviderError("OPENAI_API_KEY not configured")
    client = OpenAI(api_key=OPENAI_API_KEY)

    model_map = {
        'gpt-4o': 'gpt-4o',
        'gpt-4o-mini': 'gpt-4o-mini',
        'gpt-4-turbo': 'gpt-4-turbo',
    }
    actual_model = model_map.get(model, 'gpt-4o')

    response = client.chat.completions.create(
        model=actual_model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    content = response.choices[0].message.content
    if not content:
        raise AIProviderError("No response generated")
    return content.strip()


def _complete_with_anthropic(system_prompt: str, prompt: str, model: str, max_tokens: int, temperature: float) -> str:
    import anthropic
    if not ANTHROPIC_API_KEY:
        raise AIProviderError("ANTHROPIC_API_KEY not configured")
    client = anthropic.Anthropic(api_key=ANTHROPIC_API_KEY)

    model_map = {
        'claude-sonnet': 'claude-sonnet-4-20250514',
        'claude-haiku': 'claude-3-5-haiku-20241022',
    }
    actual_model = model_map.get(model, 'claude-sonnet-4-20250514')

    response = client.messages.create(
        model=actual_model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system_prompt,
        messages=[{"role": "user", "content": prompt}],
    )
    return response.content[0].text.strip()


def _complete_with_gemini(system_prompt: str, prompt: str, model: str, max_tokens: int, temperature: float) -> str:
    import google.generativeai as genai
    if not GEMINI_API_KEY:
        raise AIProviderError("GEMINI_API_KEY not configured")
    genai.configure(api_key=GEMINI_API_KEY)

    model_map = {
        'gemini-flash': 'gemini-2.0-flash',
        'gemini-pro': 'gemini-1.5-pro',
    }
    actual_model = model_map.get(model, 'gemini-2.0-flash')

    gen_model = genai.GenerativeModel(actual_model, system_instruction=system_prompt)
    response = gen_model.generate_content(
        prompt,
        generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
    )
    return response.text.strip()


PROVIDERS = {
    "openai": _complete_with_openai,
    "anthropic": _complete_with_anthropic,
    "gemini": _complete_with_gemini,
}


def complete(system_prompt: str, prompt: str, max_tokens: int = 500, temperature: float = 0.7) -> str:
    """Single completion from the configured provider."""
    provider = PROVIDERS.get(config.ai_provider)
    if provider is None:
        raise AIProviderError(f"Unknown AI provider: {config.ai_provider}")
    return provider(system_prompt, prompt, config.ai_model, max_tokens, temperature)


# =============================================================================
# ASSISTANT
# =============================================================================

def _profile_context(profile) -> str:
    if not profile:
        return ""
    lines = [f"\n\nStudent writing level: {profile.get('writing_level', 'beginner')}."]
    if profile.get("strengths"):
        lines.append(f"Strengths: {', '.join(profile['strengths'])}.")
    if profile.get("weaknesses"):
        lines.append(f"Areas to improve: {', '.join(profile['weaknesses'])}.")
    if profile.get("common_mistakes"):
        lines.append(f"Common mistakes to watch for: {', '.join(profile['common_mistakes'])}.")
    lines.append("Adjust vocabulary and depth to this level.")
    return " ".join(lines)


def fallback_response(prompt: str) -> str:
    category = classify_prompt(prompt)
    return FALLBACK_RESPONSES.get(category, FALLBACK_RESPONSES["general"])


def generate_ai_response(prompt: str, profile: dict = None) -> str:
    """Tutor reply for an allowed prompt. Never raises."""
    try:
        reply = complete(TUTOR_SYSTEM_PROMPT + _profile_context(profile), prompt)
        return f"{RESPONSE_PREFIX}{reply}{RESPONSE_REMINDER}"
    except Exception as e:
        logger.error("AI provider error (%s): %s", config.ai_provider, e)
        return fallback_response(prompt)


def _parse_json_array(text: str):
    match = re.search(r'\[.*\]', text or '', re.DOTALL)
    if not match:
        raise AIProviderError("AI response did not contain a JSON array")
    data = json.loads(match.group(0))
    if not isinstance(data, list):
        raise AIProviderError("AI response was not a list")
    return [item for item in data if isinstance(item, dict)]


def spell_check_with_ai(text: str) -> list:
    """[{"word", "suggestion"}] from the provider. Raises on provider or parse errors."""
    reply = complete(SPELL_CHECK_SYSTEM_PROMPT, text, max_tokens=800, temperature=0)
    return _parse_json_array(reply)


def review_writing(content: str) -> str:
    """Numbered correction list for a draft, in the format the suggestion parser reads."""
    return complete(REVIEW_SYSTEM_PROMPT, content, max_tokens=800, temperature=0.2)


def assist(prompt: str, session=None, assignment=None, profile=None, enforce_permissions=True):
    """
    Answer a chat prompt behind the guardrails.

    Returns:
        (response, is_restricted, category)
    """
    category = classify_prompt(prompt)

    if check_restricted_prompt(prompt):
        logger.info("Restricted prompt refused (session %s)", session.get("id") if session else None)
        return REFUSAL_TEXT, True, category

    if enforce_permissions and not check_assignment_permission(assignment, category):
        logger.info("Prompt category %s blocked by assignment %s", category, assignment.get("id"))
        return permission_message(category), True, category

    return generate_ai_response(prompt, profile), False, category
