"""
Prompt composition for code generation, refinement and system prompt drafting.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from webai.llm.models import LLMMessage

TEMPLATE_CONTEXT: dict[str, str] = {
    "blackjack": (
        "A blackjack card game bot. Full card deck, dealing, hit/stand, ace "
        "handling, bust detection, dealer AI, win/loss/push tracking, score history."
    ),
    "trivia": (
        "A trivia quiz bot. Has 50+ built-in questions across categories (science, "
        "history, pop culture, geography, sports). Tracks score, gives hints, "
        "multiple difficulty levels."
    ),
    "storyteller": (
        "An interactive story adventure bot. Has branching storylines, character "
        "inventory, health/stats, multiple endings. Text-based RPG style."
    ),
    "study_assistant": (
        "A study assistant with built-in flashcard system, spaced repetition, quiz "
        "mode, topic explanations from a knowledge base, progress tracking."
    ),
    "code_assistant": (
        "A code helper bot with built-in code templates, syntax references, common "
        "algorithm implementations, code formatting, language detection."
    ),
    "trading_analyst": (
        "A trading analysis bot with built-in technical indicators (RSI, MACD, "
        "moving averages), pattern recognition, portfolio tracking, risk calculator."
    ),
    "fitness_coach": (
        "A fitness coach with built-in workout database (100+ exercises), routine "
        "generator, rep/set tracking, BMI calculator, progress logging."
    ),
    "language_tutor": (
        "A language tutor with built-in vocabulary database, grammar rules, "
        "conjugation tables, practice exercises, quiz mode, progress tracking."
    ),
    "recipe_chef": (
        "A recipe bot with built-in recipe database (50+ recipes), ingredient "
        "matching, dietary filter, step-by-step instructions, shopping list generator."
    ),
    "dungeon_master": (
        "A D&D dungeon master bot. Has character creation, dice rolling engine, "
        "combat system, inventory management, procedurally generated dungeons, "
        "monster database."
    ),
    "debate_partner": (
        "A debate bot with built-in argument frameworks, logical fallacy detection, "
        "counterargument generation, scoring system, topic database."
    ),
}

SECTION_RULE = "═" * 35

GENERATION_SYSTEM_PROMPT = f"""You are an elite Python developer who builds polished, production-grade chatbot projects.

The bot must be completely SELF-CONTAINED: no external AI APIs, no LLM SDKs, no API keys for AI services. All behaviour lives in the Python code itself: pattern matching, state machines, built-in knowledge bases, game engines, algorithms, decision trees and well-written response templates.

Generate a full, modular Flask project for a chatbot web application, laid out in directories the way a real repository is.

{SECTION_RULE}
PROJECT STRUCTURE (12-20 files):
{SECTION_RULE}
- app.py: minimal entry point that imports the app from the bot/ package and serves on the PORT env var (default 3000)
- config.py: bot name, version, defaults, difficulty levels and limits
- bot/__init__.py: creates the Flask app and registers routes
- bot/routes.py: GET / (frontend), POST /api/chat, GET /api/health, GET /api/stats; CORS and error handling
- bot/engine.py: the core bot engine, session-aware (per session_id state), at least 250 lines
- bot/models.py: dataclasses and enums for session and game state
- bot/knowledge.py: extensive built-in data (questions, rules, facts, reference tables), at least 100 lines
- bot/responses.py: greeting, help and error templates with personality and formatted output
- bot/utils.py: parsing, formatting and random helpers
- static/css/style.css: modern dark theme with CSS variables, chat bubbles, animations, responsive layout
- static/js/app.js: session id, fetch-based messaging, typing indicator, markdown-lite rendering
- templates/index.html: Jinja2 template linking the static CSS and JS, using {{{{ bot_name }}}}
- tests/__init__.py and tests/test_engine.py: unit tests for the engine
- requirements.txt (flask, flask-cors, pytest), README.md, Dockerfile, docker-compose.yml, .gitignore, .env.example

{SECTION_RULE}
RULES:
{SECTION_RULE}
- Zero external AI dependencies.
- Complete, working code only. No "..." or TODO placeholders and no empty stubs.
- `python app.py`, open the browser, and the chat works.
- Docstrings, type hints, clean imports, PEP 8, relative imports inside bot/.

Also produce "system_prompt": a 300-500 word description of exactly how the bot behaves (personality, rules, capabilities). It is used to test the bot on our platform and is not part of the generated code.

Return JSON:
{{
  "name": "Short catchy name (2-4 words)",
  "description": "One-line description (under 100 chars)",
  "system_prompt": "Detailed behaviour description (300-500 words)",
  "suggested_slug": "url-friendly-slug",
  "files": [
    {{ "path": "app.py", "content": "..." }},
    {{ "path": "bot/engine.py", "content": "..." }}
  ]
}}"""

REFINE_SYSTEM_PROMPT = """You are an elite Python developer. The user has an existing bot project and wants to change it.

This is the COMPLETE current source code of the project:

{files_summary}

{rule}
REQUESTED CHANGE:
{rule}
"{instruction}"

Apply the change. You may modify files, add files the change needs, and drop files that are no longer needed by leaving them out.

RULES:
- Return ALL files, not only the changed ones. The response replaces the whole project.
- Keep the project structure (bot/, static/, templates/, tests/).
- The bot stays self-contained: no external AI APIs. Build requested features with built-in logic.
- Complete, working code only. No "..." or TODO placeholders.
- Keep the existing personality and features unless asked to change them.
- Update README.md and the tests when the change warrants it.

Update "name", "description" and "system_prompt" only if the change calls for it.

Return JSON:
{{
  "name": "{bot_name}",
  "description": "{bot_description}",
  "system_prompt": "Updated behaviour description (300-500 words)",
  "suggested_slug": "url-friendly-slug",
  "change_summary": "One or two sentences on what changed",
  "files": [
    {{ "path": "app.py", "content": "..." }}
  ]
}}"""

PROMPT_GENERATOR_SYSTEM_PROMPT = """You are an expert prompt engineer. Given a description of a desired AI assistant, write an optimized system prompt for it.

Return JSON:
{
  "name": "Short catchy name for the bot (2-4 words)",
  "system_prompt": "The full system prompt, 200-400 words: identity, personality and tone, capabilities, behaviour rules (what to do and what not to do), formatting instructions",
  "description": "One-line description of the bot (under 100 chars)",
  "suggested_slug": "url-friendly-slug"
}

Start the system prompt with a clear identity statement ("You are..."). If the bot is about crypto or trading, include a disclaimer that it does not give financial advice."""


def describe_request(description: str | None, template: str | None) -> str:
    """User message for code generation: the description plus template hints."""
    template_hint = TEMPLATE_CONTEXT.get(template or "", "")
    parts = [
        f"User's description: {description}" if description else "",
        f"Template context: {template_hint}" if template_hint else "",
    ]
    return "\n".join(part for part in parts if part)


def build_generation_messages(
    description: str | None, template: str | None
) -> list[LLMMessage]:
    return [
        LLMMessage.system(GENERATION_SYSTEM_PROMPT),
        LLMMessage.user(describe_request(description, template)),
    ]


def summarize_files(files: Sequence[dict[str, Any]]) -> str:
    return "\n\n".join(
        f"═══ {file['path']} ═══\n{file['content']}" for file in files
    )


def build_refine_messages(
    files: Sequence[dict[str, Any]],
    instruction: str,
    bot_name: str | None = None,
    bot_description: str | None = None,
) -> list[LLMMessage]:
    system_prompt = REFINE_SYSTEM_PROMPT.format(
        files_summary=summarize_files(files),
        rule=SECTION_RULE,
        instruction=instruction,
        bot_name=bot_name or "My Bot",
        bot_description=bot_description or "",
    )
    return [
        LLMMessage.system(system_prompt),
        LLMMessage.user(f"Apply this change to my bot: {instruction}"),
    ]


def build_prompt_generator_messages(
    description: str | None, template: str | None
) -> list[LLMMessage]:
    parts = [
        f"User description: {description}" if description else "",
        f"Template category: {template}" if template else "",
    ]
    return [
        LLMMessage.system(PROMPT_GENERATOR_SYSTEM_PROMPT),
        LLMMessage.user("\n".join(part for part in parts if part)),
    ]
