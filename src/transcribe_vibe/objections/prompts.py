"""
Objection handling prompt templates.

This module contains the instruction contract sent to the oracle, kept
separate from the business logic for easier maintenance and editing.
"""

from typing import Dict, List

from .models import ObjectionCategory


class ObjectionPrompts:
    """Collection of all objection-related prompts."""

    @staticmethod
    def system_prompt() -> str:
        """Role and response contract for the sales assistant."""
        categories = ", ".join(member.value for member in ObjectionCategory)
        return f"""
You are a sales expert helping to handle objections. Your job is to provide professional, empathetic, and persuasive responses to customer objections. Keep responses conversational, under 150 words, and focus on addressing the concern while moving the conversation forward. Always acknowledge the concern first, then provide value or reassurance.

Classify every objection and answer with a single JSON object:
{{"reply":"<your response to the customer>","confidence":<integer 1-10, how well the reply addresses the objection>,"category":"<one of: {categories}>","subcategory":"<short free-form label, e.g. Price too high>"}}

Respond ONLY with minified JSON (no code fences).
        """.strip()

    @staticmethod
    def objection_prompt(objection: str) -> str:
        """User message carrying one objection."""
        return f"""
Customer objection: "{objection}"

Provide a professional response that acknowledges their concern and offers a solution or reassurance.
        """.strip()

    @staticmethod
    def messages(objection: str) -> List[Dict[str, str]]:
        """Chat messages for one classify-and-reply call."""
        return [
            {"role": "system", "content": ObjectionPrompts.system_prompt()},
            {"role": "user", "content": ObjectionPrompts.objection_prompt(objection)},
        ]
