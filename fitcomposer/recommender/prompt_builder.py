"""Prompt construction for every generation strategy."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from fitcomposer.nlp.occasion import OccasionArchetype
from fitcomposer.recommender.schemas import OutfitCandidate
from fitcomposer.wardrobe.inventory import ProjectedItem, inventory_as_json

_FEW_SHOT_EXAMPLES = """\
EXAMPLE 1:
Request: "First casual date at a coffee shop"
Inventory: [
  {"id": "f7a2c4d1-8e9b-4f3a-a1c2-3d4e5f6a7b8c", "attributes": {"category": "top", "subcategory": "shirt", "color_primary": "white"}},
  {"id": "a3b4c5d6-e7f8-9012-b3c4-d5e6f7a8b9c0", "attributes": {"category": "bottom", "subcategory": "jeans", "color_primary": "blue"}},
  {"id": "b8c9d0e1-f2a3-4567-c8d9-e0f1a2b3c4d5", "attributes": {"category": "shoes", "subcategory": "sneakers", "color_primary": "white"}},
  {"id": "c1d2e3f4-a5b6-7890-d1e2-f3a4b5c6d7e8", "attributes": {"category": "top", "subcategory": "blazer", "color_primary": "black"}}
]
Output:
{
  "top_id": "f7a2c4d1-8e9b-4f3a-a1c2-3d4e5f6a7b8c",
  "bottom_id": "a3b4c5d6-e7f8-9012-b3c4-d5e6f7a8b9c0",
  "shoes_id": "b8c9d0e1-f2a3-4567-c8d9-e0f1a2b3c4d5",
  "explanation": "Effortless casual elegance: white shirt, jeans and white sneakers. Confident without trying too hard.",
  "reasoning": {
    "color_harmony": "A neutral palette (white, blue, white) reads clean and modern.",
    "style_coherence": "Every piece shares a relaxed but polished casual-elegant vibe.",
    "occasion_fit": "Right for a first date: approachable, put together and personal."
  },
  "confidence_score": 92,
  "alternative_items": {
    "alternative_top_id": "c1d2e3f4-a5b6-7890-d1e2-f3a4b5c6d7e8",
    "why_alternative": "The blazer over the shirt adds polish if the coffee shop is upscale."
  }
}

EXAMPLE 2:
Request: "Important work meeting"
Inventory: [
  {"id": "d5e6f7a8-b9c0-1234-e5f6-a7b8c9d0e1f2", "attributes": {"category": "top", "subcategory": "shirt", "color_primary": "blue"}},
  {"id": "e9f0a1b2-c3d4-5678-f9a0-b1c2d3e4f5a6", "attributes": {"category": "bottom", "subcategory": "chinos", "color_primary": "beige"}},
  {"id": "f3a4b5c6-d7e8-9012-a3b4-c5d6e7f8a9b0", "attributes": {"category": "shoes", "subcategory": "oxfords", "color_primary": "black"}},
  {"id": "a7b8c9d0-e1f2-3456-b7c8-d9e0f1a2b3c4", "attributes": {"category": "top", "subcategory": "t-shirt", "color_primary": "grey"}}
]
Output:
{
  "top_id": "d5e6f7a8-b9c0-1234-e5f6-a7b8c9d0e1f2",
  "bottom_id": "e9f0a1b2-c3d4-5678-f9a0-b1c2d3e4f5a6",
  "shoes_id": "f3a4b5c6-d7e8-9012-a3b4-c5d6e7f8a9b0",
  "explanation": "Professional and confident: blue shirt, beige chinos and black oxfords project authority.",
  "reasoning": {
    "color_harmony": "Blue, beige and black form a classic business triad.",
    "style_coherence": "Balanced business casual: formal yet approachable.",
    "occasion_fit": "Communicates competence and seriousness in a meeting."
  },
  "confidence_score": 95
}"""

_ID_RULES = """\
CRITICAL RULES ABOUT IDS:
1. Every id you return (top_id, bottom_id, shoes_id, alternative_*_id) MUST exist EXACTLY in the inventory JSON above.
2. Copy ids verbatim. Do not invent, shorten or reformat them.
3. Correct: if the inventory has {"id": "abc-123-def", ...}, answer "abc-123-def".
4. Wrong: "shirt-001", "top-1" or any other value that is not in the inventory."""

_ID_REMINDER = """\
REPEATED FOR CLARITY:
Before using an id, VERIFY that this exact id (dashes, digits, everything) is in the inventory list above.
If it is not, that is an ERROR: pick another id that IS in the list."""


class ResponseTone(str, Enum):
    """How much prose the model should write in explanations and reasoning."""

    CONCISE = "concise"
    BALANCED = "balanced"
    DETAILED = "detailed"


_TONE_INSTRUCTIONS = {
    ResponseTone.CONCISE: (
        "RESPONSE TONE: concise. Keep the explanation to one short sentence "
        "and each reasoning field to a single direct line."
    ),
    ResponseTone.BALANCED: (
        "RESPONSE TONE: balanced. Use two or three friendly sentences in the explanation "
        "and one or two sentences per reasoning field."
    ),
    ResponseTone.DETAILED: (
        "RESPONSE TONE: detailed. Explain the choice thoroughly, naming colors, fabrics and "
        "styling tips, with several sentences per reasoning field."
    ),
}


@dataclass(frozen=True, slots=True)
class PromptPair:
    """System and user instructions for one model call."""

    system: str
    user: str


def _bullets(entries: Sequence[str]) -> str:
    return "\n".join(f"- {entry}" for entry in entries) or "- (none)"


class PromptBuilder:
    """Builds the instructions sent to the model for each strategy."""

    def __init__(self, tone: ResponseTone | str = ResponseTone.BALANCED) -> None:
        self.tone = ResponseTone(tone)

    @property
    def tone_instructions(self) -> str:
        return _TONE_INSTRUCTIONS[self.tone]

    def single_pass(self, intent: str, projected: Sequence[ProjectedItem]) -> PromptPair:
        """Chain-of-thought prompt with few-shot examples for a single call."""

        system = "\n\n".join(
            [
                "You are an expert personal stylist with a sharp eye for fashion. "
                "Build an exceptional outfit by analysing the user's wardrobe carefully.",
                self.tone_instructions,
                f"AVAILABLE INVENTORY:\n{inventory_as_json(projected)}",
                "METHOD (think step by step before answering):\n"
                f'1. CONTEXT: interpret the occasion "{intent}", the formality it needs and any season or weather hints.\n'
                "2. INVENTORY: group pieces into tops, bottoms and shoes; note the palette and dominant styles.\n"
                "3. COLOR HARMONY: apply color theory (complementary, analogous, monochrome).\n"
                "4. STYLE COHERENCE: make the three pieces share one style; do not mix formal and sporty "
                "unless the look is intentional streetwear.\n"
                "5. OCCASION FIT: confirm the outfit suits the occasion and rate your confidence 0-100.\n"
                "6. ALTERNATIVES: list valid swaps from the inventory; if a key piece is missing, "
                "suggest what to buy.",
                f"FEW-SHOT EXAMPLES (ids follow the same format as the inventory):\n\n{_FEW_SHOT_EXAMPLES}",
                _ID_RULES
                + "\n5. If the inventory has no suitable option, lower confidence_score and use missing_piece_suggestion."
                "\n6. Be specific in the reasoning: name exact colors, styles and textures."
                "\n7. Use 90+ confidence only for truly exceptional outfits."
                "\n8. Include alternative_items when the inventory has valid options.",
                _ID_REMINDER,
                "Answer with the structured JSON using ONLY inventory ids.",
            ],
        )
        user = (
            f'User request: "{intent}"\n\n'
            "Create the best possible outfit following the step-by-step method."
        )
        return PromptPair(system=system, user=user)

    def candidates(self, intent: str, projected: Sequence[ProjectedItem], *, count: int = 3) -> PromptPair:
        """Prompt asking for ``count`` distinct, pre-scored outfits."""

        system = "\n\n".join(
            [
                f"You are a creative stylist. Generate {count} DIFFERENT outfits for the same occasion.",
                self.tone_instructions,
                f"INVENTORY:\n{inventory_as_json(projected)}",
                f'OCCASION: "{intent}"',
                "METHOD:\n"
                "1. Generate the BEST possible outfit (ordinal 1).\n"
                "2. Generate a VALID ALTERNATIVE with a different style (ordinal 2).\n"
                "3. Generate a creative THIRD OPTION (ordinal 3).",
                "MANDATORY DIVERSITY:\n"
                f"- The {count} outfits must differ in more than one piece; swapping a single item is not enough.\n"
                "- Explore different color palettes.\n"
                "- Try different vibes (casual vs. elegant, minimal vs. statement).",
                "SCORE each outfit 0-100 using:\n"
                "- Color harmony (30%)\n"
                "- Style coherence (30%)\n"
                "- Occasion fit (25%)\n"
                "- Originality (15%)",
                "Order candidates from best to worst.",
                _ID_RULES,
            ],
        )
        user = f'Generate {count} outfit candidates for: "{intent}"'
        return PromptPair(system=system, user=user)

    def critique(
        self,
        intent: str,
        candidates: Sequence[OutfitCandidate],
        projected: Sequence[ProjectedItem],
    ) -> PromptPair:
        """Prompt asking to judge the candidates independently and pick one by ordinal."""

        candidate_json = json.dumps(
            [candidate.model_dump() for candidate in candidates],
            ensure_ascii=False,
            indent=2,
        )
        ordinals = ", ".join(str(candidate.ordinal) for candidate in candidates)
        system = "\n\n".join(
            [
                f"You are an expert fashion critic. EVALUATE {len(candidates)} outfits and select the BEST one.",
                f"PROPOSED CANDIDATES:\n{candidate_json}",
                f"FULL INVENTORY:\n{inventory_as_json(projected)}",
                f'OCCASION: "{intent}"',
                "EVALUATION CRITERIA:\n"
                "1. Color harmony: do the colors work together?\n"
                "2. Style coherence: do the pieces share one vibe?\n"
                "3. Occasion fit: is it appropriate for the occasion?\n"
                "4. Practicality: is it realistic and wearable?\n"
                "5. Wow factor: does something make it stand out?",
                "PROCESS:\n"
                "1. Critique EACH candidate independently against the criteria.\n"
                "2. Identify strengths and weaknesses of each one.\n"
                f"3. Select exactly ONE by its ordinal ({ordinals}).\n"
                "4. Justify the decision with specific evidence.",
                "Be CRITICAL and HONEST. If every candidate is mediocre, say so.",
            ],
        )
        user = f"Evaluate these {len(candidates)} outfits and select the best one."
        return PromptPair(system=system, user=user)

    def templated(
        self,
        archetype: OccasionArchetype,
        intent: str,
        projected: Sequence[ProjectedItem],
    ) -> PromptPair:
        """Single-call prompt with the archetype's rules injected as hard constraints."""

        label = archetype.name.upper()
        system = "\n\n".join(
            [
                f"You are an expert personal stylist specialised in outfits for: {label}.",
                self.tone_instructions,
                f"AVAILABLE INVENTORY:\n{inventory_as_json(projected)}",
                f'USER REQUEST: "{intent}"',
                f"STYLE GUIDE FOR {label}:\n{archetype.style_guidelines}",
                f"COLOR PREFERENCES:\n{archetype.color_preferences}",
                f"MUST-HAVES:\n{_bullets(archetype.must_haves)}",
                f"AVOID:\n{_bullets(archetype.avoidances)}",
                "METHOD:\n"
                "1. Find inventory pieces that satisfy the must-haves.\n"
                f"2. Apply the {archetype.name} style guide.\n"
                '3. Check that NOTHING from the "AVOID" list is included.\n'
                "4. Reason over color harmony, then style coherence, then occasion fit.\n"
                f"5. Validate the colors against the {archetype.name} preferences.",
                _ID_RULES,
                _ID_REMINDER,
                "Answer with the outfit that best satisfies these constraints, using ONLY inventory ids.",
            ],
        )
        user = f'Create the best outfit for {archetype.name}: "{intent}"'
        return PromptPair(system=system, user=user)
