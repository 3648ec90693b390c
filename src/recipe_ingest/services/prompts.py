"""Prompt assembly for ingredient extraction."""

from dataclasses import dataclass
from typing import Literal

from recipe_ingest.domain.recipes import (
    ExtractionRequest,
    ImagePart,
    PromptPart,
    PromptPayload,
    TextPart,
)

WeightPolicy = Literal["zero", "null"]

_QUANTITY_RULES: dict[str, str] = {
    "zero": (
        '- If a quantity is missing or cannot be determined (e.g. "a pinch", '
        '"to taste"), use 0 as the weight.'
    ),
    "null": (
        '- If a quantity is missing or cannot be determined (e.g. "a pinch", '
        '"to taste"), use null as the weight.'
    ),
}

SYSTEM_INSTRUCTIONS = """\
You extract ingredient lists from bread and pastry recipes for a baker's percentage calculator.

Output: a JSON array ONLY, for example:
[{{"name": "bread flour", "weight": 500}}, {{"name": "water", "weight": 350}}]

Rules:
- Each element is an object with "name" (string) and "weight" (number, grams).
- Convert every other unit to grams (cups, tablespoons, teaspoons, ounces, pounds, ml, kg, pieces).
  Use typical densities for volume measures, e.g. 1 cup flour = 120 g, 1 cup water = 240 g, 1 egg = 50 g.
{quantity_rule}
- Keep names short and in the language used by the recipe.
- The images may be several pages or sections of ONE recipe. Read them together and merge
  an ingredient mentioned in more than one place into a single entry.
- If no ingredients can be recognized, output [].
- Do not include explanations, prose, or markdown code fences.
"""

SUPPLEMENTARY_TEXT_LABEL = "Recipe text provided by the user:"


@dataclass
class PromptAssembler:
    """Builds the ordered prompt: instructions, then images, then user text."""

    weight_policy: WeightPolicy = "zero"

    @property
    def system_instructions(self) -> str:
        return SYSTEM_INSTRUCTIONS.format(
            quantity_rule=_QUANTITY_RULES[self.weight_policy]
        )

    def build(self, request: ExtractionRequest) -> PromptPayload:
        """Assemble prompt parts for a single extraction request."""
        parts: list[PromptPart] = [TextPart(self.system_instructions)]
        parts.extend(
            ImagePart(data=image.data, mime_type=image.mime_type)
            for image in request.images
        )
        text = request.text.strip()
        if text:
            parts.append(TextPart(f"{SUPPLEMENTARY_TEXT_LABEL}\n{text}"))
        return PromptPayload(parts=tuple(parts))
