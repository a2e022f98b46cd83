"""Prompts for the three Gemini operations and the image generation flow.

Detection and parsing ask for JSON; the model frequently wraps it in a
```json fence anyway, which the response parser tolerates.
"""

from urllib.parse import quote_plus


def get_detection_system_instruction(max_items: int = 100) -> str:
    """System instruction for the detection call.

    Args:
        max_items: Upper bound on returned objects.
    """
    return (
        f"Return a JSON array with labels. Never return masks or code fencing. Limit to {max_items} objects. "
        "If an object is present multiple times, ignore them. Look for unique items in the space."
    )


DETECTION_PROMPT = (
    'Detect food items in a fridge or kitchen environment (with "label" as specific item name). '
    "Do not repeat the same item. Look all over the image. "
    "Name them in a way that is generally written in recipes."
)


SEARCH_SYSTEM_INSTRUCTION = "You are a helpful culinary assistant that finds recipes based on available ingredients."


def build_search_prompt(ingredients: list[str]) -> str:
    """User prompt for the grounded recipe search."""
    return f"""
I have the following ingredients in my fridge/kitchen: {", ".join(ingredients)}.

Search the web and find me a suitable recipe that uses most of these ingredients.
Format your response as follows:

1. Recipe name (with a link to the source)
2. Ingredients I already have from my list
3. Additional ingredients I'll need to buy
4. Brief cooking instructions
5. Estimated cooking time
6. Number of servings

Do not make up a recipe - only use recipes you can find from real websites.
Prefer recipes that use as many of my ingredients as possible.
""".strip()


def build_parse_prompt(raw_recipe_text: str) -> str:
    """Strict-format instruction for turning recipe prose into the recipe schema."""
    return f"""
Convert the recipe text below into JSON. Respond with a single ```json fenced block and nothing else.

The block must contain a JSON array. Each element describes one recipe:
{{
  "type": "breakfast" | "lunch" | "dinner",
  "title": string,
  "totalTime": string,
  "steps": [
    {{
      "description": string,
      "timeToComplete": string,
      "ingredients": [string]
    }}
  ]
}}

Rules:
- Use only information present in the text; do not invent recipes.
- "type" must be exactly one of breakfast, lunch or dinner.
- Write times in a human-readable form such as "10 minutes".
- If the text contains no recipe, return an empty array.

Recipe text:
{raw_recipe_text}
""".strip()


def build_fallback_recipe_suggestion(ingredients: list[str]) -> str:
    """Markdown shown when the search call succeeds but returns no text."""
    if not ingredients:
        return "No ingredients detected. Please try again with a clearer image."

    search_url = f"https://www.google.com/search?q={quote_plus('recipe with ' + ' '.join(ingredients))}"
    listed = "\n".join(f"- {ingredient}" for ingredient in ingredients)
    return f"""# Quick Recipe Suggestion

I noticed you have the following ingredients:
{listed}

I couldn't find a recipe for them right now. Try:

1. [Search Google for recipes]({search_url})
2. Popular recipe websites:
   - Allrecipes
   - BBC Good Food
   - Epicurious
   - Food Network
3. Ingredient-based search tools:
   - SuperCook
   - MyFridgeFood
"""


def build_dish_image_prompt(dish_name: str, prompt: str) -> str:
    """Prompt for the Imagen dish photograph."""
    return f"Extremely minimalistic photograph of {dish_name}. {prompt}".strip()
