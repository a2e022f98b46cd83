#!/usr/bin/env python3
"""Generate a dish photograph with Imagen and upload it to Supabase.

Usage:
    python generate_image.py "Spaghetti Carbonara" "Top view, rustic wooden table"
    python generate_image.py --out images "Spaghetti Carbonara" "Top view"
"""

import asyncio
import sys

from google import genai
from rich.console import Console

from snapchef.gemini.image_generation import generate_dish_image
from snapchef.storage.supabase import SupabaseClient
from snapchef.utils.config import config
from snapchef.utils.errors import SnapChefError

console = Console()

DEFAULT_PROMPT = (
    "A delicious plate of pasta with creamy sauce, bacon bits, and parmesan cheese. "
    "Top view, professional food photography, on a rustic wooden table."
)


async def run(dish_name: str, prompt: str, out_dir: str | None) -> int:
    config.validate(require_supabase=True)
    client = genai.Client(api_key=config.GEMINI_API_KEY)
    result = await generate_dish_image(
        client,
        SupabaseClient.from_config(config),
        dish_name,
        prompt,
        settings=config,
        save_dir=out_dir,
    )
    if result.local_path:
        console.print(f"Image saved as {result.local_path}")
    console.print(f"[green]Uploaded to {config.GENERATED_IMAGE_BUCKET}/{result.path}[/green]")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    out_dir = None
    if args[:1] == ["--out"]:
        if len(args) < 2:
            print("Error: --out requires a directory")
            return 2
        out_dir = args[1]
        args = args[2:]

    if not args:
        print(__doc__)
        return 2

    dish_name = args[0]
    prompt = " ".join(args[1:]) or DEFAULT_PROMPT
    try:
        return asyncio.run(run(dish_name, prompt, out_dir))
    except SnapChefError as e:
        console.print(f"[red]✗ Image generation failed: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
