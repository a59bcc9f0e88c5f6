import argparse
import asyncio
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.app.deps import get_document_fetcher, get_recipe_ingestor
from src.services.errors import ServiceError


async def run_ingest(url: str) -> None:
    print("\n===", url)
    try:
        result = await get_recipe_ingestor().ingest_url(url)
    except ServiceError as error:
        print("failed:", type(error).__name__, error)
        return

    recipe = result.recipe
    print("strategy:", result.strategy)
    print("title:", recipe.title)
    print("cookingTime:", recipe.cookingTime or "-")
    print("servings:", recipe.servings or "-")
    print("ingredients:", len(recipe.ingredients))
    for ingredient in recipe.ingredients[:5]:
        print("  -", ingredient.amount, ingredient.unit, ingredient.name)
    print("instructions:", len(recipe.instructions))
    for instruction in recipe.instructions[:3]:
        print(f"  {instruction.step}.", instruction.description[:100])
    print("warnings:", ", ".join(result.warnings) or "-")


async def main_async(urls: list[str]) -> None:
    try:
        for url in urls:
            await run_ingest(url)
    finally:
        await get_document_fetcher().aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Quick recipe import smoke test")
    parser.add_argument("url", nargs="*", default=[
        "https://www.allrecipes.com/recipe/21014/good-old-fashioned-pancakes/",
        "https://www.bbcgoodfood.com/recipes/easy-pancakes",
    ])
    args = parser.parse_args()
    asyncio.run(main_async(args.url))


if __name__ == "__main__":
    main()
