from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from video_recipes.services.recipe_scraper import (
    find_recipe_objects,
    is_likely_recipe_url,
    parse_instructions,
    parse_recipe_html,
    parse_servings,
    scrape_recipe_page,
    select_recipe_urls,
)


def _ld_page(data) -> str:
    return (
        "<html><head><script type=\"application/ld+json\">"
        f"{json.dumps(data)}"
        "</script></head><body><h1>Ignored</h1></body></html>"
    )


RECIPE_LD = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Classic Pancakes",
    "recipeYield": ["4 servings", "4"],
    "recipeIngredient": ["2 cups flour", " 2 eggs ", "", "1 cup milk"],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Whisk the dry ingredients."},
        {"@type": "HowToStep", "text": "Add eggs and milk."},
    ],
}

HEURISTIC_PAGE = """
<html><body>
  <h1>Grandma's Cookies</h1>
  <p>Some story about grandma.</p>
  <h2>Ingredients</h2>
  <ul>
    <li>1 cup butter</li>
    <li>2 cups flour</li>
    <li> </li>
    <li>1 cup sugar</li>
  </ul>
</body></html>
"""


class TestUrlFiltering:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=x",
            "https://youtu.be/abc",
            "https://www.instagram.com/cook",
            "https://amzn.to/3xyz",
            "https://bit.ly/abc",
            "https://m.facebook.com/page",
        ],
    )
    def test_skips_non_recipe_hosts(self, url: str) -> None:
        assert not is_likely_recipe_url(url)

    def test_accepts_blogs(self) -> None:
        assert is_likely_recipe_url("https://www.seriouseats.com/pancakes")
        assert is_likely_recipe_url("https://myblog.example/anything")

    def test_lookalike_host_is_not_skipped(self) -> None:
        assert is_likely_recipe_url("https://notyoutube.community/recipe")

    def test_select_orders_recipe_paths_first_and_caps(self) -> None:
        urls = [
            "https://shop.example.com/pans",
            "https://instagram.com/cook",
            "https://blog.example.com/recipes/pancakes",
            "https://blog.example.com/recipes/pancakes",
            "https://other.example.com/about",
            "https://food.example.com/waffles",
        ]

        assert select_recipe_urls(urls, limit=3) == [
            "https://blog.example.com/recipes/pancakes",
            "https://food.example.com/waffles",
            "https://shop.example.com/pans",
        ]


class TestJsonLd:
    def test_plain_recipe(self) -> None:
        recipe = parse_recipe_html(_ld_page(RECIPE_LD), "https://blog.example.com/r")

        assert recipe.source_url == "https://blog.example.com/r"
        assert recipe.name == "Classic Pancakes"
        assert recipe.ingredients == ["2 cups flour", "2 eggs", "1 cup milk"]
        assert [s.step_number for s in recipe.instructions] == [1, 2]
        assert recipe.instructions[1].text == "Add eggs and milk."
        assert recipe.servings == 4

    def test_graph_wrapper(self) -> None:
        data = {"@context": "https://schema.org", "@graph": [{"@type": "WebPage"}, RECIPE_LD]}

        recipe = parse_recipe_html(_ld_page(data), "https://blog.example.com/r")

        assert recipe.name == "Classic Pancakes"

    def test_type_list(self) -> None:
        assert find_recipe_objects([{"@type": ["Recipe", "NewsArticle"], "name": "x"}]) == [
            {"@type": ["Recipe", "NewsArticle"], "name": "x"}
        ]
        assert find_recipe_objects({"@type": "Article"}) == []

    def test_how_to_sections_are_flattened(self) -> None:
        steps = parse_instructions([
            {"@type": "HowToSection", "name": "Batter", "itemListElement": [
                {"@type": "HowToStep", "text": "Mix."},
                {"@type": "HowToStep", "text": "Rest."},
            ]},
            {"@type": "HowToStep", "text": "Fry."},
        ])

        assert [(s.step_number, s.text) for s in steps] == [(1, "Mix."), (2, "Rest."), (3, "Fry.")]

    def test_invalid_json_falls_through_to_heuristic(self) -> None:
        html = HEURISTIC_PAGE.replace(
            "<body>", "<body><script type=\"application/ld+json\">{not json</script>"
        )

        recipe = parse_recipe_html(html, "https://blog.example.com/cookies")

        assert recipe.name == "Grandma's Cookies"


class TestHeuristic:
    def test_heading_followed_by_list(self) -> None:
        recipe = parse_recipe_html(HEURISTIC_PAGE, "https://blog.example.com/cookies")

        assert recipe.name == "Grandma's Cookies"
        assert recipe.ingredients == ["1 cup butter", "2 cups flour", "1 cup sugar"]
        assert recipe.instructions == []

    def test_ingredient_class_container(self) -> None:
        html = (
            "<div class=\"wprm-recipe-ingredients\">Ingredients"
            "<ul><li>salt</li><li>pepper</li></ul></div>"
        )

        recipe = parse_recipe_html(html, "https://blog.example.com/x")

        assert recipe.ingredients == ["salt", "pepper"]
        assert recipe.name is None

    def test_page_without_recipe(self) -> None:
        assert parse_recipe_html("<html><body><p>Hello</p></body></html>", "https://x.com") is None


class TestParseServings:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(4, 4), ("Serves 6", 6), (["8 pancakes"], 8), ("a few", None), (None, None), (0, None)],
    )
    def test_values(self, value, expected) -> None:
        assert parse_servings(value) == expected


class TestScrapeRecipePage:
    def _scrape(self, handler) -> object:
        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await scrape_recipe_page("https://blog.example.com/r", client=client)
        return asyncio.run(run())

    def test_success(self) -> None:
        recipe = self._scrape(lambda request: httpx.Response(200, text=_ld_page(RECIPE_LD)))
        assert recipe.name == "Classic Pancakes"

    def test_http_error_returns_none(self) -> None:
        assert self._scrape(lambda request: httpx.Response(404, text="missing")) is None

    def test_timeout_returns_none(self) -> None:
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        assert self._scrape(handler) is None

    def test_connection_error_returns_none(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert self._scrape(handler) is None
