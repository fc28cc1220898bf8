from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from video_recipes.app.domain.models import Instruction

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "Mozilla/5.0 (compatible; VideoRecipes/0.3; recipe extraction)"

# Video, social, shop and shortener hosts never carry the recipe itself.
SKIP_DOMAINS = (
    "youtube.com",
    "youtu.be",
    "instagram.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "amazon.com",
    "amzn.to",
    "bit.ly",
)
RECIPE_PATH_SIGNALS = ("recipe", "cook", "food", "kitchen", "bake", "meal")

_DIGITS_RE = re.compile(r"(\d+)")
_HOST_RE = re.compile(r"^https?://([^/?#]+)", re.IGNORECASE)


@dataclass
class ScrapedRecipe:
    source_url: str
    name: Optional[str] = None
    ingredients: list[str] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    servings: Optional[int] = None


def _host(url: str) -> str:
    m = _HOST_RE.match(url.strip())
    if not m:
        return ""
    host = m.group(1).lower().rsplit("@", 1)[-1].split(":", 1)[0]
    return host[4:] if host.startswith("www.") else host


def _is_skipped(url: str) -> bool:
    host = _host(url)
    return any(host == domain or host.endswith("." + domain) for domain in SKIP_DOMAINS)


def has_recipe_path_signal(url: str) -> bool:
    lower = url.lower()
    return any(signal in lower for signal in RECIPE_PATH_SIGNALS)


def is_likely_recipe_url(url: str) -> bool:
    """Denylist filter: every host outside SKIP_DOMAINS may be a recipe blog."""
    return bool(_host(url)) and not _is_skipped(url)


def select_recipe_urls(urls: Iterable[str], limit: int = 3) -> list[str]:
    """Likely recipe URLs, recipe-looking paths first, de-duplicated, capped at ``limit``."""
    candidates: list[str] = []
    for url in urls:
        if url not in candidates and is_likely_recipe_url(url):
            candidates.append(url)
    candidates.sort(key=lambda u: not has_recipe_path_signal(u))
    return candidates[:limit]


# =============================================================================
# JSON-LD (schema.org/Recipe)
# =============================================================================

def _is_recipe_type(value: Any) -> bool:
    if isinstance(value, str):
        return value == "Recipe"
    if isinstance(value, list):
        return "Recipe" in value
    return False


def find_recipe_objects(data: Any) -> list[dict]:
    if not data:
        return []
    if isinstance(data, list):
        found: list[dict] = []
        for item in data:
            found.extend(find_recipe_objects(item))
        return found
    if not isinstance(data, dict):
        return []
    if _is_recipe_type(data.get("@type")):
        return [data]
    # WordPress recipe plugins nest everything under @graph.
    if "@graph" in data:
        return find_recipe_objects(data["@graph"])
    return []


def normalize_ingredient_list(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    lines: list[str] = []
    for item in raw:
        if isinstance(item, str):
            text = item.strip()
        elif isinstance(item, dict) and "text" in item:
            text = str(item["text"]).strip()
        else:
            continue
        if text:
            lines.append(text)
    return lines


def parse_servings(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value > 0 else None
    if isinstance(value, str):
        m = _DIGITS_RE.search(value)
        return int(m.group(1)) if m else None
    if isinstance(value, list) and value:
        return parse_servings(value[0])
    return None


def _instruction_texts(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [line.strip() for line in raw.splitlines() if line.strip()]
    if isinstance(raw, list):
        texts: list[str] = []
        for item in raw:
            texts.extend(_instruction_texts(item))
        return texts
    if isinstance(raw, dict):
        if raw.get("@type") == "HowToSection" or "itemListElement" in raw:
            return _instruction_texts(raw.get("itemListElement"))
        text = raw.get("text") or raw.get("name")
        if isinstance(text, str) and text.strip():
            return [text.strip()]
    return []


def parse_instructions(raw: Any) -> list[Instruction]:
    return [
        Instruction(step_number=index, text=text)
        for index, text in enumerate(_instruction_texts(raw), start=1)
    ]


def extract_json_ld_recipe(soup: BeautifulSoup, url: str) -> Optional[ScrapedRecipe]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue

        recipes = find_recipe_objects(data)
        if not recipes:
            continue

        recipe = recipes[0]
        name = recipe.get("name")
        return ScrapedRecipe(
            source_url=url,
            name=name.strip() if isinstance(name, str) and name.strip() else None,
            ingredients=normalize_ingredient_list(
                recipe.get("recipeIngredient") or recipe.get("ingredients") or []
            ),
            instructions=parse_instructions(recipe.get("recipeInstructions")),
            servings=parse_servings(recipe.get("recipeYield")),
        )
    return None


# =============================================================================
# HTML heuristic
# =============================================================================

def _mentions_ingredient(tag: Tag) -> bool:
    if tag.name in ("h2", "h3", "h4"):
        return "ingredient" in tag.get_text(" ", strip=True).lower()
    attrs = " ".join(tag.get("class", [])) + " " + (tag.get("id") or "")
    if "ingredient" not in attrs.lower():
        return False
    return "ingredient" in tag.get_text(" ", strip=True).lower()


def extract_heuristic_recipe(soup: BeautifulSoup, url: str) -> Optional[ScrapedRecipe]:
    heading = soup.find(_mentions_ingredient)
    if heading is None:
        return None

    ingredient_list = heading.find_next(["ul", "ol"])
    if ingredient_list is None:
        return None

    ingredients = [
        text
        for text in (li.get_text(" ", strip=True) for li in ingredient_list.find_all("li"))
        if text
    ]
    if not ingredients:
        return None

    title = soup.find("h1")
    title_text = title.get_text(" ", strip=True) if title else ""
    return ScrapedRecipe(
        source_url=url,
        name=title_text or None,
        ingredients=ingredients,
    )


def parse_recipe_html(html: str, url: str) -> Optional[ScrapedRecipe]:
    """Structured data first, then the heading-plus-list heuristic."""
    soup = BeautifulSoup(html, "html.parser")
    return extract_json_ld_recipe(soup, url) or extract_heuristic_recipe(soup, url)


async def scrape_recipe_page(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[ScrapedRecipe]:
    """Fetch ``url`` and pull recipe data out of it. Never raises; None on any failure."""
    headers = {"User-Agent": USER_AGENT, "Accept": "text/html"}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                response = await owned.get(url, headers=headers)
        else:
            response = await client.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        html = response.text
    except httpx.TimeoutException:
        logger.warning("Recipe page timed out after %ss: %s", timeout, url)
        return None
    except httpx.HTTPStatusError as error:
        logger.info("Recipe page returned %s: %s", error.response.status_code, url)
        return None
    except httpx.HTTPError as error:
        logger.warning("Recipe page fetch failed for %s: %s", url, error)
        return None

    try:
        return parse_recipe_html(html, url)
    except (ValueError, TypeError, AttributeError) as error:
        logger.warning("Malformed recipe markup at %s: %s", url, error)
        return None
