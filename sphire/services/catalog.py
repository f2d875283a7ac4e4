"""Catalog helpers: slugs and the cached storefront aggregates."""
import re

from sphire.core.redis import RedisClient

FEATURED_CACHE_KEY = "catalog:featured"
FEATURED_CACHE_SIZE = 50
CATEGORIES_CACHE_KEY = "catalog:categories"


def slugify(name: str) -> str:
    """Lower-case, drop everything but letters, digits, spaces and dashes, then dash-join."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9 -]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


async def invalidate_catalog_cache(redis: RedisClient) -> None:
    """Drop cached featured list and category aggregates after a product write."""
    await redis.delete(FEATURED_CACHE_KEY, CATEGORIES_CACHE_KEY)


def build_category_tree(categories, product_counts: dict[str, int]) -> list[dict]:
    """
    Nest categories under their parents.

    Args:
        categories: Category rows, already in display order
        product_counts: Active product count keyed by category slug

    Returns:
        Root nodes as dicts, each with a ``children`` list
    """
    nodes = {}
    for category in categories:
        node = {
            column.name: getattr(category, column.name)
            for column in category.__table__.columns
        }
        node["product_count"] = product_counts.get(category.slug, 0)
        node["children"] = []
        nodes[category.id] = node

    roots = []
    for node in nodes.values():
        parent = nodes.get(node["parent_id"])
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots
