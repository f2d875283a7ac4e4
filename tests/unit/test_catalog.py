"""Slugs and the category tree."""

import pytest

from sphire.models.product import Category
from sphire.services.catalog import build_category_tree, slugify


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Skin Care", "skin-care"),
        ("  Hair & Body  ", "hair-body"),
        ("Lips -- Gloss", "lips-gloss"),
        ("Eau de Parfum 50ml!", "eau-de-parfum-50ml"),
        ("Été", "t"),
        ("***", ""),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


def category(id, name, parent_id=None):
    return Category(id=id, name=name, slug=slugify(name), parent_id=parent_id, sort_order=0)


class TestCategoryTree:
    def test_children_nested_under_parent(self):
        rows = [
            category(1, "Skincare"),
            category(2, "Serums", parent_id=1),
            category(3, "Makeup"),
            category(4, "Cleansers", parent_id=1),
        ]

        tree = build_category_tree(rows, {"serums": 4, "makeup": 2})

        assert [node["name"] for node in tree] == ["Skincare", "Makeup"]
        skincare = tree[0]
        assert [child["name"] for child in skincare["children"]] == ["Serums", "Cleansers"]
        assert skincare["product_count"] == 0
        assert skincare["children"][0]["product_count"] == 4
        assert tree[1]["children"] == []

    def test_orphan_becomes_root(self):
        tree = build_category_tree([category(5, "Loose", parent_id=99)], {})

        assert [node["slug"] for node in tree] == ["loose"]

    def test_node_carries_columns(self):
        tree = build_category_tree([category(1, "Fragrance")], {"fragrance": 1})

        node = tree[0]
        assert node["id"] == 1
        assert node["slug"] == "fragrance"
        assert node["parent_id"] is None
        assert node["product_count"] == 1
