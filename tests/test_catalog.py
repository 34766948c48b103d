#!/usr/bin/env python3
"""
Catalog listing tests.

USAGE:
    Run from project root: python -m pytest tests/test_catalog.py -v
"""

import unittest
from unittest.mock import MagicMock
from urllib.parse import quote

from gelaboca.app.errors import VectorIndexError
from gelaboca.app.postprocess import make_slug, product_question, slug_to_name
from gelaboca.data.catalog import CatalogService, get_sample_products, group_by_category
from helpers import DIM, make_product, match_for


def index_with(products):
    index = MagicMock()
    index.query.return_value = [match_for(p) for p in products]
    return index


class TestCatalogService(unittest.TestCase):
    def test_lists_only_active_products(self):
        products = [
            make_product("a", "Sorvete A"),
            make_product("b", "Sorvete B"),
            make_product("c", "Sorvete C"),
            make_product("d", "Sorvete D", active=False),
            make_product("e", "Sorvete E", active=False),
        ]
        catalog = CatalogService(index_with(products), dimensions=DIM)
        self.assertEqual([p.id for p in catalog.list_active()], ["a", "b", "c"])

    def test_listing_uses_zero_vector(self):
        index = index_with([])
        CatalogService(index, dimensions=DIM).list_active()
        kwargs = index.query.call_args.kwargs
        self.assertEqual(kwargs["vector"], [0.0] * DIM)
        self.assertTrue(kwargs["include_metadata"])

    def test_matches_without_metadata_are_skipped(self):
        index = MagicMock()
        index.query.return_value = [{"id": "x", "score": 0.0}, match_for(make_product("a", "A"))]
        self.assertEqual([p.id for p in CatalogService(index, dimensions=DIM).list_active()], ["a"])

    def test_only_boolean_true_flags_count(self):
        good = make_product("a", "Sorvete A", promotional=True)
        loose = [
            {"id": f"x{i}", "score": 0.0,
             "metadata": {"nome": f"Solto {i}", "ativado": flag, "promocional": flag}}
            for i, flag in enumerate(["false", "true", 1, 0, None])
        ]
        catalog = CatalogService(index_with([]), dimensions=DIM)
        catalog.index.query.return_value = [match_for(good)] + loose
        self.assertEqual([p.name for p in catalog.list_active()], ["Sorvete A"])
        self.assertEqual([p.name for p in catalog.list_promotional()], ["Sorvete A"])

    def test_promotional_requires_active_and_flag(self):
        products = [
            make_product("a", "A", promotional=True),
            make_product("b", "B", promotional=True, active=False),
            make_product("c", "C"),
        ]
        catalog = CatalogService(index_with(products), dimensions=DIM)
        self.assertEqual([p.id for p in catalog.list_promotional()], ["a"])

    def test_promotional_is_capped_at_ten(self):
        products = [make_product(f"p{i}", f"Promo {i}", promotional=True) for i in range(15)]
        catalog = CatalogService(index_with(products), dimensions=DIM)
        self.assertEqual(len(catalog.list_promotional()), 10)

    def test_index_failure_serves_samples(self):
        index = MagicMock()
        index.query.side_effect = VectorIndexError("index down")
        catalog = CatalogService(index, dimensions=DIM)
        samples = get_sample_products()
        with self.assertLogs("gelaboca", level="ERROR"):
            self.assertEqual(catalog.list_active(), samples["menu"])
        with self.assertLogs("gelaboca", level="ERROR"):
            self.assertEqual(catalog.list_promotional(), samples["promotional"])

    def test_find_by_name(self):
        products = [make_product("a", "Sorvete de Chocolate"), make_product("b", "Açaí Tradicional")]
        catalog = CatalogService(index_with(products), dimensions=DIM)
        self.assertEqual(catalog.find_by_name("Açaí Tradicional").id, "b")
        self.assertIsNone(catalog.find_by_name("Sorvete"))


class TestSampleProducts(unittest.TestCase):
    def test_samples_load(self):
        samples = get_sample_products()
        self.assertTrue(samples["menu"])
        self.assertTrue(samples["promotional"])
        self.assertTrue(all(p.promotional for p in samples["promotional"]))


class TestGrouping(unittest.TestCase):
    def test_groups_sorted_by_category(self):
        products = [
            make_product("a", "Sorvete A", category="Sorvetes"),
            make_product("b", "Açaí B", category="Açaí"),
            make_product("c", "Milkshake C", category="Milkshakes"),
            make_product("d", "Sorvete D", category="Sorvetes"),
        ]
        groups = group_by_category(products)
        self.assertEqual([g["category"] for g in groups], ["Açaí", "Milkshakes", "Sorvetes"])
        self.assertEqual([p.id for p in groups[2]["products"]], ["a", "d"])

    def test_empty(self):
        self.assertEqual(group_by_category([]), [])


class TestSlugs(unittest.TestCase):
    def test_slug_is_the_name_untouched(self):
        self.assertEqual(make_slug("Açaí  Tradicional "), "Açaí  Tradicional ")

    def test_slug_round_trip_from_url(self):
        self.assertEqual(slug_to_name("A%C3%A7a%C3%AD%20Tradicional"), "Açaí Tradicional")

    def test_irregular_spacing_still_resolves(self):
        for name in ("Açaí  Tradicional", " Sorvete de Chocolate", "Milkshake\tde Morango"):
            catalog = CatalogService(index_with([make_product("a", name)]), dimensions=DIM)
            slug = quote(make_slug(name))
            self.assertEqual(catalog.find_by_name(slug_to_name(slug)).id, "a")

    def test_product_question(self):
        self.assertEqual(product_question("Açaí"), "GelinhIA, me fale sobre o produto Açaí.")


if __name__ == '__main__':
    unittest.main()
