# Copyright 2025 The Studio Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest

from lab import pricing
from shared.errors import InvalidArgumentError


class PricingTest(unittest.TestCase):

    def test_sample_code(self):
        self.assertEqual(pricing.sample_code(0), "M-001")
        self.assertEqual(pricing.sample_code(41), "M-042")

    def test_resize_samples_grows_with_blank_items(self):
        samples = {
            "agreedCount": 1,
            "items": [{"sampleCode": "M-001", "sampleType": "Pozo", "notes": "x"}],
        }

        result = pricing.resize_samples(samples, 3)

        self.assertEqual(result["agreedCount"], 3)
        self.assertEqual(result["executedCount"], 3)
        self.assertEqual(
            [item["sampleCode"] for item in result["items"]],
            ["M-001", "M-002", "M-003"],
        )
        self.assertEqual(result["items"][0]["sampleType"], "Pozo")
        self.assertEqual(result["items"][2]["sampleType"], "")

    def test_resize_samples_truncates(self):
        samples = {"items": [{"sampleCode": pricing.sample_code(i)} for i in range(4)]}

        result = pricing.resize_samples(samples, 2)

        self.assertEqual(len(result["items"]), 2)
        self.assertEqual(result["items"][-1]["sampleCode"], "M-002")

    def test_resize_samples_keeps_one_item_for_zero(self):
        """A zero agreed count still keeps a single sample row."""
        result = pricing.resize_samples({"items": []}, 0)

        self.assertEqual(result["agreedCount"], 0)
        self.assertEqual(result["executedCount"], 1)
        self.assertEqual(len(result["items"]), 1)

    def test_add_parameter_copies_catalog_defaults(self):
        items = pricing.add_parameter([], "water", "turbidity")

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["parameterId"], "turbidity")
        self.assertEqual(items[0]["unit"], "NTU")
        self.assertEqual(items[0]["method"], "EPA 180.1")
        self.assertTrue(items[0]["isAccredited"])
        self.assertEqual(items[0]["unitPrice"], 0)

    def test_add_parameter_ignores_duplicates_and_unknown_ids(self):
        items = pricing.add_parameter([], "water", "lead")

        self.assertEqual(pricing.add_parameter(items, "water", "lead"), items)
        self.assertEqual(pricing.add_parameter(items, "water", "nope"), items)
        self.assertEqual(pricing.add_parameter(items, "soil", "turbidity"), items)

    def test_add_package_merges_without_duplicates(self):
        items = pricing.add_package([], "water", "water_basic")
        items = pricing.add_package(items, "water", "water_micro")

        self.assertEqual(
            [item["parameterId"] for item in items],
            [
                "free_chlorine",
                "turbidity",
                "fecal_coliforms",
                "cryptosporidium",
                "giardia",
            ],
        )

    def test_add_package_from_other_matrix_adds_nothing(self):
        self.assertEqual(pricing.add_package([], "water", "soil_metals"), [])

    def test_add_unknown_package(self):
        with self.assertRaises(InvalidArgumentError):
            pricing.add_package([], "water", "missing")

    def test_compute_totals(self):
        items = [{"unitPrice": 10}, {"unitPrice": 5}, {"unitPrice": None}]

        totals = pricing.compute_totals("proforma", items, 2, 10)

        self.assertEqual(totals, {"subtotal": 30, "total": 33})

    def test_compute_totals_uses_default_tax(self):
        totals = pricing.compute_totals("both", [{"unitPrice": 100}], 1)

        self.assertEqual(totals["subtotal"], 100)
        self.assertAlmostEqual(totals["total"], 115)

    def test_work_order_configurations_have_no_totals(self):
        self.assertIsNone(pricing.compute_totals("work_order", [{"unitPrice": 1}], 1))

    def test_apply_draft_edits(self):
        draft = {
            "type": "proforma",
            "matrix": "water",
            "samples": {"agreedCount": 1, "items": [{"sampleCode": "M-001"}]},
            "analyses": {"items": [{"parameterId": "lead", "unitPrice": 20}]},
            "pricing": {"taxPercent": 10},
        }

        result = pricing.apply_draft_edits(
            draft,
            agreed_count=2,
            parameter_ids=["turbidity"],
            package_ids=["water_heavy_metals"],
        )

        ids = [item["parameterId"] for item in result["analyses"]["items"]]
        self.assertEqual(ids[0], "lead")
        self.assertEqual(ids[-1], "turbidity")
        self.assertEqual(ids.count("lead"), 1)
        self.assertEqual(len(result["samples"]["items"]), 2)
        self.assertEqual(
            result["pricing"], {"taxPercent": 10, "subtotal": 40, "total": 44}
        )
        self.assertEqual(len(draft["samples"]["items"]), 1)

    def test_apply_draft_edits_skips_totals_for_work_orders(self):
        result = pricing.apply_draft_edits(
            {"type": "work_order", "samples": {"agreedCount": 3}}
        )

        self.assertEqual(result["pricing"], {})
        self.assertEqual(result["analyses"], {"items": []})


if __name__ == "__main__":
    unittest.main()
