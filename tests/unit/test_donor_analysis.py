"""
Unit tests for donor_analysis module.
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import copy
import unittest

from donor_analysis import analyze_donors, giving_tier_counts
from file_parsing import load_rows


class TestGivingTiers(unittest.TestCase):
    def test_bands(self):
        tiers = giving_tier_counts([0, 50, 99.99, 100, 999.99, 1000, 9999, 10000, 100000, 2500000])
        self.assertEqual(tiers, {
            "$0": 1,
            "$1-99": 2,
            "$100-999": 2,
            "$1K-9.9K": 2,
            "$10K-99K": 1,
            "$100K+": 2,
        })

    def test_tiers_partition_numeric_values(self):
        rows = [{"LT Giving": v} for v in ["0", "$50", "100", "$1,000", "", "abc", "250000"]]
        stats = analyze_donors(rows)
        self.assertEqual(sum(stats.summary.giving.tiers.values()), 5)


class TestAnalyzeDonors(unittest.TestCase):
    def test_single_record_from_csv(self):
        rows = load_rows(
            b"ID,Name,Email,CL YR,LT Giving,Last Gift Amount\n"
            b"1,Jane Doe,jane@x.edu,1990,$500,$100\n"
        )
        stats = analyze_donors(rows)
        summary = stats.summary

        self.assertEqual(summary.total, 1)
        self.assertEqual(summary.giving.lifetime_total, 500)
        self.assertEqual(summary.giving.tiers["$100-999"], 1)
        self.assertEqual(summary.giving.donors_count, 1)
        self.assertEqual(summary.class_decades, {"1990s": 1})
        self.assertEqual(summary.class_year_counts, {"1990": 1})
        self.assertIn("jane@x.edu", stats.identity.emails)
        self.assertIn("1", stats.identity.constituent_ids)

    def test_donors_and_non_donors(self):
        rows = [{"Last Gift Amount": v} for v in ["0", "25", "", "$1,000"]]
        giving = analyze_donors(rows).summary.giving
        self.assertEqual(giving.donors_count, 2)
        self.assertEqual(giving.non_donors, 2)
        self.assertEqual(giving.last_gift_median, 512.5)

    def test_ohio_exact_keys_only(self):
        rows = [{"State": s} for s in ["OH", "OH", "oh", "PA"]]
        summary = analyze_donors(rows).summary
        self.assertEqual(summary.ohio_count, 2)
        self.assertEqual(summary.ohio_pct, 50.0)
        self.assertEqual(summary.unique_states, 3)

    def test_ohio_full_name(self):
        rows = [{"State": s} for s in ["Ohio", "PA", "PA"]]
        self.assertEqual(analyze_donors(rows).summary.ohio_pct, 33.3)

    def test_last_state_column_wins(self):
        rows = [{"State": "XX", "State.1": "OH"}]
        self.assertEqual(analyze_donors(rows).summary.states, {"OH": 1})

    def test_greek_and_majors(self):
        rows = [
            {"Greek Affiliation": "Kappa Alpha Theta", "Major": "History"},
            {"Greek Affiliation": "   ", "Major": "MAUNDE"},
            {"Greek Affiliation": "", "Major": "History"},
        ]
        summary = analyze_donors(rows).summary
        self.assertEqual(summary.greek_total, 1)
        self.assertEqual(summary.greek_none, 2)
        self.assertEqual(summary.greek, {"Kappa Alpha Theta": 1})
        self.assertEqual(summary.majors, {"History": 2})

    def test_fiscal_year_columns(self):
        rows = [
            {"AF18 - Gifts": "$1,000", "AF19 - Gifts": "1500", "AF Notes": "x"},
            {"AF18 - Gifts": "500", "AF19 - Gifts": "", "AF Notes": ""},
        ]
        fy = analyze_donors(rows).summary.fy_giving
        self.assertEqual([(f.year, f.amount) for f in fy], [("FY18", 1500), ("FY19", 1500)])

    def test_engagement_and_spouse(self):
        rows = [
            {"Eng Score": "3", "SP Name": "Pat", "SP CL YR": "1991"},
            {"Eng Score": "4", "SP Name": "", "SP CL YR": ""},
            {"Eng Score": "", "SP Name": "Sam", "SP CL YR": ""},
            {"Eng Score": "5", "SP Name": "", "SP CL YR": ""},
        ]
        summary = analyze_donors(rows).summary
        self.assertEqual(summary.eng_score_mean, 4.0)
        self.assertEqual(summary.eng_score_median, 4.0)
        self.assertEqual(summary.spouse_count, 2)
        self.assertEqual(summary.spouse_alumni, 1)

    def test_wealth_counts_skip_blank(self):
        rows = [
            {"WE Range": "$1-$2,499", "Internal Gift Capacity": ""},
            {"WE Range": "$1-$2,499", "Internal Gift Capacity": "$5,000,000+"},
        ]
        summary = analyze_donors(rows).summary
        self.assertEqual(summary.wealth_estimate, {"$1-$2,499": 2})
        self.assertEqual(summary.gift_capacity, {"$5,000,000+": 1})

    def test_empty_rows(self):
        stats = analyze_donors([])
        self.assertEqual(stats.summary.total, 0)
        self.assertEqual(stats.summary.ohio_pct, 0)
        self.assertEqual(stats.summary.giving.lifetime_median, 0)
        self.assertEqual(stats.identity.names, frozenset())

    def test_rows_not_modified_and_repeatable(self):
        rows = [
            {"Name": "Jane Doe", "LT Giving": "$50", "State": "OH"},
            {"Name": "Bob Roe", "LT Giving": "", "State": ""},
        ]
        snapshot = copy.deepcopy(rows)
        first = analyze_donors(rows)
        second = analyze_donors(rows)
        self.assertEqual(rows, snapshot)
        self.assertEqual(first, second)

    def test_external_hides_identity(self):
        rows = [{"Name": "Jane Doe", "Email": "jane@x.edu", "LT Giving": "500"}]
        external = analyze_donors(rows).to_external()
        self.assertNotIn("names", external)
        self.assertNotIn("emails", external)
        self.assertNotIn("identity", external)
        self.assertEqual(external["namesCount"], 1)
        self.assertEqual(external["giving"]["lifetimeTotal"], 500)
        self.assertIn("$100-999", external["giving"]["tiers"])


if __name__ == "__main__":
    unittest.main()
