"""
Unit tests for schema_detection module.
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import unittest

from analysis_errors import EmptyFileError, FormatMismatchError
from schema_detection import (
    assign_roles,
    classify_headers,
    parse_and_detect_files,
    parse_single_file,
)

DONOR_CSV = b"ID,Name,Email,Constituency Code,CL YR,LT Giving\n1,Jane Doe,jane@x.edu,Alumni,1990,500\n"
REGISTRATION_CSV = (
    b"Registration ID,Guest Type,Guest Full Name,Guest Email\n"
    b"R1,Primary Guest,Jane Doe,jane@x.edu\n"
)
UNKNOWN_CSV = b"Foo,Bar,Baz\n1,2,3\n"


class TestClassifyHeaders(unittest.TestCase):
    def test_donor_headers(self):
        result = classify_headers(["ID", "Name", "LT Giving", "Constituency Code"])
        self.assertTrue(result.is_donor)
        self.assertFalse(result.is_registration)
        self.assertIn("lt giving", result.donor_signals)

    def test_registration_headers(self):
        result = classify_headers(["Registration ID", "Guest Type", "Guest Email"])
        self.assertTrue(result.is_registration)
        self.assertFalse(result.is_donor)

    def test_case_and_whitespace_ignored(self):
        self.assertTrue(classify_headers(["  cl yr "]).is_donor)
        self.assertTrue(classify_headers(["REGISTRATION STATUS"]).is_registration)

    def test_class_year_na_is_not_donor_signal(self):
        """Registration exports carry 'Class Year, N/A'; only the bare form signals donor data."""
        self.assertFalse(classify_headers(["Class Year, N/A"]).is_donor)
        self.assertTrue(classify_headers(["Class Year"]).is_donor)

    def test_cl_yr_must_be_exact(self):
        self.assertFalse(classify_headers(["SP CL YR"]).is_donor)

    def test_unknown_headers(self):
        result = classify_headers(["Foo", "Bar"])
        self.assertFalse(result.is_donor)
        self.assertFalse(result.is_registration)


class TestAssignRoles(unittest.TestCase):
    def setUp(self):
        self.donor_rows = [{"ID": "1", "LT Giving": "500"}]
        self.registration_rows = [{"Registration ID": "R1", "Guest Type": "Primary Guest"}]

    def test_donor_first(self):
        roles = assign_roles(self.donor_rows, self.registration_rows)
        self.assertIs(roles.donor_rows, self.donor_rows)
        self.assertIs(roles.registration_rows, self.registration_rows)
        self.assertEqual(roles.warnings, [])

    def test_registration_first_is_swapped(self):
        roles = assign_roles(self.registration_rows, self.donor_rows)
        self.assertIs(roles.donor_rows, self.donor_rows)
        self.assertIs(roles.registration_rows, self.registration_rows)
        self.assertEqual(roles.warnings, [])

    def test_mixed_first_file_with_registration_second(self):
        mixed = [{"Registration ID": "R1", "LT Giving": "5"}]
        roles = assign_roles(mixed, self.registration_rows)
        self.assertIs(roles.donor_rows, mixed)
        self.assertEqual(roles.warnings, [])

    def test_two_registration_files_keep_order_with_warning(self):
        other = [{"Guest Full Name": "Jane Doe"}]
        roles = assign_roles(other, self.registration_rows)
        self.assertIs(roles.donor_rows, other)
        self.assertIs(roles.registration_rows, self.registration_rows)
        self.assertEqual(len(roles.warnings), 1)

    def test_two_donor_files_ambiguous(self):
        other = [{"Constituency Code": "Alumni"}]
        roles = assign_roles(self.donor_rows, other)
        self.assertIs(roles.donor_rows, self.donor_rows)
        self.assertIs(roles.registration_rows, other)
        self.assertTrue(roles.warnings)

    def test_second_file_unknown(self):
        unknown = [{"Foo": "1", "Bar": "2"}]
        with self.assertRaises(FormatMismatchError) as ctx:
            assign_roles(self.donor_rows, unknown)
        message = str(ctx.exception)
        self.assertIn("File 2", message)
        self.assertIn("Foo, Bar", message)
        self.assertEqual(ctx.exception.headers, ["Foo", "Bar"])

    def test_neither_file_recognized(self):
        with self.assertRaises(FormatMismatchError) as ctx:
            assign_roles([{"A": "1"}], [{"B": "2"}])
        message = str(ctx.exception)
        self.assertIn("Neither file", message)
        self.assertIn("File 1 columns: A", message)
        self.assertIn("File 2 columns: B", message)

    def test_long_header_list_truncated(self):
        unknown = [{f"Col{i}": "x" for i in range(10)}]
        with self.assertRaises(FormatMismatchError) as ctx:
            assign_roles(unknown, self.registration_rows)
        message = str(ctx.exception)
        self.assertIn("Col7...", message)
        self.assertNotIn("Col8", message)


class TestParseAndDetectFiles(unittest.TestCase):
    def test_detects_regardless_of_order(self):
        roles = parse_and_detect_files(REGISTRATION_CSV, DONOR_CSV)
        self.assertEqual(roles.donor_rows[0]["LT Giving"], "500")
        self.assertEqual(roles.registration_rows[0]["Registration ID"], "R1")

    def test_empty_second_file(self):
        with self.assertRaises(EmptyFileError) as ctx:
            parse_and_detect_files(DONOR_CSV, b"")
        self.assertIn("File 2", str(ctx.exception))


class TestParseSingleFile(unittest.TestCase):
    def test_registration_accepted(self):
        roles = parse_single_file(REGISTRATION_CSV)
        self.assertEqual(roles.donor_rows, [])
        self.assertEqual(len(roles.registration_rows), 1)

    def test_donor_only_rejected(self):
        with self.assertRaises(FormatMismatchError) as ctx:
            parse_single_file(DONOR_CSV)
        self.assertIn("requires registration data", str(ctx.exception))

    def test_unknown_file_rejected(self):
        with self.assertRaises(FormatMismatchError) as ctx:
            parse_single_file(UNKNOWN_CSV)
        message = str(ctx.exception)
        self.assertIn("does not match expected format", message)
        self.assertIn("Foo, Bar, Baz", message)

    def test_empty_file(self):
        with self.assertRaises(EmptyFileError):
            parse_single_file(b"\n\n")


if __name__ == "__main__":
    unittest.main()
