"""
Integration test for the full analysis pipeline.
"""
import sys
from pathlib import Path
import unittest
import tempfile
import shutil
import json
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from analysis_errors import EmptyFileError, FormatMismatchError
from main_processor import analyze, analyze_files, find_input_files


class TestFullPipeline(unittest.TestCase):
    def setUp(self):
        """Create temporary test environment."""
        self.test_dir = Path(tempfile.mkdtemp())
        (self.test_dir / "input").mkdir()

        # Registration export, two-row header as the event platform writes it
        registration_data = pd.DataFrame([
            ['Registration ID', 'Guest Type', 'Guest Full Name', 'Guest Email', 'Constituent Id',
             'Registration Status', 'RSVP', 'Affiliations', 'Class Year, N/A', 'State',
             'Registration Date Time', 'Kappa Alpha Theta Brunch', 'Check-In'],
            ['R1', 'Primary Guest', 'Jane Doe', 'jane@x.edu', '1001',
             'Registration Successful', 'Yes', 'Alumni', '1990', 'Ohio',
             '2025-08-14 10:00:00', 'Attending', 'Yes'],
            ['R1', 'Accompanying Guest', 'John Doe', '', '',
             'Registration Successful', 'Yes', 'Friend', '', 'Ohio',
             '2025-08-14 10:00:00', 'Not Attending', 'Yes'],
            ['R2', 'Primary Guest', 'Sam Lee', 'sam@x.edu', '',
             'Pending Payment', 'No', 'Alumni, Parent', '2005', 'New York',
             '2025-09-02 09:30:00', 'Attending', 'No'],
        ], columns=['', '', 'Guest Form Data', '', '', '', '', 'Profile Data', '', '', '', '', ''])
        self.registration_path = self.test_dir / "input" / "a_registration.csv"
        registration_data.to_csv(self.registration_path, index=False)

        # Donor CRM export
        donor_data = pd.DataFrame({
            'ID': ['1001', '1002'],
            'Name': ['Jane Doe', 'Pat Kim'],
            'Email': ['jane@x.edu', 'pat@x.edu'],
            'Constituency Code': ['Alumni', 'Alumni'],
            'CL YR': ['1990', '2005'],
            'State': ['OH', 'NY'],
            'LT Giving': ['$1,500', '0'],
            'Last Gift Amount': ['100', ''],
            'Greek Affiliation': ['Kappa Alpha Theta', ''],
        })
        self.donor_path = self.test_dir / "input" / "b_donors.csv"
        donor_data.to_csv(self.donor_path, index=False)

    def tearDown(self):
        """Clean up temporary directory."""
        shutil.rmtree(self.test_dir)

    def test_full_pipeline(self):
        """Registration first, donor second: roles are detected from headers."""
        result = analyze_files(self.registration_path, self.donor_path, {'event_type': 'reunion'})

        # Check results structure
        for key in ['eventType', 'hasRE', 'stats2024', 'stats2025', 'cross', 'insights', 'warnings']:
            self.assertIn(key, result)
        self.assertEqual(result['eventType'], 'reunion')
        self.assertTrue(result['hasRE'])
        self.assertEqual(result['warnings'], [])

        donor = result['stats2024']
        registration = result['stats2025']
        self.assertEqual(donor['total'], 2)
        self.assertEqual(registration['total'], 3)
        self.assertEqual(registration['uniqueRegistrations'], 2)
        self.assertEqual(registration['totalAlumni'], 2)
        self.assertEqual(registration['ohioPct'], 66.7)
        self.assertEqual(donor['ohioPct'], 50.0)
        self.assertEqual(registration['registrationMonths'], {'August 2025': 2, 'September 2025': 1})

        sub_events = registration['subEvents']
        self.assertEqual(len(sub_events), 1)
        self.assertEqual(sub_events[0]['attendingCount'], 2)
        self.assertEqual(sub_events[0]['category'], 'Greek')

        cross = result['cross']
        self.assertEqual(cross['matchByEmail'], {'matched': 1, 'donorOnly': 1, 'registrationOnly': 1})
        self.assertEqual(cross['matchedRegistrants'], 1)
        self.assertEqual(cross['gapRegistrationOnlyCount'], 2)
        self.assertEqual(cross['gapRegistrationOnly'], {'Friend': 1, 'Alumni, Parent': 1})

        titles = [i['title'] for i in result['insights']]
        self.assertIn('Data Platform Mismatch Limits Analysis', titles)
        self.assertNotIn('Registration Data Only', titles)

    def test_identity_sets_never_leave_pipeline(self):
        result = analyze_files(self.donor_path, self.registration_path)
        payload = json.dumps(result)
        for hidden in ['"names"', '"emails"', '"constituentIds"', '"matchKeys"', 'jane@x.edu']:
            self.assertNotIn(hidden, payload)
        self.assertEqual(result['stats2024']['namesCount'], 2)

    def test_registration_only(self):
        result = analyze_files(self.registration_path)
        self.assertFalse(result['hasRE'])
        self.assertEqual(result['eventType'], 'homecoming')
        self.assertEqual(result['insights'][0]['title'], 'Registration Data Only')
        self.assertEqual(result['stats2024']['total'], 0)

    def test_excel_donor_export(self):
        excel_path = self.test_dir / "donors.xlsx"
        pd.read_csv(self.donor_path, dtype=str).to_excel(excel_path, index=False)
        result = analyze_files(self.registration_path, excel_path)
        self.assertTrue(result['hasRE'])
        self.assertEqual(result['stats2024']['total'], 2)
        self.assertEqual(result['cross']['matchByEmail']['matched'], 1)

    def test_donor_file_alone_rejected(self):
        with self.assertRaises(FormatMismatchError):
            analyze_files(self.donor_path)

    def test_empty_second_file(self):
        with self.assertRaises(EmptyFileError) as ctx:
            analyze(self.registration_path.read_bytes(), b"")
        self.assertIn("File 2", str(ctx.exception))

    def test_find_input_files(self):
        files = find_input_files(self.test_dir / "input")
        self.assertEqual([f.name for f in files], ['a_registration.csv', 'b_donors.csv'])
        with self.assertRaises(FileNotFoundError):
            find_input_files(self.test_dir / "missing")


if __name__ == "__main__":
    unittest.main()
