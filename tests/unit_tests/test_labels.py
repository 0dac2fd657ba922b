"""Tests for isotopic labels and identification classification."""

import unittest
import warnings

import pytest

from alphapeptquant.exceptions import ConfigurationError
from alphapeptquant.quant import (
    IdentificationFilter,
    IsotopicLabel,
    PeptideIdentification,
    SearchModification,
    build_quant_request,
    build_quant_requests,
    resolve_label_masses,
)
from alphapeptquant.quant.labels import ACRYLAMIDE_MASSDIFF, SILAC_LYSINE_MASSDIFF

LYSINE = 128.094963
CYSTEINE_ACRYL = 174.0458


def silac_labels():
    labels = {"K": IsotopicLabel.silac_lysine()}
    return resolve_label_masses(labels, [SearchModification("K", LYSINE + SILAC_LYSINE_MASSDIFF, True)])


class TestIsotopicLabel(unittest.TestCase):
    """Test label definitions and mass resolution."""

    def test_presets(self):
        self.assertEqual(IsotopicLabel.silac_lysine().residue, "K")
        self.assertEqual(IsotopicLabel.acrylamide().residue, "C")
        self.assertAlmostEqual(IsotopicLabel.acrylamide().mass_diff, ACRYLAMIDE_MASSDIFF)

    def test_terminal_labels_rejected(self):
        for residue in ["n", "c", "[", "]"]:
            with self.assertRaises(ConfigurationError):
                IsotopicLabel(residue, 4.0)

    def test_light_inferred_from_variable_mod(self):
        labels = silac_labels()

        self.assertAlmostEqual(labels["K"].light_mass, LYSINE, places=6)
        self.assertAlmostEqual(labels["K"].heavy_mass, LYSINE + SILAC_LYSINE_MASSDIFF, places=6)

    def test_heavy_inferred_from_static_mod(self):
        labels = resolve_label_masses(
            {"C": IsotopicLabel.acrylamide()},
            [SearchModification("C", CYSTEINE_ACRYL, False)],
        )

        self.assertAlmostEqual(labels["C"].heavy_mass, CYSTEINE_ACRYL + ACRYLAMIDE_MASSDIFF)

    def test_input_labels_untouched(self):
        """Resolving for one run leaves the presets clean for the next."""
        presets = {"K": IsotopicLabel.silac_lysine()}

        first = resolve_label_masses(presets, [SearchModification("K", LYSINE, False)])
        second = resolve_label_masses(
            presets, [SearchModification("K", LYSINE + SILAC_LYSINE_MASSDIFF + 0.005, True)]
        )

        self.assertEqual(presets["K"].light_mass, 0.0)
        self.assertEqual(presets["K"].heavy_mass, 0.0)
        self.assertIsNot(first["K"], presets["K"])
        self.assertAlmostEqual(first["K"].light_mass, LYSINE)
        self.assertAlmostEqual(second["K"].light_mass, LYSINE + 0.005)

    def test_missing_modification(self):
        with self.assertRaises(ConfigurationError):
            resolve_label_masses(
                {"K": IsotopicLabel.silac_lysine()},
                [SearchModification("C", CYSTEINE_ACRYL, False)],
                run_name="fraction_01",
            )

    def test_no_labels(self):
        with self.assertRaises(ConfigurationError):
            resolve_label_masses({}, [])

    def test_inverted_masses(self):
        with self.assertRaises(ConfigurationError):
            resolve_label_masses(
                {"K": IsotopicLabel.silac_lysine()},
                [
                    SearchModification("K", LYSINE, True),
                    SearchModification("K", LYSINE + 6.0, False),
                ],
            )

    def test_mass_diff_mismatch_warns(self):
        with pytest.warns(UserWarning, match="may not be compatible"):
            resolve_label_masses(
                {"K": IsotopicLabel.silac_lysine()},
                [
                    SearchModification("K", LYSINE, False),
                    SearchModification("K", LYSINE + 8.0142, True),
                ],
            )


class TestClassification(unittest.TestCase):
    """Test light/heavy classification of identifications."""

    def setUp(self):
        self.labels = silac_labels()
        self.heavy_k = LYSINE + SILAC_LYSINE_MASSDIFF

    def make_id(self, sequence, mods=None, mass=1000.0, **kwargs):
        return PeptideIdentification(
            peptide_id=1,
            sequence=sequence,
            charge=2,
            scan=1234,
            calculated_neutral_mass=mass,
            modified_masses=mods,
            **kwargs,
        )

    def test_light_peptide(self):
        request = build_quant_request(self.make_id("PEPTIDEK"), self.labels)

        self.assertFalse(request.is_heavy)
        self.assertEqual(request.light_mass, 1000.0)
        self.assertAlmostEqual(request.heavy_mass, 1000.0 + SILAC_LYSINE_MASSDIFF)
        self.assertEqual(request.peptide_key, "PEPTIDEK_2_1234")

    def test_heavy_peptide(self):
        mods = [None] * 7 + [self.heavy_k]
        request = build_quant_request(self.make_id("PEPTIDEK", mods, mass=1006.02), self.labels)

        self.assertTrue(request.is_heavy)
        self.assertEqual(request.heavy_mass, 1006.02)
        self.assertAlmostEqual(request.light_mass, 1006.02 - SILAC_LYSINE_MASSDIFF)

    def test_two_labels_double_shift(self):
        request = build_quant_request(self.make_id("PEKTIDEK"), self.labels)

        self.assertAlmostEqual(request.heavy_mass - request.light_mass, 2 * SILAC_LYSINE_MASSDIFF)
        self.assertEqual(request.separation, 12)

    def test_partially_labeled_skipped(self):
        mods = [None, None, self.heavy_k, None, None, None, None, None]
        with self.assertLogs("alphapeptquant.quant.labels", level="WARNING"):
            request = build_quant_request(self.make_id("PEKTIDEK", mods), self.labels)

        self.assertIsNone(request)

    def test_unlabeled_peptide(self):
        self.assertIsNone(build_quant_request(self.make_id("PEPTIDER"), self.labels))

    def test_malformed_identification_skipped(self):
        bad_charge = PeptideIdentification(2, "PEPTIDEK", 0, 1234, 1000.0)
        with self.assertLogs("alphapeptquant.quant.labels", level="WARNING") as logs:
            request = build_quant_request(bad_charge, self.labels)

        self.assertIsNone(request)
        self.assertIn("PEPTIDEK_0_1234", logs.output[0])

    def test_malformed_identification_does_not_abort_run(self):
        identifications = [
            PeptideIdentification(1, "PEPTIDEK", 2, 10, 1000.0),
            PeptideIdentification(2, "PEPTIDEK", 0, 11, 1000.0),
            PeptideIdentification(3, "PEPTIDEK", 3, 12, 1000.0),
        ]

        requests = build_quant_requests(identifications, self.labels)

        self.assertEqual([r.peptide_id for r in requests], [1, 3])


class TestIdentificationFilter(unittest.TestCase):
    """Test probability and fractional delta-mass filters."""

    def make_id(self, probability=None, delta_mass=0.0):
        return PeptideIdentification(
            peptide_id=1,
            sequence="PEPTIDEK",
            charge=2,
            scan=1,
            calculated_neutral_mass=1000.0,
            probability=probability,
            delta_mass=delta_mass,
        )

    def test_probability(self):
        id_filter = IdentificationFilter(min_probability=0.9)

        self.assertTrue(id_filter.accepts(self.make_id(0.95)))
        self.assertFalse(id_filter.accepts(self.make_id(0.5)))
        self.assertTrue(id_filter.accepts(self.make_id(None)))

    def test_probability_above_one_rejected(self):
        with self.assertRaises(ConfigurationError):
            IdentificationFilter(min_probability=1.5)

    def test_frac_delta_mass_ppm(self):
        id_filter = IdentificationFilter(max_frac_delta_mass=20.0)

        # 1.003 Da off is an isotope error, only 3 ppm fractional
        self.assertTrue(id_filter.accepts(self.make_id(delta_mass=1.003)))
        self.assertFalse(id_filter.accepts(self.make_id(delta_mass=0.05)))

    def test_frac_delta_mass_da(self):
        id_filter = IdentificationFilter(max_frac_delta_mass=0.1, frac_delta_mass_is_ppm=False)

        self.assertTrue(id_filter.accepts(self.make_id(delta_mass=0.05)))
        self.assertFalse(id_filter.accepts(self.make_id(delta_mass=0.3)))

    def test_build_quant_requests(self):
        labels = silac_labels()
        identifications = [
            self.make_id(0.99),
            self.make_id(0.2),
            PeptideIdentification(2, "PEPTIDER", 2, 5, 900.0, probability=0.99),
        ]

        requests = build_quant_requests(
            identifications, labels, IdentificationFilter(min_probability=0.9)
        )

        self.assertEqual(len(requests), 1)
        self.assertEqual(requests[0].sequence, "PEPTIDEK")


if __name__ == "__main__":
    unittest.main()
