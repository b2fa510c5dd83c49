"""
Tests for TLE parsing and SGP4 record conversion.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sgp4.api import Satrec

from orbit_sim.core.errors import ValidationError
from orbit_sim.core.tle import (
    EXAMPLE_CANX5_TLE,
    EXAMPLE_ISS_DEMO_TLE,
    TleData,
    load_tle_from_file,
    parse_exponential_notation,
    parse_tle,
    split_intl_desig,
    tle_from_string,
)

ISS_LINE1 = "1 25544U 98067A   20194.88612269 -.00002218  00000-0 -31515-4 0  9992"
ISS_LINE2 = "2 25544  51.6461 221.2784 0001413  89.1723 280.4612 15.49507896236008"


class TestExponentialNotation:
    def test_negative_mantissa(self):
        assert parse_exponential_notation("-31515-4") == pytest.approx(-0.31515e-4)

    def test_unsigned_mantissa(self):
        assert parse_exponential_notation(" 13011-3") == pytest.approx(0.13011e-3)

    def test_zero(self):
        assert parse_exponential_notation(" 00000-0") == 0.0
        assert parse_exponential_notation(" 00000+0") == 0.0

    def test_blank_field(self):
        assert parse_exponential_notation("        ") == 0.0

    def test_malformed(self):
        with pytest.raises(ValueError):
            parse_exponential_notation(" 1x011-3")


class TestParseTle:
    def test_iss_demo_fields(self):
        tle = parse_tle("Satellite 1", ISS_LINE1, ISS_LINE2)
        assert tle.name == "Satellite 1"
        assert tle.sat_num == 25544
        assert tle.classification == "U"
        assert tle.intl_desig == "98067A"
        assert (tle.desig_year, tle.desig_launch, tle.desig_piece) == (1998, 67, "A")
        assert tle.mean_motion_dot == pytest.approx(-0.00002218)
        assert tle.mean_motion_dot_dot == 0.0
        assert tle.bstar == pytest.approx(-0.31515e-4)
        assert tle.ephem_type == 0
        assert tle.element_num == 999
        assert tle.inclination == pytest.approx(51.6461)
        assert tle.raan == pytest.approx(221.2784)
        assert tle.eccen == pytest.approx(0.0001413)
        assert tle.arg_of_perigee == pytest.approx(89.1723)
        assert tle.mean_anomaly == pytest.approx(280.4612)
        assert tle.mean_motion == pytest.approx(15.49507896)
        assert tle.rev_num == 23600

    def test_epoch_decoding(self):
        tle = parse_tle("", ISS_LINE1, ISS_LINE2)
        assert tle.epoch.tzinfo is not None
        assert (tle.epoch.year, tle.epoch.month, tle.epoch.day, tle.epoch.hour) == (2020, 7, 12, 21)
        expected = datetime(2020, 1, 1, tzinfo=timezone.utc) + timedelta(days=193.88612269)
        assert abs((tle.epoch - expected).total_seconds()) < 1e-3

    def test_canx5_positive_bstar(self):
        tle = tle_from_string(EXAMPLE_CANX5_TLE)
        assert tle.name == "CANX-5"
        assert tle.sat_num == 40056
        assert tle.bstar == pytest.approx(0.13011e-3)
        assert tle.epoch.year == 2025
        assert tle.rev_num == 58744

    def test_two_line_string(self):
        tle = tle_from_string(ISS_LINE1 + "\n" + ISS_LINE2)
        assert tle.name == ""
        assert tle.sat_num == 25544

    def test_wrong_line_count(self):
        with pytest.raises(ValidationError, match="2 or 3 lines"):
            tle_from_string(ISS_LINE1)

    def test_bad_line_prefix(self):
        with pytest.raises(ValidationError, match="Line 1 must start"):
            parse_tle("", ISS_LINE2, ISS_LINE2)

    def test_catalog_mismatch(self):
        with pytest.raises(ValidationError, match="Catalog number mismatch"):
            parse_tle("", ISS_LINE1, ISS_LINE2.replace("25544", "25545"))

    def test_garbage_field(self):
        bad = ISS_LINE2[:8] + "  xx.xxx" + ISS_LINE2[16:]
        with pytest.raises(ValidationError, match="line 2"):
            parse_tle("", ISS_LINE1, bad)

    def test_matches_sgp4_parser(self):
        ours = parse_tle("ISS", ISS_LINE1, ISS_LINE2)
        theirs = TleData.from_satrec(Satrec.twoline2rv(ISS_LINE1, ISS_LINE2), name="ISS")
        assert theirs.sat_num == ours.sat_num
        assert theirs.intl_desig == ours.intl_desig
        assert theirs.element_num == ours.element_num
        assert theirs.rev_num == ours.rev_num
        for name in ("inclination", "raan", "eccen", "arg_of_perigee", "mean_anomaly",
                     "mean_motion", "mean_motion_dot", "bstar"):
            assert getattr(theirs, name) == pytest.approx(getattr(ours, name), rel=1e-9, abs=1e-12)
        assert abs((theirs.epoch - ours.epoch).total_seconds()) < 1e-3


class TestLoadFromFile:
    def test_mixed_two_and_three_line(self, tmp_path):
        path = tmp_path / "sats.tle"
        path.write_text(EXAMPLE_CANX5_TLE + "\n\n" + ISS_LINE1 + "\n" + ISS_LINE2 + "\n", encoding="utf-8")
        tles = load_tle_from_file(str(path))
        assert [t.sat_num for t in tles] == [40056, 25544]
        assert tles[0].name == "CANX-5"
        assert tles[1].name == ""


class TestTleData:
    @pytest.fixture
    def tle(self):
        return tle_from_string(EXAMPLE_ISS_DEMO_TLE)

    def test_validation(self, tle):
        with pytest.raises(ValidationError, match="Eccentricity"):
            tle.with_overrides(eccen=1.0)
        with pytest.raises(ValidationError, match="Inclination"):
            tle.with_overrides(inclination=181.0)
        with pytest.raises(ValidationError, match="Mean motion"):
            tle.with_overrides(mean_motion=0.0)

    def test_overrides_return_new_instance(self, tle):
        changed = tle.with_overrides(inclination=97.5, mean_motion="15.2")
        assert changed.inclination == 97.5
        assert changed.mean_motion == 15.2
        assert tle.inclination == pytest.approx(51.6461)
        assert changed.sat_num == tle.sat_num

    def test_unknown_override(self, tle):
        with pytest.raises(ValidationError, match="Cannot override"):
            tle.with_overrides(sat_num=1)

    def test_copy_is_equal_and_fresh(self, tle):
        tle._satrec = tle.to_satrec()
        dup = tle.copy()
        assert dup == tle
        assert dup is not tle
        assert dup._satrec is None

    def test_naive_epoch_rejected(self, tle):
        with pytest.raises(ValidationError, match="timezone-aware"):
            TleData(
                name="x", sat_num=1, epoch=datetime(2024, 1, 1),
                inclination=50.0, raan=0.0, eccen=0.001, arg_of_perigee=0.0,
                mean_anomaly=0.0, mean_motion=15.0,
            )

    def test_satrec_round_trip(self, tle):
        back = TleData.from_satrec(tle.to_satrec(), name=tle.name)
        for name in ("inclination", "raan", "eccen", "arg_of_perigee", "mean_anomaly",
                     "mean_motion", "mean_motion_dot", "mean_motion_dot_dot", "bstar"):
            assert getattr(back, name) == pytest.approx(getattr(tle, name), rel=1e-9, abs=1e-12)
        for name in ("name", "sat_num", "intl_desig", "desig_year", "desig_launch", "desig_piece",
                     "classification", "ephem_type", "element_num", "rev_num"):
            assert getattr(back, name) == getattr(tle, name), name
        assert abs((back.epoch - tle.epoch).total_seconds()) < 1e-3

    def test_satrec_round_trip_keeps_identification(self, tle):
        back = TleData.from_satrec(tle.to_satrec(), name=tle.name)
        assert (back.intl_desig, back.desig_year, back.desig_launch, back.desig_piece) == ("98067A", 1998, 67, "A")
        assert (back.element_num, back.rev_num) == (999, 23600)

    def test_satrec_round_trip_non_default_classification(self, tle):
        secret = tle.copy()
        secret.classification = "S"
        secret.ephem_type = 2
        back = TleData.from_satrec(secret.to_satrec())
        assert back.classification == "S"
        assert back.ephem_type == 2


def test_split_intl_desig():
    assert split_intl_desig("98067A") == (1998, 67, "A")
    assert split_intl_desig("14034D") == (2014, 34, "D")
    assert split_intl_desig("") == (0, 0, "")
