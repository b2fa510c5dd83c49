"""
Two-Line Element (TLE) parsing and conversion.

Parses the canonical 2-line (or 3-line, with a name) text into TleData and
converts TleData to and from an SGP4 record.

TLE Format:
Line 0 (optional): Satellite name
Line 1: Catalog number, designator, epoch, mean motion derivatives, B*, element number
Line 2: Inclination, RAAN, eccentricity, argument of perigee, mean anomaly, mean motion, rev number
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from sgp4.api import WGS72, Satrec, jday

from orbit_sim.core.errors import ValidationError

# Minutes per day / 2 pi: rev/day <-> rad/min
XPDOTP: float = 1440.0 / (2.0 * math.pi)

# Julian date of the SGP4 epoch origin, 1949 December 31 00:00 UT
_JD_SGP4_EPOCH_ORIGIN: float = 2433281.5
_JD_UNIX_EPOCH: float = 2440587.5
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_OVERRIDABLE = ("inclination", "raan", "eccen", "arg_of_perigee", "mean_anomaly", "mean_motion")


@dataclass
class TleData:
    """Two-Line Element set with angles in degrees and mean motion in rev/day."""
    name: str
    sat_num: int
    epoch: datetime
    inclination: float
    raan: float
    eccen: float
    arg_of_perigee: float
    mean_anomaly: float
    mean_motion: float

    intl_desig: str = ""
    desig_year: int = 0
    desig_launch: int = 0
    desig_piece: str = ""
    classification: str = "U"
    mean_motion_dot: float = 0.0  # rev/day^2, as printed (ndot / 2)
    mean_motion_dot_dot: float = 0.0  # rev/day^3, as printed (nddot / 6)
    bstar: float = 0.0  # 1 / earth radii
    ephem_type: int = 0
    element_num: int = 0
    rev_num: int = 0

    # SGP4 working record, filled by the propagator on first use.
    _satrec: Optional[Satrec] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not (0.0 <= self.eccen < 1.0):
            raise ValidationError(f"Eccentricity must be in range [0, 1). Got: {self.eccen}")
        if not (0.0 <= self.inclination <= 180.0):
            raise ValidationError(f"Inclination must be in range [0, 180] degrees. Got: {self.inclination}")
        if not (self.mean_motion > 0.0):
            raise ValidationError(f"Mean motion must be positive. Got: {self.mean_motion}")
        for name in ("raan", "arg_of_perigee", "mean_anomaly", "bstar"):
            if not math.isfinite(getattr(self, name)):
                raise ValidationError(f"{name} must be finite. Got: {getattr(self, name)}")
        if self.epoch.tzinfo is None:
            raise ValidationError("TLE epoch must be timezone-aware (UTC).")

    def copy(self) -> "TleData":
        """Fresh copy without any SGP4 working state."""
        return replace(self)

    def with_overrides(self, **values: Any) -> "TleData":
        """
        Copy with orbital parameters replaced (inclination, raan, eccen,
        arg_of_perigee, mean_anomaly, mean_motion).
        """
        unknown = sorted(set(values) - set(_OVERRIDABLE))
        if unknown:
            raise ValidationError(f"Cannot override TLE fields: {', '.join(unknown)}")
        return replace(self, **{k: float(v) for k, v in values.items()})

    def to_satrec(self) -> Satrec:
        """Initialise an SGP4 record (WGS-72, improved mode) from these elements."""
        jd, fr = julian_day_parts(self.epoch)
        epoch_days = (jd - _JD_SGP4_EPOCH_ORIGIN) + fr

        satrec = Satrec()
        satrec.sgp4init(
            WGS72,
            "i",
            self.sat_num,
            epoch_days,
            self.bstar,
            self.mean_motion_dot / (XPDOTP * 1440.0),
            self.mean_motion_dot_dot / (XPDOTP * 1440.0 * 1440.0),
            self.eccen,
            math.radians(self.arg_of_perigee),
            math.radians(self.inclination),
            math.radians(self.mean_anomaly),
            self.mean_motion / XPDOTP,
            math.radians(self.raan),
        )
        # sgp4init leaves the identification fields blank
        satrec.intldesg = self.intl_desig
        satrec.classification = self.classification
        satrec.ephtype = self.ephem_type
        satrec.elnum = self.element_num
        satrec.revnum = self.rev_num
        return satrec

    @classmethod
    def from_satrec(cls, satrec: Satrec, name: str = "") -> "TleData":
        """
        Build TleData from an SGP4 record, either parsed from TLE text or
        produced by to_satrec().
        """
        intl_desig = str(getattr(satrec, "intldesg", "") or "").strip()
        year, launch, piece = split_intl_desig(intl_desig)
        classification = str(getattr(satrec, "classification", "U") or "U").strip()
        if classification not in ("U", "C", "S"):
            classification = "U"

        return cls(
            name=name,
            sat_num=int(satrec.satnum),
            epoch=datetime_from_jd(satrec.jdsatepoch, satrec.jdsatepochF),
            inclination=math.degrees(satrec.inclo),
            raan=math.degrees(satrec.nodeo),
            eccen=satrec.ecco,
            arg_of_perigee=math.degrees(satrec.argpo),
            mean_anomaly=math.degrees(satrec.mo),
            mean_motion=satrec.no_kozai * XPDOTP,
            intl_desig=intl_desig,
            desig_year=year,
            desig_launch=launch,
            desig_piece=piece,
            classification=classification,
            mean_motion_dot=satrec.ndot * XPDOTP * 1440.0,
            mean_motion_dot_dot=satrec.nddot * XPDOTP * 1440.0 * 1440.0,
            bstar=satrec.bstar,
            ephem_type=int(getattr(satrec, "ephtype", 0) or 0),
            element_num=int(getattr(satrec, "elnum", 0) or 0),
            rev_num=int(getattr(satrec, "revnum", 0) or 0),
        )


def julian_day_parts(t: datetime) -> tuple[float, float]:
    t = t.astimezone(timezone.utc)
    return jday(t.year, t.month, t.day, t.hour, t.minute, t.second + t.microsecond * 1e-6)


def datetime_from_jd(jd: float, fr: float = 0.0) -> datetime:
    return _UNIX_EPOCH + timedelta(days=(jd - _JD_UNIX_EPOCH) + fr)


def split_intl_desig(intl_desig: str) -> tuple[int, int, str]:
    """
    '98067A' -> (1998, 67, 'A'). Empty or malformed designators give zeros.
    """
    s = intl_desig.strip()
    if len(s) < 5 or not s[:5].isdigit():
        return 0, 0, s[5:] if len(s) > 5 else ""
    year = int(s[:2])
    year += 2000 if year < 57 else 1900
    return year, int(s[2:5]), s[5:].strip()


def _epoch_from_tle(year_2digit: int, day_of_year: float) -> datetime:
    # Convert 2-digit year to 4-digit (assumes 1957-2056 range)
    year = year_2digit + (2000 if year_2digit < 57 else 1900)
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    return start + timedelta(days=day_of_year - 1.0)


def parse_exponential_notation(s: str) -> float:
    """
    Parse TLE implied-decimal exponent fields (e.g. ' 12345-3' -> 0.12345e-3,
    '-31515-4' -> -0.31515e-4). The field is 8 columns: sign, 5 mantissa
    digits, exponent sign, exponent digit; the leading sign may be blank.
    """
    raw = s.rstrip()
    if not raw.strip():
        return 0.0
    if len(raw) < 7:
        raise ValueError(f"Malformed exponent field: {s!r}")

    mantissa_part = raw[:-2]
    exponent_part = raw[-2:]
    sign = -1.0 if mantissa_part.strip().startswith("-") else 1.0
    digits = mantissa_part.strip().lstrip("+-")
    if not digits.isdigit():
        raise ValueError(f"Malformed exponent field: {s!r}")

    mantissa = float("0." + digits)
    exponent = int(exponent_part.replace("+", ""))
    return sign * mantissa * (10.0 ** exponent)


def parse_tle(line0: str, line1: str, line2: str) -> TleData:
    """
    Parse a two-line element set.

    Args:
        line0: Satellite name (can be empty)
        line1: First line of TLE (69 characters)
        line2: Second line of TLE (69 characters)

    Returns:
        Parsed TleData
    """
    line1 = line1.rstrip()
    line2 = line2.rstrip()

    # Validate line numbers
    if not line1.startswith('1 '):
        raise ValidationError("Line 1 must start with '1 '")
    if not line2.startswith('2 '):
        raise ValidationError("Line 2 must start with '2 '")

    # Parse Line 1
    try:
        sat_num = int(line1[2:7].strip())
        classification = line1[7].strip() or "U"
        intl_desig = line1[9:17].strip()
        epoch = _epoch_from_tle(int(line1[18:20]), float(line1[20:32].strip()))
        mean_motion_dot = float(line1[33:43].strip())
        mean_motion_dot_dot = parse_exponential_notation(line1[44:52])
        bstar = parse_exponential_notation(line1[53:61])
        ephem_type_str = line1[62:63].strip()
        ephem_type = int(ephem_type_str) if ephem_type_str else 0
        element_num = int(line1[64:68].strip() or 0)
    except (ValueError, IndexError) as e:
        raise ValidationError(f"Error parsing TLE line 1: {e}") from e

    # Parse Line 2
    try:
        # Verify catalog number matches
        catalog_check = int(line2[2:7].strip())
        if catalog_check != sat_num:
            raise ValidationError("Catalog number mismatch between lines")

        inclination = float(line2[8:16].strip())
        raan = float(line2[17:25].strip())
        # Eccentricity (stored without leading decimal point)
        eccen = float("0." + line2[26:33].strip())
        arg_of_perigee = float(line2[34:42].strip())
        mean_anomaly = float(line2[43:51].strip())
        mean_motion = float(line2[52:63].strip())
        rev_num = int(line2[63:68].strip() or 0)
    except (ValueError, IndexError) as e:
        raise ValidationError(f"Error parsing TLE line 2: {e}") from e

    year, launch, piece = split_intl_desig(intl_desig)
    return TleData(
        name=line0.strip(),
        sat_num=sat_num,
        epoch=epoch,
        inclination=inclination,
        raan=raan,
        eccen=eccen,
        arg_of_perigee=arg_of_perigee,
        mean_anomaly=mean_anomaly,
        mean_motion=mean_motion,
        intl_desig=intl_desig,
        desig_year=year,
        desig_launch=launch,
        desig_piece=piece,
        classification=classification,
        mean_motion_dot=mean_motion_dot,
        mean_motion_dot_dot=mean_motion_dot_dot,
        bstar=bstar,
        ephem_type=ephem_type,
        element_num=element_num,
        rev_num=rev_num,
    )


def load_tle_from_file(filepath: str) -> List[TleData]:
    """
    Load TLE data from a file.

    Supports formats:
    - 3-line TLE (name + 2 lines)
    - 2-line TLE (just the 2 data lines)
    """
    with open(filepath, 'r', encoding="utf-8") as f:
        lines = [line.rstrip('\n') for line in f.readlines()]

    tles = []
    i = 0

    while i < len(lines):
        # Skip empty lines
        if not lines[i].strip():
            i += 1
            continue

        if i + 1 < len(lines) and lines[i + 1].startswith('1 ') and not lines[i].startswith('1 '):
            # 3-line format
            line2 = lines[i + 2] if i + 2 < len(lines) else ""
            if line2.startswith('2 '):
                tles.append(parse_tle(lines[i], lines[i + 1], line2))
                i += 3
            else:
                i += 1
        elif lines[i].startswith('1 '):
            # 2-line format
            line2 = lines[i + 1] if i + 1 < len(lines) else ""
            if line2.startswith('2 '):
                tles.append(parse_tle("", lines[i], line2))
                i += 2
            else:
                i += 1
        else:
            i += 1

    return tles


def tle_from_string(tle_string: str) -> TleData:
    """
    Parse TLE from a multi-line string (2 or 3 lines).
    """
    lines = [line.strip() for line in tle_string.strip().split('\n') if line.strip()]

    if len(lines) == 2:
        return parse_tle("", lines[0], lines[1])
    elif len(lines) == 3:
        return parse_tle(lines[0], lines[1], lines[2])
    else:
        raise ValidationError("TLE string must contain 2 or 3 lines")


# Example TLEs for testing and the demo
EXAMPLE_ISS_DEMO_TLE = """Satellite 1
1 25544U 98067A   20194.88612269 -.00002218  00000-0 -31515-4 0  9992
2 25544  51.6461 221.2784 0001413  89.1723 280.4612 15.49507896236008"""

EXAMPLE_CANX5_TLE = """CANX-5
1 40056U 14034D   25209.55901054  .00000935  00000+0  13011-3 0  9999
2 40056  98.3577  67.3174 0012454 336.2296  23.8338 14.80323878587440"""
