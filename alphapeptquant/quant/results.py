"""Result records handed to downstream writers.

Quantitation results are written by external pepXML/TSV writers; this
module builds the attribute dictionaries they serialize and applies the
ratio conventions (sentinels, XPRESS-style ratio strings).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..constants import PROTON_MASS, SENTINEL_NAN, SENTINEL_POSITIVE_INFINITY
from ..exceptions import ConfigurationError
from .request import QuantResult

OUTPUT_SUFFIX = "_q3.pep.xml"


@dataclass
class OutputParams:
    """How result records are rendered."""

    # Fixed numeric sentinels (True) or IEEE NaN / inf (False) for zero heavy area
    use_sentinels: bool = True

    # Emit XPRESS-compatible ratio strings
    mimic_xpress: bool = False

    # Emit extra debugging attributes
    debug: bool = False

    # Report masses as singly protonated (XPRESS convention)
    report_singly_protonated: bool = True

    @property
    def sentinel_nan(self) -> float:
        return SENTINEL_NAN if self.use_sentinels else math.nan

    @property
    def sentinel_inf(self) -> float:
        return SENTINEL_POSITIVE_INFINITY if self.use_sentinels else math.inf


def light_to_heavy_ratio(light: float, heavy: float, params: OutputParams) -> float:
    """Decimal light/heavy ratio with sentinels for a zero heavy area."""
    if heavy != 0.0:
        return light / heavy
    return params.sentinel_nan if light == 0.0 else params.sentinel_inf


def light_to_heavy_string(light: float, heavy: float, params: OutputParams) -> str:
    """XPRESS light:heavy string, normalized so the larger area is 1."""
    if heavy == 0.0:
        return str(params.sentinel_nan if light == 0.0 else params.sentinel_inf)
    if light < heavy:
        return f"{light / heavy:f}:1"
    return f"1:{heavy / light:f}"


def heavy_to_light_string(light: float, heavy: float, params: OutputParams) -> str:
    """XPRESS heavy:light string, normalized so the smaller area is 1."""
    if light == 0.0:
        return str(params.sentinel_nan if heavy == 0.0 else params.sentinel_inf)
    if light < heavy:
        return f"{heavy / light:f}:1"
    return f"1:{light / heavy:f}"


def analysis_result_record(
    result: QuantResult,
    params: Optional[OutputParams] = None,
) -> Dict[str, Any]:
    """Attributes of one ``q3ratio_result`` (or ``xpressratio_result``) element."""
    params = params if params is not None else OutputParams()
    request = result.request
    offset = PROTON_MASS if params.report_singly_protonated else 0.0

    record: Dict[str, Any] = {
        "light_firstscan": result.first_scan,
        "light_lastscan": result.last_scan,
        "light_mass": request.light_mass + offset,
        "heavy_firstscan": result.first_scan,
        "heavy_lastscan": result.last_scan,
        "heavy_mass": request.heavy_mass + offset,
        "light_area": result.q3_light,
        "heavy_area": result.q3_heavy,
    }
    if params.mimic_xpress:
        record["ratio"] = light_to_heavy_string(result.q3_light, result.q3_heavy, params)
        record["heavy2light_ratio"] = heavy_to_light_string(result.q3_light, result.q3_heavy, params)
    else:
        record["q2_light_area"] = result.q2_light
        record["q2_heavy_area"] = result.q2_heavy
        if params.debug:
            record["center_match_count"] = result.center_match_count
    record["decimal_ratio"] = light_to_heavy_ratio(result.q3_light, result.q3_heavy, params)
    return record


def q3_output_path(
    input_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    overwrite: bool = False,
) -> Path:
    """Output file for a pepXML input, refusing to clobber without ``overwrite``.

    ``sample.pep.xml`` becomes ``sample_q3.pep.xml``.
    """
    input_path = Path(input_path)
    if output_path is None:
        name = input_path.name
        lower = name.lower()
        if lower.endswith(".pep.xml"):
            name = name[:-8] + OUTPUT_SUFFIX
        elif lower.endswith(".xml"):
            name = name[:-4] + OUTPUT_SUFFIX
        else:
            name = name + OUTPUT_SUFFIX
        output_path = input_path.with_name(name)
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise ConfigurationError(f"Operation would overwrite existing file {output_path}")
    return output_path
