from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
RAW_DIR = DATA_DIR / "raw"

OUTPUTS_DIR = PROJECT_ROOT / "outputs"

# Registry extract: one row per (subset, age stratum) with count, population and standard weight.
RAW_FILE = RAW_DIR / "age_adjusted_data.xlsx"

# Column roles in the registry extract
COUNT_COL = "Count"
POP_COL = "Population"
WEIGHT_COL = "weight"

# Estimation defaults
ALPHA = 0.05
SCALE = 1e5
NORMALIZE_WEIGHTS = True
CI_METHOD = "fayfeuer"
CI_METHODS = ("fayfeuer", "tiwari")

# Largest absolute per-stratum difference tolerated between the two groups' standard weights.
WEIGHT_TOLERANCE = 1e-12

CI_METHOD_LABELS = {
    "fayfeuer": "SEER (Fay–Feuer)",
    "tiwari": "SEER (Tiwari modification)",
}
RATIO_CI_METHOD_LABEL = "Delta log-normal"
RATIO_MEASURE_PREFIX = "RR of DSRs for "
