#!/usr/bin/env python3
"""
data_utils.py - Attribute table loading and cleaning

Reads the per-state attribute file (award wins, population, industry
establishments and receipts) into the AttributeRecord column layout used by
the joiner.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from loguru import logger

from .errors import InputError
from .records import ATTRIBUTE_COLUMNS, REGION_KEY, AttributeRecord, wins_per_pop, wins_per_receipt

# Attribute file column -> AttributeRecord field
DEFAULT_COLUMN_MAP: Dict[str, str] = {
    "state": REGION_KEY,
    "population": "population",
    "wins": "wins",
    "estab": "establishments",
    "receipts": "receipts",
    "winsperpop": "wins_per_pop",
    "winsperreceipt": "wins_per_receipt",
}

REQUIRED_FIELDS = [REGION_KEY, "population", "wins", "establishments", "receipts"]
INTEGER_FIELDS = ["wins", "establishments"]
NUMERIC_FIELDS = ["population", "wins", "establishments", "receipts", "wins_per_pop", "wins_per_receipt"]


def sanitize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Convert column names to clean snake_case format.

    Args:
        df: DataFrame with potentially messy column names

    Returns:
        DataFrame with clean snake_case column names
    """
    original_cols = df.columns.tolist()

    clean_cols = []
    for col in original_cols:
        clean_col = str(col).strip()

        # Replace spaces and special chars with underscores
        clean_col = re.sub(r"[^\w\s]", "_", clean_col)
        clean_col = re.sub(r"\s+", "_", clean_col)
        clean_col = clean_col.lower()
        clean_col = re.sub(r"_+", "_", clean_col)
        clean_col = clean_col.strip("_")

        if not clean_col or clean_col.isdigit():
            clean_col = f"column_{len(clean_cols)}"

        clean_cols.append(clean_col)

    changed_cols = [(orig, new) for orig, new in zip(original_cols, clean_cols) if orig != new]
    if changed_cols:
        logger.debug(f"  📝 Cleaned {len(changed_cols)} column names:")
        for orig, new in changed_cols[:5]:
            logger.debug(f"    '{orig}' → '{new}'")
        if len(changed_cols) > 5:
            logger.debug(f"    ... and {len(changed_cols) - 5} more")

    df = df.copy()
    df.columns = clean_cols
    return df


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a pandas Series to numeric type, handling thousands separators,
    dollar signs and percent signs. Unparseable values become NaN.
    """
    s = (
        series.astype(str)
        .str.replace(",", "", regex=False)
        .str.replace("$", "", regex=False)
        .str.replace("%", "", regex=False)
        .str.strip()
    )
    return pd.to_numeric(s, errors="coerce")


def validate_required_columns(df: pd.DataFrame, required: List[str], source: str) -> None:
    """Raise InputError naming every required column missing from df."""
    missing_columns = [col for col in required if col not in df.columns]
    if missing_columns:
        raise InputError(
            f"{source} is missing required columns: {missing_columns}. "
            f"Available columns: {list(df.columns)}"
        )


def ensure_output_directory(output_path: Union[str, Path]) -> Path:
    """Ensure the parent directory of output_path exists and return it as a Path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def _detect_delimiter(path: Path) -> str:
    """Tab if the header line is tab separated, otherwise comma."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        header = f.readline()
    return "\t" if "\t" in header and "," not in header else ","


def derive_ratio_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Fill wins_per_pop / wins_per_receipt where they are absent.

    Stored values from the attribute file are kept as they are; only missing
    columns or missing cells are computed.
    """
    df = df.copy()

    for column, func in (("wins_per_pop", wins_per_pop), ("wins_per_receipt", wins_per_receipt)):
        if column not in df.columns:
            df[column] = float("nan")

        todo = df[column].isna()
        if not todo.any():
            continue

        logger.debug(f"  🧮 Deriving {column} for {int(todo.sum())} regions")
        df.loc[todo, column] = [
            func(
                AttributeRecord(
                    region_key=row[REGION_KEY],
                    population=row["population"],
                    wins=row["wins"],
                    establishments=row["establishments"],
                    receipts=row["receipts"],
                    wins_per_pop=float("nan"),
                    wins_per_receipt=float("nan"),
                )
            )
            for _, row in df.loc[todo].iterrows()
        ]

    return df


def load_attribute_table(
    path: Union[str, Path], column_map: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """
    Load the per-state attribute file.

    Args:
        path: Delimited text file with one row per state
        column_map: Source column -> AttributeRecord field (after snake_case cleanup)

    Returns:
        DataFrame with exactly the AttributeRecord columns

    Raises:
        InputError: If the file is missing or malformed, or a ratio cannot be derived
    """
    path = Path(path)
    column_map = column_map or DEFAULT_COLUMN_MAP
    logger.info(f"📊 Loading state attributes from {path}")

    if not path.exists():
        raise InputError(f"Attribute file not found: {path}")

    try:
        df = pd.read_csv(path, sep=_detect_delimiter(path), dtype=str, skipinitialspace=True)
    except pd.errors.EmptyDataError as e:
        raise InputError(f"Attribute file is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InputError(f"Could not parse attribute file {path}: {e}") from e

    if df.empty:
        raise InputError(f"Attribute file has no data rows: {path}")

    df = sanitize_column_names(df)
    df = df.rename(columns={src.lower(): dst for src, dst in column_map.items()})
    validate_required_columns(df, REQUIRED_FIELDS, f"Attribute file {path.name}")

    df[REGION_KEY] = df[REGION_KEY].str.strip()
    blank_keys = df[REGION_KEY].isna() | (df[REGION_KEY] == "")
    if blank_keys.any():
        rows = [int(i) + 2 for i in df.index[blank_keys]]
        raise InputError(f"Attribute file has rows without a state name (lines {rows})")

    for column in NUMERIC_FIELDS:
        if column not in df.columns:
            continue
        raw = df[column]
        values = clean_numeric(raw)
        bad = values.isna() & raw.notna() & (raw.str.strip() != "")
        if column in REQUIRED_FIELDS:
            bad = bad | values.isna()
        if bad.any():
            examples = df.loc[bad, REGION_KEY].tolist()[:5]
            raise InputError(f"Column '{column}' has missing or non-numeric values for {examples}")

        infinite = values.notna() & ~np.isfinite(values)
        if infinite.any():
            examples = df.loc[infinite, REGION_KEY].tolist()[:5]
            raise InputError(f"Column '{column}' has non-finite values for {examples}")

        if column in INTEGER_FIELDS:
            fractional = values.notna() & (values % 1 != 0)
            if fractional.any():
                examples = df.loc[fractional, REGION_KEY].tolist()[:5]
                raise InputError(f"Column '{column}' has fractional values for {examples}")

        df[column] = values

    df["wins"] = df["wins"].astype("int64")
    df["establishments"] = df["establishments"].astype("int64")
    df["population"] = df["population"].astype(float)
    df["receipts"] = df["receipts"].astype(float)

    df = derive_ratio_columns(df)

    duplicates = df[REGION_KEY][df[REGION_KEY].duplicated()].unique().tolist()
    if duplicates:
        logger.warning(f"  ⚠️ Attribute file lists some states more than once: {duplicates}")

    logger.success(f"  ✅ Loaded attributes for {len(df):,} states")
    return df[ATTRIBUTE_COLUMNS].reset_index(drop=True)
