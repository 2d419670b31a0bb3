"""
Data Loading Script

This script reads the pain survey table from a delimited file and checks
that the expected columns are present.
"""

import os

import pandas as pd

from .config import RAW_COLUMNS
from .errors import SchemaError


def validate_columns(df, required, context="data"):
    """
    Check that every required column is present.

    Parameters:
    -----------
    df : pd.DataFrame
        Table to check
    required : list
        Column names that must be present
    context : str, default="data"
        Description used in the error message

    Raises:
    -------
    SchemaError
        If one or more columns are missing; the message names all of them
    """
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaError(
            f"Missing column(s) in {context}: {missing}\n"
            f"Found columns: {list(df.columns)}"
        )


def load_survey_data(path, required=None):
    """
    Load the survey table from a CSV file.

    Parameters:
    -----------
    path : str
        Path to the input CSV file
    required : list, optional
        Columns that must be present. Defaults to the full raw schema.

    Returns:
    --------
    pd.DataFrame
        One row per subject
    """
    print("=" * 60)
    print("Loading Data")
    print("=" * 60)
    print(f"Loading data from: {path}")

    if not os.path.exists(path):
        # Try relative to project root
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        alt_path = os.path.join(project_root, path)
        if os.path.exists(alt_path):
            path = alt_path
            print(f"Found file at: {path}")
        else:
            raise FileNotFoundError(
                f"Data file not found: {path}\n"
                f"Also tried: {alt_path}"
            )

    try:
        df = pd.read_csv(path, na_values=['NA', ''], skipinitialspace=True)
    except pd.errors.EmptyDataError:
        raise ValueError(f"Data file is empty: {path}")
    except pd.errors.ParserError as e:
        raise ValueError(f"Could not parse {path}: {e}")

    if df.empty:
        raise ValueError(f"Data file has a header but no rows: {path}")

    df.columns = [str(col).strip() for col in df.columns]
    validate_columns(df, RAW_COLUMNS if required is None else required, context=path)

    print(f"Loaded {len(df)} rows, {len(df.columns)} columns")
    print(f"Columns: {list(df.columns)}")

    return df
