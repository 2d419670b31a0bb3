"""
Recoding Script

This script turns the raw survey columns into modelling-ready data:
- Raw strings -> pandas categoricals (Education is ordered)
- Race -> Ancestry, with the raw column dropped
- Column selection per report
- Complete-case filtering
- Integer encoding of categoricals for scikit-learn
"""

import pandas as pd
import numpy as np

from .config import ANCESTRY_MAP, SEX_MAP, EDUCATION_LEVELS, EMPLOYMENT_LEVELS
from .data_loading import validate_columns
from .errors import SchemaError


def _unique_levels(mapping):
    """Mapped levels in first-seen order."""
    return list(dict.fromkeys(mapping.values()))


def _to_categorical(series, mapping, categories, ordered=False):
    """
    Map raw values of a column onto a fixed set of levels.

    Values that are already levels map to themselves, so the result can be
    fed back in unchanged.

    Parameters:
    -----------
    series : pd.Series
        Raw column (strings, categoricals or missing values)
    mapping : dict
        Raw value -> level
    categories : list
        Allowed levels, in display (or ordinal) order
    ordered : bool, default=False
        Whether the resulting categorical is ordered

    Returns:
    --------
    pd.Series
        Categorical series with the same index and name
    """
    full_map = dict(mapping)
    full_map.update({level: level for level in categories})

    values = series.astype('object').map(lambda v: v.strip() if isinstance(v, str) else v)
    mapped = values.map(full_map)

    unknown = values.notna() & mapped.isna()
    if unknown.any():
        bad = sorted(set(values[unknown].astype(str)))
        raise SchemaError(
            f"Unrecognised value(s) in column '{series.name}': {bad}\n"
            f"Expected one of: {sorted(full_map)}"
        )

    return pd.Series(
        pd.Categorical(mapped, categories=categories, ordered=ordered),
        index=series.index,
        name=series.name,
    )


def recode_factors(df):
    """
    Recode the categorical survey columns.

    Race is mapped onto Ancestry and dropped. Sex, Education (ordered) and
    Employment become categoricals. Running this on its own output returns
    an identical frame.

    Parameters:
    -----------
    df : pd.DataFrame
        Raw survey table (or the output of a previous call)

    Returns:
    --------
    pd.DataFrame
        Copy of the table with recoded columns
    """
    df = df.copy()

    if 'Race' in df.columns:
        ancestry = _to_categorical(df['Race'], ANCESTRY_MAP, _unique_levels(ANCESTRY_MAP))
        df['Ancestry'] = ancestry
        df = df.drop(columns=['Race'])
    elif 'Ancestry' in df.columns:
        df['Ancestry'] = _to_categorical(df['Ancestry'], ANCESTRY_MAP, _unique_levels(ANCESTRY_MAP))
    else:
        raise SchemaError("Missing column(s) in data: ['Race'] (no 'Ancestry' column either)")

    validate_columns(df, ['Sex', 'Education', 'Employment'], context="data")

    df['Sex'] = _to_categorical(df['Sex'], SEX_MAP, _unique_levels(SEX_MAP))
    df['Education'] = _to_categorical(df['Education'], {}, EDUCATION_LEVELS, ordered=True)
    df['Employment'] = _to_categorical(df['Employment'], {}, EMPLOYMENT_LEVELS)

    return df


def select_report_columns(df, target, predictors):
    """
    Keep the target and the report's predictors, in that order.

    Parameters:
    -----------
    df : pd.DataFrame
        Recoded survey table
    target : str
        Response column
    predictors : list
        Predictor columns

    Returns:
    --------
    pd.DataFrame
        Table with exactly [target] + predictors
    """
    columns = [target] + list(predictors)
    validate_columns(df, columns, context="recoded data")
    return df[columns].copy()


def complete_cases(df):
    """
    Keep the rows with no missing field.

    Parameters:
    -----------
    df : pd.DataFrame
        Table to filter

    Returns:
    --------
    tuple
        (subset, n_dropped); the subset keeps the original index
    """
    mask = df.notna().all(axis=1)
    subset = df.loc[mask].copy()
    n_dropped = int(len(df) - len(subset))

    print(f"Complete cases: {len(subset)} of {len(df)} rows ({n_dropped} dropped)")

    return subset, n_dropped


def encode_predictors(X):
    """
    Encode predictors as a float matrix for scikit-learn.

    Categoricals become their integer codes, so ordered levels keep their
    order. Numeric columns pass through.

    Parameters:
    -----------
    X : pd.DataFrame
        Predictor table (complete cases)

    Returns:
    --------
    pd.DataFrame
        Float columns with the same names and index
    """
    encoded = {}
    for col in X.columns:
        series = X[col]
        if isinstance(series.dtype, pd.CategoricalDtype):
            codes = series.cat.codes.astype(float)
            encoded[col] = codes.where(codes >= 0, np.nan)
        elif pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
            encoded[col] = series.astype(float)
        else:
            raise SchemaError(
                f"Column '{col}' has dtype {series.dtype}; recode it to a categorical "
                f"or numeric column before modelling"
            )
    return pd.DataFrame(encoded, index=X.index, columns=X.columns)
