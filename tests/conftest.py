import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from cforest_reports.config import EDUCATION_LEVELS, EMPLOYMENT_LEVELS


# Columns shared by both reports; blanks placed here drop a row from either report
SHARED_COLUMNS = ['Race', 'Sex', 'Education', 'Employment', 'Anxiety', 'Depression', 'PCS', 'APBQ_F']


def make_survey(n=212, n_incomplete=45, seed=0):
    """Synthetic survey table with the raw schema and `n - n_incomplete` complete cases."""
    rng = np.random.default_rng(seed)

    pcs = rng.normal(20, 8, n)
    anxiety = rng.normal(10, 3, n)
    depression = 0.6 * anxiety + rng.normal(0, 2, n)
    assets = rng.normal(5, 2, n)
    sex = rng.choice(['F', 'M'], n)
    apbq_f = 30 + 1.5 * pcs + rng.normal(0, 3, n)
    apbq_m = 0.5 * apbq_f + rng.normal(0, 4, n)
    ppt = 50 - 1.0 * pcs + 8 * (sex == 'M') + rng.normal(0, 3, n)

    df = pd.DataFrame({
        'ID': np.arange(1, n + 1),
        'Race': rng.choice(['White', 'Black', 'Asian', 'Hispanic', 'Other'], n),
        'Sex': sex,
        'Education': rng.choice(EDUCATION_LEVELS, n),
        'Employment': rng.choice(EMPLOYMENT_LEVELS, n),
        'Assets': assets,
        'Anxiety': anxiety,
        'Depression': depression,
        'PCS': pcs,
        'PPT': ppt,
        'APBQ_F': apbq_f,
        'APBQ_M': apbq_m,
    })
    df[['Race', 'Sex', 'Education', 'Employment']] = df[['Race', 'Sex', 'Education', 'Employment']].astype(object)

    rows = rng.choice(n, size=n_incomplete, replace=False)
    for row in rows:
        col = SHARED_COLUMNS[rng.integers(len(SHARED_COLUMNS))]
        df.loc[row, col] = np.nan

    return df


@pytest.fixture
def survey_df():
    return make_survey()


@pytest.fixture
def survey_csv(tmp_path, survey_df):
    path = tmp_path / "survey.csv"
    survey_df.to_csv(path, index=False)
    return str(path)


@pytest.fixture
def regression_data():
    """Numeric predictors: x1 drives y, x2 is a noisy copy of x1, x3 is noise."""
    rng = np.random.default_rng(42)
    n = 200
    x1 = rng.normal(0, 1, n)
    x2 = x1 + rng.normal(0, 0.5, n)
    x3 = rng.normal(0, 1, n)
    y = 3 * x1 + rng.normal(0, 0.5, n)
    X = pd.DataFrame({'x1': x1, 'x2': x2, 'x3': x3})
    return X, pd.Series(y, name='y')


@pytest.fixture
def survey_factory():
    return make_survey
