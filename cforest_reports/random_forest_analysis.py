"""
Random Forest Analysis Script

This script fits the random forests used for variable importance and runs
the grid of (tree count, seed) configurations for a report.

Each forest is grown on subsamples drawn without replacement, with `mtry`
candidate predictors per split. The random state is created from the seed
right before the fit and then handed on to the importance scorer, so the
seed -> fit -> importance sequence consumes one stream in a fixed order.
"""

import numpy as np
import pandas as pd

from sklearn.ensemble import BaggingRegressor
from sklearn.tree import DecisionTreeRegressor

from .config import MTRY, SUBSAMPLE_FRACTION, CONDITIONAL_THRESHOLD
from .errors import ModelingError
from .variable_importance import conditional_permutation_importance


def model_id(n_estimators, seed):
    """Identifier of one forest configuration."""
    return f"ntree={n_estimators}, seed={seed}"


def model_label(n_estimators, seed):
    """Human-readable facet label of one forest configuration."""
    return f"{n_estimators} trees (seed {seed})"


def check_model_data(X, y):
    """
    Reject data that cannot support a model fit.

    Parameters:
    -----------
    X : pd.DataFrame
        Predictor table (complete cases, before encoding)
    y : pd.Series
        Target

    Raises:
    -------
    ModelingError
        No rows, a constant target, or a predictor with a single observed value
    """
    if len(X) == 0 or len(y) == 0:
        raise ModelingError("No complete cases left to model")
    if len(X) != len(y):
        raise ModelingError(f"Predictor rows ({len(X)}) and target rows ({len(y)}) differ")
    if pd.Series(y).nunique(dropna=True) < 2:
        raise ModelingError(f"Target '{getattr(y, 'name', 'y')}' is constant over the complete cases")

    single = [col for col in X.columns if X[col].nunique(dropna=True) < 2]
    if single:
        raise ModelingError(f"Predictor(s) with a single observed level: {single}")


def fit_conditional_forest(X, y, n_estimators=500, mtry=MTRY, seed=None,
                           subsample=SUBSAMPLE_FRACTION, min_samples_split=20, min_samples_leaf=7):
    """
    Fit a forest of regression trees on subsamples.

    Parameters:
    -----------
    X : pd.DataFrame
        Encoded predictor matrix
    y : pd.Series
        Target
    n_estimators : int, default=500
        Number of trees
    mtry : int, default=MTRY
        Candidate predictors per split (capped at the number of predictors)
    seed : int, optional
        Seed of the random stream
    subsample : float, default=SUBSAMPLE_FRACTION
        Fraction of rows drawn without replacement for each tree
    min_samples_split : int, default=20
        Minimum rows in a node before it may be split
    min_samples_leaf : int, default=7
        Minimum rows per leaf

    Returns:
    --------
    tuple
        (fitted BaggingRegressor, np.random.RandomState positioned after the fit)
    """
    random_state = np.random.RandomState(seed)

    tree = DecisionTreeRegressor(
        max_features=min(mtry, X.shape[1]),
        min_samples_split=min_samples_split,
        min_samples_leaf=min_samples_leaf,
    )
    forest = BaggingRegressor(
        estimator=tree,
        n_estimators=n_estimators,
        max_samples=subsample,
        bootstrap=False,
        n_jobs=1,
        random_state=random_state,
    )
    forest.fit(X.to_numpy(dtype=float), np.asarray(y, dtype=float))

    return forest, random_state


def forest_oob_r2(forest, X, y):
    """
    Out-of-bag R^2 of a fitted forest.

    Rows that were in-bag for every tree are left out.
    """
    X_values = X.to_numpy(dtype=float)
    y_values = np.asarray(y, dtype=float)
    n_samples = X_values.shape[0]

    total = np.zeros(n_samples)
    counts = np.zeros(n_samples)
    for estimator, samples, features in zip(
            forest.estimators_, forest.estimators_samples_, forest.estimators_features_):
        oob = np.ones(n_samples, dtype=bool)
        oob[samples] = False
        if oob.any():
            total[oob] += estimator.predict(X_values[oob][:, features])
            counts[oob] += 1

    seen = counts > 0
    if seen.sum() < 2:
        return float('nan')
    pred = total[seen] / counts[seen]
    actual = y_values[seen]
    ss_res = np.sum((actual - pred) ** 2)
    ss_tot = np.sum((actual - actual.mean()) ** 2)
    return float(1 - ss_res / ss_tot) if ss_tot > 0 else float('nan')


def run_forest_grid(X, y, n_trees, seeds, mtry=MTRY, threshold=CONDITIONAL_THRESHOLD,
                    categorical=()):
    """
    Fit one forest per (tree count, seed) and score its predictors.

    Parameters:
    -----------
    X : pd.DataFrame
        Encoded predictor matrix
    y : pd.Series
        Target
    n_trees : list
        Tree counts (outer loop)
    seeds : list
        Seeds (inner loop)
    mtry : int, default=MTRY
        Candidate predictors per split
    threshold : float, default=CONDITIONAL_THRESHOLD
        Association cut-off for conditioning predictors
    categorical : iterable, default=()
        Names of categorical predictors

    Returns:
    --------
    tuple
        ({model_id: importance Series}, {model_id: OOB R^2})
    """
    for name, values in (("Tree counts", n_trees), ("Seeds", seeds)):
        repeated = sorted({v for v in values if list(values).count(v) > 1})
        if repeated:
            raise ValueError(f"{name} must be unique; repeated: {repeated}")

    print("=" * 60)
    print("Running Random Forest Analysis")
    print("=" * 60)

    importances = {}
    oob_scores = {}

    for n_estimators in n_trees:
        for seed in seeds:
            key = model_id(n_estimators, seed)
            print(f"\nTraining forest with {n_estimators} trees (seed {seed}, mtry {mtry})...")

            forest, random_state = fit_conditional_forest(X, y, n_estimators=n_estimators,
                                                          mtry=mtry, seed=seed)
            oob_scores[key] = forest_oob_r2(forest, X, y)
            print(f"  OOB R^2: {oob_scores[key]:.4f}")

            print("  Computing conditional permutation importance...")
            importances[key] = conditional_permutation_importance(
                forest, X, y, random_state, threshold=threshold, categorical=categorical
            )
            top = importances[key].sort_values(ascending=False)
            print(f"  Top variable: {top.index[0]} ({top.iloc[0]:.4f})")

    return importances, oob_scores
