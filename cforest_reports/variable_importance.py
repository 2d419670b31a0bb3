"""
Conditional Permutation Importance Script

This script scores predictors of a fitted forest by conditional permutation
importance (Strobl et al., 2008):
- For each predictor, find the other predictors associated with it
- For each tree, cut the out-of-bag rows into cells using the tree's own
  split points on those associated predictors
- Permute the predictor within each cell and record the increase in
  out-of-bag mean squared error
- Average the increase over all trees

Permuting within cells keeps the predictor's relationship with its
correlated neighbours intact, so correlated predictors are not credited
with each other's effect.
"""

import numpy as np
import pandas as pd

from scipy import stats

from .config import CONDITIONAL_THRESHOLD


def association_pvalue(x, z, x_categorical=False, z_categorical=False):
    """
    P-value of a test of association between two predictors.

    Parameters:
    -----------
    x, z : pd.Series or np.ndarray
        Predictor values (no missing values)
    x_categorical, z_categorical : bool, default=False
        Whether each predictor is categorical

    Returns:
    --------
    float
        Pearson correlation test for numeric/numeric, Kruskal-Wallis for
        numeric/categorical, chi-square test of independence for
        categorical/categorical. Returns 1.0 when the test is undefined
        (constant column, a single level).
    """
    x = np.asarray(x)
    z = np.asarray(z)

    if x_categorical and z_categorical:
        table = pd.crosstab(x, z)
        if table.shape[0] < 2 or table.shape[1] < 2:
            return 1.0
        _, p, _, _ = stats.chi2_contingency(table)
    elif x_categorical or z_categorical:
        groups_of, values = (x, z) if x_categorical else (z, x)
        groups = [values[groups_of == level] for level in np.unique(groups_of)]
        if len(groups) < 2 or np.unique(values).size < 2:
            return 1.0
        _, p = stats.kruskal(*groups)
    else:
        if np.unique(x).size < 2 or np.unique(z).size < 2:
            return 1.0
        _, p = stats.pearsonr(x, z)

    return 1.0 if np.isnan(p) else float(p)


def conditioning_variables(X, variable, threshold=CONDITIONAL_THRESHOLD, categorical=()):
    """
    Predictors to condition on when permuting `variable`.

    Parameters:
    -----------
    X : pd.DataFrame
        Predictor matrix
    variable : str
        Predictor being scored
    threshold : float, default=CONDITIONAL_THRESHOLD
        A predictor z is kept when 1 - p(variable, z) > threshold
    categorical : iterable, default=()
        Names of categorical predictors

    Returns:
    --------
    list
        Names of the conditioning predictors, in column order
    """
    categorical = set(categorical)
    selected = []
    for other in X.columns:
        if other == variable:
            continue
        p = association_pvalue(
            X[variable], X[other],
            x_categorical=variable in categorical,
            z_categorical=other in categorical,
        )
        if 1 - p > threshold:
            selected.append(other)
    return selected


def _permutation_cells(X_oob, split_points):
    """
    Cell id of each out-of-bag row in the grid formed by the split points.

    Parameters:
    -----------
    X_oob : np.ndarray
        Out-of-bag rows (original column order)
    split_points : list of (int, float)
        (column index, threshold) pairs

    Returns:
    --------
    np.ndarray
        Integer cell id per row
    """
    if not split_points:
        return np.zeros(X_oob.shape[0], dtype=int)
    sides = np.column_stack([X_oob[:, col] <= cut for col, cut in split_points])
    _, cells = np.unique(sides, axis=0, return_inverse=True)
    return cells.reshape(-1)


def conditional_permutation_importance(forest, X, y, random_state,
                                       threshold=CONDITIONAL_THRESHOLD, categorical=()):
    """
    Conditional permutation importance of every predictor.

    Parameters:
    -----------
    forest : BaggingRegressor
        Forest fitted by fit_conditional_forest on X and y
    X : pd.DataFrame
        Encoded predictor matrix the forest was fitted on
    y : pd.Series or np.ndarray
        Target the forest was fitted on
    random_state : np.random.RandomState
        Random stream used for the permutations; pass the state returned
        by fit_conditional_forest so fit and scoring form one sequence
    threshold : float, default=CONDITIONAL_THRESHOLD
        Association cut-off for choosing conditioning predictors
    categorical : iterable, default=()
        Names of categorical predictors (used for association tests)

    Returns:
    --------
    pd.Series
        Mean increase in out-of-bag MSE per predictor, indexed by name
    """
    columns = list(X.columns)
    X_values = X.to_numpy(dtype=float)
    y_values = np.asarray(y, dtype=float)
    n_samples = X_values.shape[0]

    conditioning = {
        j: [columns.index(z) for z in conditioning_variables(X, var, threshold, categorical)]
        for j, var in enumerate(columns)
    }

    n_trees = len(forest.estimators_)
    scores = np.zeros((n_trees, len(columns)))

    for t, (estimator, samples, features) in enumerate(zip(
            forest.estimators_, forest.estimators_samples_, forest.estimators_features_)):
        in_bag = np.zeros(n_samples, dtype=bool)
        in_bag[samples] = True
        oob = ~in_bag
        if not oob.any():
            continue

        X_oob = X_values[oob]
        y_oob = y_values[oob]
        base_error = np.mean((y_oob - estimator.predict(X_oob[:, features])) ** 2)

        # Split points in original column indices; leaves are marked with negative ids
        tree = estimator.tree_
        internal = tree.feature >= 0
        split_cols = np.asarray(features)[tree.feature[internal]]
        split_cuts = tree.threshold[internal]
        used = set(split_cols.tolist())

        for j in range(len(columns)):
            if j not in used:
                continue

            cond = set(conditioning[j])
            split_points = [(int(c), float(cut)) for c, cut in zip(split_cols, split_cuts) if c in cond]
            cells = _permutation_cells(X_oob, split_points)

            permuted = X_oob.copy()
            for cell in np.unique(cells):
                idx = np.flatnonzero(cells == cell)
                if idx.size > 1:
                    permuted[idx, j] = X_oob[idx[random_state.permutation(idx.size)], j]

            perm_error = np.mean((y_oob - estimator.predict(permuted[:, features])) ** 2)
            scores[t, j] = perm_error - base_error

    return pd.Series(scores.mean(axis=0), index=columns, name='Importance')
