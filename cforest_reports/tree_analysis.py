"""
Decision Tree Analysis Script

This script fits a single shallow regression tree on the complete cases
so the main splits can be read off a figure, alongside the forests.
"""

import matplotlib.pyplot as plt

from sklearn.tree import DecisionTreeRegressor, plot_tree, export_text

from .config import TREE_MAX_DEPTH, TREE_MIN_SAMPLES_LEAF, VARIABLE_LABELS


def fit_decision_tree(X, y, max_depth=TREE_MAX_DEPTH, min_samples_leaf=TREE_MIN_SAMPLES_LEAF,
                      random_state=0):
    """
    Fit a regression tree for visualisation.

    Parameters:
    -----------
    X : pd.DataFrame
        Encoded predictor matrix
    y : pd.Series
        Target
    max_depth : int, default=TREE_MAX_DEPTH
        Maximum depth of the tree
    min_samples_leaf : int, default=TREE_MIN_SAMPLES_LEAF
        Minimum number of subjects per leaf
    random_state : int, default=0
        Random seed used to break ties between equally good splits

    Returns:
    --------
    DecisionTreeRegressor
        Fitted tree
    """
    print("=" * 60)
    print("Fitting Decision Tree")
    print("=" * 60)

    tree = DecisionTreeRegressor(
        max_depth=max_depth,
        min_samples_leaf=min_samples_leaf,
        random_state=random_state,
    )
    tree.fit(X, y)

    print(f"\nTree depth: {tree.get_depth()}, leaves: {tree.get_n_leaves()}")
    print(f"In-sample R^2: {tree.score(X, y):.4f}")

    return tree


def tree_rules(tree, feature_names):
    """Text rendering of the tree's splits."""
    return export_text(tree, feature_names=list(feature_names), decimals=2)


def plot_decision_tree(tree, feature_names, title=None, figsize=(14, 8)):
    """
    Draw the fitted tree.

    Parameters:
    -----------
    tree : DecisionTreeRegressor
        Fitted tree
    feature_names : list
        Predictor names in column order
    title : str, optional
        Figure title
    figsize : tuple, default=(14, 8)
        Figure size in inches

    Returns:
    --------
    matplotlib.figure.Figure
        The figure, left open for the caller to save
    """
    labels = [VARIABLE_LABELS.get(name, name) for name in feature_names]

    fig, ax = plt.subplots(figsize=figsize)
    plot_tree(tree, feature_names=labels, filled=True, rounded=True,
              impurity=False, precision=2, ax=ax)
    if title:
        ax.set_title(title)
    fig.tight_layout()

    return fig
